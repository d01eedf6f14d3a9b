from pathlib import Path

from encryptdir.errors import AggregateError, ErrorAggregator, Failure, TransformError


def test_combine_empty_is_none():
    assert ErrorAggregator.combine([]) is None
    assert ErrorAggregator.combine([[], []]) is None


def test_combine_keeps_every_failure():
    a = Failure(Path("/a"), Path("/a/1.txt"), TransformError("/a/1.txt", "rename", OSError("boom")))
    b = Failure(Path("/b"), Path("/b/2.txt"), TransformError("/b/2.txt", "decrypt", ValueError("MAC check failed")))
    c = Failure(Path("/b"), None, RuntimeError("walk crashed"))

    error = ErrorAggregator.combine([[a], [], [b, c]])

    assert isinstance(error, AggregateError)
    assert error.failures == [a, b, c]
    text = str(error)
    assert "3 file(s) failed" in text
    assert "/a/1.txt: rename: boom" in text
    assert "/b/2.txt: decrypt: MAC check failed" in text
    assert "walk crashed" in text


def test_transform_error_keeps_context():
    cause = PermissionError(13, "Permission denied")
    error = TransformError("/x/y.txt", "read plaintext", cause)

    assert error.path == Path("/x/y.txt")
    assert error.step == "read plaintext"
    assert error.cause is cause
    assert isinstance(error, RuntimeError)
