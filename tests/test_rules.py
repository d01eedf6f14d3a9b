import stat
from pathlib import Path

from encryptdir.file_scanner import FileRecord
from encryptdir.rules import KeyRules, file_extension

KEY = b"k" * 32


def record(name: str, is_dir: bool = False, mode: int = stat.S_IFREG | 0o644) -> FileRecord:
    if is_dir:
        mode = stat.S_IFDIR | 0o755
    return FileRecord(path=Path("/root") / name, mode=mode, is_dir=is_dir, root=Path("/root"))


def test_file_extension():
    assert file_extension("a.txt") == "txt"
    assert file_extension("dir/archive.tar.gz") == "gz"
    assert file_extension("Makefile") == ""
    assert file_extension(".profile") == ""
    assert file_extension("a.TXT") == "TXT"


def test_eligible_file_gets_key():
    decision = KeyRules({"txt": KEY}).evaluate(record("a.txt"))
    assert decision.eligible
    assert decision.key == KEY
    assert decision.extension == "txt"


def test_directories_are_skipped_even_with_matching_extension():
    decision = KeyRules({"txt": KEY}).evaluate(record("folder.txt", is_dir=True))
    assert not decision.eligible


def test_unknown_extension_is_skipped():
    decision = KeyRules({"txt": KEY}).evaluate(record("b.bin"))
    assert not decision.eligible
    assert decision.key is None


def test_lookup_is_case_sensitive():
    assert not KeyRules({"txt": KEY}).evaluate(record("a.TXT")).eligible


def test_file_without_extension_is_skipped():
    assert not KeyRules({"": KEY}).evaluate(record("README")).eligible


def test_symlinks_are_skipped():
    link = record("a.txt", mode=stat.S_IFLNK | 0o777)
    assert not KeyRules({"txt": KEY}).evaluate(link).eligible
