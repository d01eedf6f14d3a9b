import pytest

from encryptdir import config
from encryptdir.config import load_signing_identity, normalize_extension
from encryptdir.errors import ConfigError


def test_normalize_extension():
    assert normalize_extension(".txt") == "txt"
    assert normalize_extension("txt") == "txt"
    assert normalize_extension("TXT") == "TXT"
    assert normalize_extension("") == ""


def test_identity_from_explicit_path(tmp_path, identity):
    path = tmp_path / "id.pem"
    path.write_bytes(identity.to_pem())

    loaded = load_signing_identity(path)
    assert loaded.sign(b"k") == identity.sign(b"k")


def test_identity_from_environment(tmp_path, identity, monkeypatch):
    path = tmp_path / "id.pem"
    path.write_bytes(identity.to_pem("hunter2"))
    monkeypatch.setenv(config.ENV_IDENTITY, str(path))
    monkeypatch.setenv(config.ENV_PASSPHRASE, "hunter2")

    loaded = load_signing_identity()
    assert loaded.sign(b"k") == identity.sign(b"k")


def test_identity_missing(monkeypatch):
    monkeypatch.delenv(config.ENV_IDENTITY, raising=False)
    with pytest.raises(ConfigError, match=config.ENV_IDENTITY):
        load_signing_identity()


def test_identity_file_not_found(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_signing_identity(tmp_path / "nope.pem")


def test_identity_garbage(tmp_path, monkeypatch):
    monkeypatch.delenv(config.ENV_PASSPHRASE, raising=False)
    path = tmp_path / "id.pem"
    path.write_text("not a key")
    with pytest.raises(ConfigError, match="Invalid signing identity"):
        load_signing_identity(path)
