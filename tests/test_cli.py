import json

import pytest
import yaml

from encryptdir import config
from encryptdir.cli import main
from encryptdir.manifest import encode_key
from encryptdir.primitives import generate_key
from encryptdir.dispatcher import RootDispatcher
from encryptdir.transformer import Transformer


@pytest.fixture
def project(tmp_path, identity, monkeypatch):
    """A config file, an identity and one data directory."""
    monkeypatch.delenv(config.ENV_IDENTITY, raising=False)
    monkeypatch.delenv(config.ENV_PASSPHRASE, raising=False)

    (tmp_path / "id.pem").write_bytes(identity.to_pem())
    data = tmp_path / "data"
    data.mkdir()
    (data / "a.txt").write_bytes(b"hello")
    (data / "b.bin").write_bytes(b"untouched")

    key = generate_key()
    cfg = tmp_path / "encryptdir.yml"
    cfg.write_text(
        yaml.safe_dump(
            {
                "version": 1,
                "identity": "id.pem",
                "workers": 2,
                "directories": ["data"],
                "keys": {"txt": encode_key(key)},
            }
        ),
        encoding="utf-8",
    )
    return tmp_path, cfg, key


def test_help(capsys):
    assert main([]) == 0
    assert "COMMANDS" in capsys.readouterr().out


def test_encrypt_and_decrypt_configured_directories(project, identity, capsys):
    root, cfg, key = project
    data = root / "data"

    assert main(["-c", str(cfg), "encrypt"]) == 0
    assert Transformer(identity).is_ciphertext(data / "a.txt", key)
    assert (data / "b.bin").read_bytes() == b"untouched"
    assert "Encrypted 1 file(s)" in capsys.readouterr().out

    assert main(["-c", str(cfg), "encrypt"]) == 0
    assert "Encrypted 0 file(s)" in capsys.readouterr().out

    assert main(["-c", str(cfg), "decrypt", str(data)]) == 0
    assert (data / "a.txt").read_bytes() == b"hello"


def test_dry_run_leaves_files_alone(project):
    root, cfg, _ = project

    assert main(["-c", str(cfg), "--dry-run", "encrypt"]) == 0
    assert (root / "data" / "a.txt").read_bytes() == b"hello"


def test_missing_directory_is_an_error(project, capsys):
    _, cfg, _ = project

    assert main(["-c", str(cfg), "encrypt", "/definitely/not/here"]) == 1
    assert "Not a directory" in capsys.readouterr().err


def test_missing_config_is_an_error(tmp_path, capsys):
    assert main(["-c", str(tmp_path / "missing.yml"), "encrypt", str(tmp_path)]) == 1
    assert "Config file not found" in capsys.readouterr().err


def test_failures_give_exit_code_one(project, capsys):
    root, cfg, key = project
    data = root / "data"
    (data / "a.txt").write_bytes(b"hello")
    main(["-c", str(cfg), "encrypt"])
    corrupted = bytearray((data / "a.txt").read_bytes())
    corrupted[-1] ^= 0xFF
    (data / "a.txt").write_bytes(bytes(corrupted))
    capsys.readouterr()

    assert main(["-c", str(cfg), "decrypt"]) == 1
    err = capsys.readouterr().err
    assert "a.txt: decrypt" in err


def test_status_json(project, capsys):
    root, cfg, _ = project
    data = root / "data"
    (data / "c.txt").write_bytes(b"more")
    main(["-c", str(cfg), "encrypt"])
    (data / "d.txt").write_bytes(b"new plaintext")
    (data / "c.txt.enc").write_bytes(b"leftover")
    capsys.readouterr()

    assert main(["-c", str(cfg), "status", "--json"]) == 0
    status = json.loads(capsys.readouterr().out)

    assert status["encrypted_files"] == 2
    assert status["plaintext_files"] == 1
    assert status["stale_temp_files"] == [str(data / "c.txt.enc")]


def test_status_ci_fails_on_plaintext(project):
    _, cfg, _ = project

    assert main(["-c", str(cfg), "status", "--ci"]) == 1
    assert main(["-c", str(cfg), "encrypt"]) == 0
    assert main(["-c", str(cfg), "status", "--ci"]) == 0


def test_keygen(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv(config.ENV_PASSPHRASE, raising=False)
    identity_path = tmp_path / "keys" / "id.pem"

    assert main(["keygen", "--identity", str(identity_path), "--bits", "1024", "--ext", ".txt", "--ext", "md"]) == 0

    assert (identity_path.stat().st_mode & 0o777) == 0o600
    out = capsys.readouterr().out
    skeleton = yaml.safe_load(out[out.index("version:"):])
    assert set(skeleton["keys"]) == {"txt", "md"}
    assert skeleton["identity"] == str(identity_path)

    # Refuses to overwrite without --force
    assert main(["keygen", "--identity", str(identity_path), "--bits", "1024"]) == 1
    assert main(["keygen", "--identity", str(identity_path), "--bits", "1024", "--force"]) == 0


def test_rejects_bad_worker_count(project, capsys):
    _, cfg, _ = project
    assert main(["-c", str(cfg), "-w", "0", "encrypt"]) == 1


def test_late_stop_flag_does_not_fail_complete_run(project, capsys, monkeypatch):
    _, cfg, _ = project
    # A timeout that fires just after the last file still sets the flag
    monkeypatch.setattr(RootDispatcher, "cancelled", property(lambda self: True))

    assert main(["-c", str(cfg), "encrypt", "--timeout", "60"]) == 0
    out = capsys.readouterr().out
    assert "Encrypted 1 file(s)" in out
    assert "stopped" not in out


@pytest.mark.parametrize(
    "field, value",
    [("identity", 5), ("identity", ["id.pem"]), ("directories", "data"), ("directories", [1])],
)
def test_mistyped_config_field_is_a_config_error(project, capsys, field, value):
    _, cfg, _ = project
    raw = yaml.safe_load(cfg.read_text(encoding="utf-8"))
    raw[field] = value
    cfg.write_text(yaml.safe_dump(raw), encoding="utf-8")

    assert main(["-c", str(cfg), "encrypt"]) == 1
    assert f"'{field}' must be" in capsys.readouterr().err
