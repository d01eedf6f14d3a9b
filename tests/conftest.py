from __future__ import annotations

from pathlib import Path
from types import MappingProxyType

import pytest

from encryptdir.primitives import SigningIdentity, generate_key


@pytest.fixture(scope="session")
def identity() -> SigningIdentity:
    # Small modulus keeps key generation fast; markers are 128 bytes
    return SigningIdentity.generate(1024)


@pytest.fixture(scope="session")
def other_identity() -> SigningIdentity:
    return SigningIdentity.generate(1024)


@pytest.fixture
def txt_key() -> bytes:
    return generate_key()


@pytest.fixture
def key_map(txt_key):
    return MappingProxyType({"txt": txt_key, "md": generate_key(16)})


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """
    root/
        a.txt        "hello"
        b.bin        binary, no key
        notes.md
        sub/c.txt
        sub/deeper/d.TXT   (case differs, no key)
    """

    root = tmp_path / "root"
    (root / "sub" / "deeper").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"hello")
    (root / "b.bin").write_bytes(b"\x00\x01\x02binary")
    (root / "notes.md").write_bytes(b"# notes\n" * 50)
    (root / "sub" / "c.txt").write_bytes(b"")
    (root / "sub" / "deeper" / "d.TXT").write_bytes(b"upper case extension")
    return root


def _snapshot(root: Path) -> dict:
    return {p.relative_to(root): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture
def snapshot():
    """Map of relative path -> bytes for every file under a root."""
    return _snapshot
