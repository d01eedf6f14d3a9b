"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to traversal, eligibility, or transformation logic.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .config import DECRYPT_SUFFIX, ENCRYPT_SUFFIX

TEMP_SUFFIXES = (ENCRYPT_SUFFIX, DECRYPT_SUFFIX)


# ---------------------------------------------------------------------------
# Temp file naming
# ---------------------------------------------------------------------------


def temp_path(path: Path, suffix: str) -> Path:
    """Return the sibling temp file used while rewriting path."""
    return path.with_name(path.name + suffix)


def temp_target(path: Path) -> Optional[Path]:
    """
    If path looks like an in-flight temp file whose original still
    exists, return that original. Otherwise return None.
    """

    for suffix in TEMP_SUFFIXES:
        if path.name.endswith(suffix) and len(path.name) > len(suffix):
            original = path.with_name(path.name[: -len(suffix)])
            if original.is_file():
                return original
    return None


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory of a file exists."""
    path.parent.mkdir(parents=True, exist_ok=True)


def write_private_file(path: Path, data: bytes, overwrite: bool = False) -> None:
    """Write data to a file readable only by its owner."""
    ensure_parent_dir(path)
    flags = os.O_WRONLY | os.O_CREAT | (os.O_TRUNC if overwrite else os.O_EXCL)
    fd = os.open(path, flags, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)
