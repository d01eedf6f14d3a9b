"""
Eligibility logic.

Given a scanned entry and the key map, this module decides:
- whether the entry can be transformed at all
- which key applies

Rules DO NOT perform actions. They only return decisions.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .config import normalize_extension
from .file_scanner import FileRecord


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    extension: str
    key: Optional[bytes] = None
    reason: str = ""


def file_extension(path: str | os.PathLike) -> str:
    """
    Return the dot-stripped extension of a path.

    Follows os.path.splitext, so "archive.tar.gz" gives "gz" and a
    dotfile such as ".profile" has no extension.
    """

    return normalize_extension(os.path.splitext(os.fspath(path))[1])


class KeyRules:
    def __init__(self, key_map: Mapping[str, bytes]):
        self.key_map = key_map

    def evaluate(self, record: FileRecord) -> Eligibility:
        if record.is_dir:
            return Eligibility(eligible=False, extension="", reason="directory")

        ext = file_extension(record.path)

        # Renaming over a symlink would replace the link itself
        if not record.is_regular:
            return Eligibility(eligible=False, extension=ext, reason="not a regular file")

        key = self.key_map.get(ext) if ext else None
        if key is None:
            return Eligibility(eligible=False, extension=ext, reason="no key for extension")

        return Eligibility(eligible=True, extension=ext, key=key)
