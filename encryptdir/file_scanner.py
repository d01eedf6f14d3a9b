"""
Filesystem scanning.

This module is responsible for:
- walking a directory root
- yielding one FileRecord per file or directory found
- skipping entries that cannot be enumerated

This module does NOT:
- decide which files have keys
- encrypt or decrypt data
- modify files
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRecord:
    path: Path
    mode: int
    is_dir: bool
    root: Path

    @property
    def is_regular(self) -> bool:
        return stat.S_ISREG(self.mode)


class FileScanner:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def scan(self) -> Iterator[FileRecord]:
        """
        Walk the root and yield every directory and file beneath it.

        Enumeration failures (unreadable directories, entries that vanish
        or cannot be stat'ed) are logged and skipped. They never abort the
        walk.

        Yields:
            FileRecord
        """

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_error):
            for name in dirnames + filenames:
                record = self._record(Path(dirpath) / name)
                if record is not None:
                    yield record

    def _record(self, path: Path) -> FileRecord | None:
        try:
            st = os.lstat(path)
        except OSError as e:
            logger.warning("Skipping %s: %s", path, e)
            return None

        return FileRecord(
            path=path,
            mode=st.st_mode,
            is_dir=stat.S_ISDIR(st.st_mode),
            root=self.root,
        )

    def _on_error(self, error: OSError) -> None:
        logger.warning("Cannot enumerate %s: %s", error.filename or self.root, error)
