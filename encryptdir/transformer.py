"""
Content transformation: marker checks and atomic in-place rewrites.

This module performs the actual per-file encrypt/decrypt once a key has
been resolved. It is intentionally dumb about policy and filesystem
traversal.

A rewrite always goes through a sibling temp file (path + ".enc" or
path + ".dec") created with O_EXCL. Whoever creates it owns the path
until the temp file is renamed over the original or removed.
"""

from __future__ import annotations

import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Tuple

from . import primitives
from .config import DECRYPT_SUFFIX, ENCRYPT_SUFFIX
from .errors import TransformError
from .file_scanner import FileRecord
from .primitives import SigningIdentity
from .utils import temp_path

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


class Outcome(str, Enum):
    TRANSFORMED = "transformed"
    ALREADY_DONE = "already_done"
    INELIGIBLE = "ineligible"
    IN_PROGRESS = "in_progress"
    WOULD_TRANSFORM = "would_transform"
    CANCELLED = "cancelled"


class Transformer:
    def __init__(self, identity: SigningIdentity, dry_run: bool = False):
        self.identity = identity
        self.dry_run = dry_run

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def transform(self, record: FileRecord, key: bytes, direction: Direction) -> Outcome:
        if direction is Direction.ENCRYPT:
            return self.encrypt_file(record.path, key, record.mode)
        return self.decrypt_file(record.path, key, record.mode)

    def is_ciphertext(self, path: Path, key: bytes) -> bool:
        """
        Check whether path starts with a valid marker for key.

        Only the marker prefix is read. A file shorter than a marker is
        plaintext.
        """

        with open(path, "rb") as fh:
            marker = fh.read(self.identity.marker_size)
        return self.identity.verify(marker, key)

    def encrypt_file(self, path: str | Path, key: bytes, mode: Optional[int] = None) -> Outcome:
        """
        Replace a plaintext file with marker + ciphertext.
        """

        path = Path(path)
        if self._check(path, key, "read marker"):
            logger.debug("Already encrypted: %s", path)
            return Outcome.ALREADY_DONE

        if self.dry_run:
            return Outcome.WOULD_TRANSFORM

        try:
            marker = self.identity.sign(key)
        except (TypeError, ValueError) as e:
            raise TransformError(path, "sign marker", e) from e

        def build() -> Optional[List[bytes]]:
            data = self._read(path, "read plaintext")
            # Someone may have committed between the first check and the claim
            if self._verify(data, key):
                return None
            try:
                return [marker, primitives.encrypt(key, data)]
            except ValueError as e:
                raise TransformError(path, "encrypt", e) from e

        outcome = self._rewrite(path, ENCRYPT_SUFFIX, self._mode(path, mode), build)
        if outcome is Outcome.TRANSFORMED:
            logger.info("Encrypted %s", path)
        return outcome

    def decrypt_file(self, path: str | Path, key: bytes, mode: Optional[int] = None) -> Outcome:
        """
        Replace a marker + ciphertext file with its plaintext.
        """

        path = Path(path)
        if not self._check(path, key, "read marker"):
            logger.debug("Already plaintext: %s", path)
            return Outcome.ALREADY_DONE

        if self.dry_run:
            return Outcome.WOULD_TRANSFORM

        def build() -> Optional[List[bytes]]:
            data = self._read(path, "read ciphertext")
            if not self._verify(data, key):
                return None
            try:
                return [primitives.decrypt(key, data[self.identity.marker_size:])]
            except ValueError as e:
                raise TransformError(path, "decrypt", e) from e

        outcome = self._rewrite(path, DECRYPT_SUFFIX, self._mode(path, mode), build)
        if outcome is Outcome.TRANSFORMED:
            logger.info("Decrypted %s", path)
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check(self, path: Path, key: bytes, step: str) -> bool:
        try:
            return self.is_ciphertext(path, key)
        except OSError as e:
            raise TransformError(path, step, e) from e

    def _verify(self, data: bytes, key: bytes) -> bool:
        return self.identity.verify(data[: self.identity.marker_size], key)

    @staticmethod
    def _read(path: Path, step: str) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise TransformError(path, step, e) from e

    @staticmethod
    def _mode(path: Path, mode: Optional[int]) -> int:
        if mode is not None:
            return stat.S_IMODE(mode)
        try:
            return stat.S_IMODE(os.stat(path).st_mode)
        except OSError as e:
            raise TransformError(path, "stat", e) from e

    @staticmethod
    def _claim(path: Path, suffix: str, mode: int) -> Optional[Tuple[Path, BinaryIO]]:
        """
        Exclusively create the temp file for path.

        Returns None when the temp file already exists, meaning another
        worker (in this process or another) is rewriting path.
        """

        tmp = temp_path(path, suffix)
        try:
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0), mode)
        except FileExistsError:
            return None
        except OSError as e:
            raise TransformError(path, "create temp file", e) from e
        return tmp, os.fdopen(fd, "wb")

    def _rewrite(
        self,
        path: Path,
        suffix: str,
        mode: int,
        build: Callable[[], Optional[List[bytes]]],
    ) -> Outcome:
        claimed = self._claim(path, suffix, mode)
        if claimed is None:
            logger.info("Skipping %s: %s exists, another worker owns it", path, suffix)
            return Outcome.IN_PROGRESS

        tmp, out = claimed
        try:
            with out:
                chunks = build()
                if chunks is not None:
                    try:
                        for chunk in chunks:
                            out.write(chunk)
                        out.flush()
                        os.fsync(out.fileno())
                    except OSError as e:
                        raise TransformError(path, "write temp file", e) from e

            if chunks is None:
                self._discard(tmp)
                return Outcome.ALREADY_DONE

            try:
                # O_CREAT honours the umask, so set the bits explicitly
                os.chmod(tmp, mode)
                os.replace(tmp, path)
            except OSError as e:
                raise TransformError(path, "rename", e) from e
        except BaseException:
            self._discard(tmp)
            raise

        return Outcome.TRANSFORMED

    @staticmethod
    def _discard(tmp: Path) -> None:
        try:
            tmp.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Could not remove temp file %s: %s", tmp, e)
