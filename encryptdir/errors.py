"""
Error types and per-root failure aggregation.

Every error the package raises derives from RuntimeError, so callers
that only care about "the tool failed" can catch a single type.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional

if TYPE_CHECKING:
    from .dispatcher import RunReport


class EncryptDirError(RuntimeError):
    """Base class for all encryptdir errors."""


class ConfigError(EncryptDirError):
    """Invalid configuration, key material or signing identity."""


class TransformError(EncryptDirError):
    """
    A single file could not be transformed.

    Carries the file path and the step that failed so the aggregate
    report can point at the exact operation.
    """

    def __init__(self, path: str | Path, step: str, cause: BaseException):
        self.path = Path(path)
        self.step = step
        self.cause = cause
        super().__init__(f"{self.path}: {step}: {cause}")


@dataclass(frozen=True)
class Failure:
    root: Path
    path: Optional[Path]
    error: BaseException

    def __str__(self) -> str:
        if isinstance(self.error, TransformError):
            return f"[{self.root}] {self.error}"
        where = self.path if self.path is not None else self.root
        return f"[{self.root}] {where}: {self.error}"


class AggregateError(EncryptDirError):
    """One error standing for every failure of a run."""

    def __init__(self, failures: List[Failure], report: Optional["RunReport"] = None):
        self.failures = list(failures)
        self.report = report
        lines = [f"{len(self.failures)} file(s) failed:"]
        lines.extend(f"  {failure}" for failure in self.failures)
        super().__init__("\n".join(lines))


class ErrorAggregator:
    """Merges per-root failure collections into a single error."""

    @staticmethod
    def merge(collections: Iterable[Iterable[Failure]]) -> List[Failure]:
        merged: List[Failure] = []
        for failures in collections:
            merged.extend(failures)
        return merged

    @classmethod
    def combine(
        cls,
        collections: Iterable[Iterable[Failure]],
        report: Optional["RunReport"] = None,
    ) -> Optional[AggregateError]:
        """
        Return an AggregateError covering every failure, or None if
        there were none.
        """

        merged = cls.merge(collections)
        if not merged:
            return None
        return AggregateError(merged, report)
