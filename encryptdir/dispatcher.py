"""
Run orchestration across directory roots.

One thread walks each root. Eligible files from a root are handed to
that root's own bounded worker pool; the walker blocks once the pool
has enough queued work, so memory stays flat on large trees.

Failures are collected per root and merged only after every root has
finished, so one bad root never stops the others.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_WORKERS
from .errors import ErrorAggregator, Failure
from .file_scanner import FileRecord, FileScanner
from .primitives import SigningIdentity
from .rules import KeyRules
from .transformer import Direction, Outcome, Transformer

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    direction: Direction
    counts: Dict[Outcome, int] = field(default_factory=lambda: {o: 0 for o in Outcome})
    failures: List[Failure] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        self.counts[outcome] += 1

    def merge(self, other: "RunReport") -> None:
        for outcome, count in other.counts.items():
            self.counts[outcome] += count
        self.failures.extend(other.failures)

    @property
    def transformed(self) -> int:
        return self.counts[Outcome.TRANSFORMED]

    @property
    def ok(self) -> bool:
        return not self.failures


class RootDispatcher:
    """
    Encrypts or decrypts every eligible file under a set of roots.

    The key map and identity are shared read-only by all workers. The
    only cross-worker coordination is the temp file each rewrite claims.
    """

    def __init__(
        self,
        identity: SigningIdentity,
        key_map: Mapping[str, bytes],
        workers: int = DEFAULT_WORKERS,
        dry_run: bool = False,
        transformer: Optional[Transformer] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.rules = KeyRules(key_map)
        self.workers = workers
        self.transformer = transformer or Transformer(identity, dry_run=dry_run)
        self._stop = threading.Event()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, roots: Iterable[str | Path], timeout: Optional[float] = None) -> RunReport:
        return self.run(roots, Direction.ENCRYPT, timeout=timeout)

    def decrypt(self, roots: Iterable[str | Path], timeout: Optional[float] = None) -> RunReport:
        return self.run(roots, Direction.DECRYPT, timeout=timeout)

    def cancel(self) -> None:
        """
        Stop launching new per-file work in the current run.

        Transforms already running finish their rename. The next run
        starts with a fresh stop flag.
        """

        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def run(
        self,
        roots: Iterable[str | Path],
        direction: Direction,
        timeout: Optional[float] = None,
    ) -> RunReport:
        """
        Transform every root concurrently.

        Raises:
            AggregateError: if any file failed, after all roots finished

        Returns:
            RunReport
        """

        root_paths = [Path(r) for r in roots]
        report = RunReport(direction)
        if not root_paths:
            return report

        stop = self._stop = threading.Event()

        timer = None
        if timeout is not None:
            timer = threading.Timer(timeout, self._on_timeout, args=(timeout, stop))
            timer.daemon = True
            timer.start()

        try:
            with ThreadPoolExecutor(
                max_workers=len(root_paths), thread_name_prefix="encryptdir-root"
            ) as pool:
                futures = [pool.submit(self._walk_root, root, direction, stop) for root in root_paths]
                try:
                    root_reports = [
                        self._root_result(root, direction, future)
                        for root, future in zip(root_paths, futures)
                    ]
                except BaseException:
                    # Interrupted while waiting: let in-flight files finish, start no more
                    stop.set()
                    raise
        finally:
            if timer is not None:
                timer.cancel()

        for root_report in root_reports:
            report.merge(root_report)

        logger.info(
            "%s finished: %s",
            direction.value,
            ", ".join(f"{o.value}={n}" for o, n in report.counts.items() if n),
        )

        error = ErrorAggregator.combine([r.failures for r in root_reports], report)
        if error is not None:
            raise error
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _on_timeout(timeout: float, stop: threading.Event) -> None:
        logger.warning("Timed out after %ss, no new files will be started", timeout)
        stop.set()

    @staticmethod
    def _root_result(root: Path, direction: Direction, future: Future) -> RunReport:
        try:
            return future.result()
        except Exception as e:
            logger.error("Walk of %s failed: %s", root, e)
            report = RunReport(direction)
            report.failures.append(Failure(root=root, path=None, error=e))
            return report

    def _walk_root(self, root: Path, direction: Direction, stop: threading.Event) -> RunReport:
        report = RunReport(direction)
        lock = threading.Lock()
        slots = threading.BoundedSemaphore(self.workers * 2)

        def done(future: Future, record: FileRecord) -> None:
            try:
                with lock:
                    self._collect(report, record, future)
            finally:
                slots.release()

        logger.debug("Walking %s", root)
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix=f"encryptdir-{root.name or 'root'}"
        ) as pool:
            for record in FileScanner(root).scan():
                decision = self.rules.evaluate(record)
                if not decision.eligible:
                    if not record.is_dir:
                        logger.debug("Skipping %s: %s", record.path, decision.reason)
                        with lock:
                            report.add(Outcome.INELIGIBLE)
                    continue

                if stop.is_set():
                    with lock:
                        report.add(Outcome.CANCELLED)
                    continue

                slots.acquire()
                future = pool.submit(self._transform, record, decision.key, direction, stop)
                future.add_done_callback(lambda f, r=record: done(f, r))

        return report

    def _transform(
        self, record: FileRecord, key: bytes, direction: Direction, stop: threading.Event
    ) -> Outcome:
        # The stop flag may have been set while this file sat in the queue
        if stop.is_set():
            return Outcome.CANCELLED
        return self.transformer.transform(record, key, direction)

    @staticmethod
    def _collect(report: RunReport, record: FileRecord, future: Future) -> None:
        try:
            report.add(future.result())
        except Exception as e:
            logger.error("Failed to %s %s: %s", report.direction.value, record.path, e)
            report.failures.append(Failure(root=record.root, path=record.path, error=e))

