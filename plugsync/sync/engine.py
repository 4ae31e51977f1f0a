"""Core sync engine: one scan-diff-sync pass over the configured roots."""

import logging
import os
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from rich.progress import Progress

from ..api import PlugClient
from ..exceptions import FileReadError, RemoteError
from .scanner import DirectoryScanner
from .state import ChangeTracker, SyncDecision

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    """Result of syncing a single dirty file."""

    CREATED = "created"
    """First sync, a new plug was created"""

    UPDATED = "updated"
    """Existing plug was pointed at new content"""

    VANISHED = "vanished"
    """File disappeared or became unreadable, skipped this cycle"""

    UNCHANGED = "unchanged"
    """Nothing to do (file did not change since the decision was made)"""


@dataclass
class CycleSummary:
    """Aggregate result of one sync cycle."""

    started_at: float = field(default_factory=time.time)
    scanned: int = 0
    unchanged: int = 0
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    vanished: dict[str, str] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    pending: list[str] = field(default_factory=list)
    """Dirty files found by a dry run"""
    duration: float = 0.0
    cycle_error: Optional[str] = None

    @property
    def synced(self) -> list[str]:
        """Paths synced successfully in this cycle."""
        return sorted(self.created + self.updated)

    @property
    def attempted(self) -> int:
        """Number of files for which remote calls were made."""
        return len(self.created) + len(self.updated) + len(self.failed)

    @property
    def is_cycle_failure(self) -> bool:
        """True for a cycle-level error or when most remote syncs failed."""
        if self.cycle_error is not None:
            return True
        return bool(self.failed) and len(self.failed) * 2 > self.attempted

    def to_dict(self) -> dict:
        """Convert summary to dictionary for JSON output."""
        return {
            "started_at": self.started_at,
            "duration": self.duration,
            "scanned": self.scanned,
            "unchanged": self.unchanged,
            "created": sorted(self.created),
            "updated": sorted(self.updated),
            "vanished": dict(sorted(self.vanished.items())),
            "failed": dict(sorted(self.failed.items())),
            "pending": sorted(self.pending),
            "cycle_error": self.cycle_error,
            "cycle_failure": self.is_cycle_failure,
        }


class SyncEngine:
    """Runs sync cycles against an injected client and change tracker."""

    def __init__(
        self,
        client: PlugClient,
        tracker: Optional[ChangeTracker] = None,
        max_workers: int = 1,
        show_progress: bool = False,
        max_depth: Optional[int] = None,
    ):
        """Initialize sync engine.

        Args:
            client: API client carrying the bearer credential
            tracker: Change tracker owned by the caller (a new one if omitted)
            max_workers: Number of files synced in parallel (default: 1)
            show_progress: Display a rich progress bar while syncing
            max_depth: Maximum directory depth scanned below each root
                (None = unbounded)
        """
        self.client = client
        self.tracker = tracker if tracker is not None else ChangeTracker()
        self.max_workers = max(1, max_workers)
        self.show_progress = show_progress
        self.max_depth = max_depth

    def run_cycle(
        self,
        roots: Iterable[str],
        extensions: Iterable[str],
        dry_run: bool = False,
    ) -> CycleSummary:
        """Scan, find dirty files and sync each of them.

        Per-file failures are collected in the returned summary and never
        abort the cycle.

        Args:
            roots: Root directories to scan
            extensions: Accepted file extensions
            dry_run: Only report dirty files, without contacting the remote

        Returns:
            CycleSummary for this cycle

        Raises:
            ScanError: If a root cannot be traversed

        Examples:
            >>> engine = SyncEngine(client, tracker)
            >>> summary = engine.run_cycle(["/src"], ["py"])
            >>> print(f"Synced {len(summary.synced)} file(s)")
        """
        summary = CycleSummary()
        start = time.monotonic()

        paths = DirectoryScanner(extensions, max_depth=self.max_depth).scan(roots)
        summary.scanned = len(paths)

        dirty: list[tuple[SyncDecision, float]] = []
        for path in sorted(paths):
            try:
                mtime = os.stat(path).st_mtime
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")
                summary.vanished[path] = str(e)
                continue

            decision = self.tracker.check(path, mtime)
            if decision.dirty:
                logger.debug(f"{path} is dirty ({decision.reason})")
                dirty.append((decision, mtime))
            else:
                summary.unchanged += 1

        if dry_run:
            summary.pending = [decision.path for decision, _ in dirty]
        elif dirty:
            self._sync_all(dirty, summary)

        summary.duration = time.monotonic() - start
        logger.info(
            f"Cycle done: {summary.scanned} scanned, {len(summary.created)} created, "
            f"{len(summary.updated)} updated, {len(summary.failed)} failed, "
            f"{len(summary.vanished)} skipped"
        )
        return summary

    def _sync_all(
        self, dirty: list[tuple[SyncDecision, float]], summary: CycleSummary
    ) -> None:
        if not self.show_progress:
            self._dispatch(dirty, summary, None)
            return

        with Progress(transient=True) as progress:
            task = progress.add_task("Syncing files...", total=len(dirty))
            self._dispatch(
                dirty, summary, lambda: progress.update(task, advance=1)
            )

    def _dispatch(
        self,
        dirty: list[tuple[SyncDecision, float]],
        summary: CycleSummary,
        advance: Optional[Callable[[], None]],
    ) -> None:
        if self.max_workers > 1 and len(dirty) > 1:
            logger.debug(
                f"Syncing {len(dirty)} files with {self.max_workers} workers"
            )
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._sync_one_safe, decision, mtime): decision
                    for decision, mtime in dirty
                }
                for future in as_completed(futures):
                    self._record(futures[future].path, future.result(), summary)
                    if advance:
                        advance()
        else:
            for decision, mtime in dirty:
                result = self._sync_one_safe(decision, mtime)
                self._record(decision.path, result, summary)
                if advance:
                    advance()

    @staticmethod
    def _record(
        path: str,
        result: tuple[SyncOutcome, Optional[str]] | Exception,
        summary: CycleSummary,
    ) -> None:
        if isinstance(result, RemoteError):
            summary.failed[path] = str(result)
            return
        if isinstance(result, Exception):
            raise result
        outcome, detail = result
        if outcome is SyncOutcome.CREATED:
            summary.created.append(path)
        elif outcome is SyncOutcome.UPDATED:
            summary.updated.append(path)
        elif outcome is SyncOutcome.VANISHED:
            summary.vanished[path] = detail or "vanished"
        else:
            summary.unchanged += 1

    def _sync_one_safe(
        self, decision: SyncDecision, mtime: float
    ) -> tuple[SyncOutcome, Optional[str]] | Exception:
        try:
            return self.sync_file(decision.path, mtime), None
        except FileReadError as e:
            logger.warning(f"Skipping {decision.path}: {e}")
            return SyncOutcome.VANISHED, str(e)
        except RemoteError as e:
            logger.error(f"Error syncing {decision.path}: {e}")
            return e
        except Exception as e:
            # Re-raised on the dispatching thread
            return e

    def sync_file(self, path: str, mtime: float) -> SyncOutcome:
        """Sync one file if it is still dirty.

        The check, the remote calls and the tracker update run under the
        path's lock, and the tracker is only touched after both remote
        calls succeeded.

        Args:
            path: Canonical file path
            mtime: Modification time observed by the scan

        Returns:
            SyncOutcome.CREATED or UPDATED, or UNCHANGED if another worker
            already synced this version

        Raises:
            FileReadError: If the file cannot be read
            RemoteError: If a remote call fails
        """
        with self.tracker.lock_for(path):
            decision = self.tracker.check(path, mtime)
            if not decision.dirty:
                return SyncOutcome.UNCHANGED

            content = _read_text(path)
            content_ref, remote_ref = self.client.sync_file(
                path, content, decision.remote_ref
            )
            self.tracker.mark_synced(path, mtime, remote_ref, content_ref)

        if decision.remote_ref:
            return SyncOutcome.UPDATED
        return SyncOutcome.CREATED


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FileReadError(f"File vanished: {path}", path=path) from e
    except UnicodeDecodeError as e:
        raise FileReadError(f"Not valid UTF-8 text: {path}", path=path) from e
    except OSError as e:
        raise FileReadError(f"Cannot read {path}: {e}", path=path) from e
