"""State tracking for files that were already synced.

The tracker remembers, per canonical path, the modification time the file
had when it was last synced and the plug created for it. It lives only in
memory: after a restart every matching file is synced again, reusing nothing.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class FileRecord:
    """Sync history of a single path."""

    path: str
    """Canonical filesystem path"""

    last_synced_at: float
    """File modification time when it was last synced successfully"""

    remote_ref: Optional[str] = None
    """Plug id, assigned on the first successful sync and never replaced"""

    content_ref: Optional[str] = None
    """Id of the most recently uploaded content"""

    sync_count: int = 0
    """Number of successful syncs"""

    def to_dict(self) -> dict:
        """Convert record to dictionary for JSON output."""
        return {
            "path": self.path,
            "last_synced_at": self.last_synced_at,
            "remote_ref": self.remote_ref,
            "content_ref": self.content_ref,
            "sync_count": self.sync_count,
        }


@dataclass(frozen=True)
class SyncDecision:
    """Whether a path must be sent, and which plug to reuse."""

    path: str
    dirty: bool
    reason: str
    remote_ref: Optional[str] = None


class ChangeTracker:
    """In-memory map of FileRecords that decides which files are dirty.

    A file is dirty when no record exists for it, or when its current
    modification time is strictly newer than the recorded one.

    Callers that sync paths concurrently hold ``lock_for(path)`` around the
    check-sync-mark sequence of a path; different paths never contend.
    """

    def __init__(self) -> None:
        self._records: dict[str, FileRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._records)

    def __contains__(self, path: object) -> bool:
        with self._guard:
            return path in self._records

    def lock_for(self, path: str) -> threading.Lock:
        """Return the lock serializing updates of one path."""
        with self._guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock

    def get(self, path: str) -> Optional[FileRecord]:
        """Return the record of a path, if any."""
        with self._guard:
            return self._records.get(path)

    def records(self) -> list[FileRecord]:
        """Snapshot of all records, sorted by path."""
        with self._guard:
            return sorted(self._records.values(), key=lambda r: r.path)

    def check(self, path: str, mtime: float) -> SyncDecision:
        """Decide whether a scanned file must be synced.

        Args:
            path: Canonical path of the file
            mtime: Current modification time of the file

        Returns:
            SyncDecision carrying the plug to reuse, if any
        """
        record = self.get(path)
        if record is None:
            return SyncDecision(path=path, dirty=True, reason="new file")
        if record.last_synced_at < mtime:
            return SyncDecision(
                path=path,
                dirty=True,
                reason="modified",
                remote_ref=record.remote_ref,
            )
        return SyncDecision(
            path=path,
            dirty=False,
            reason="unchanged",
            remote_ref=record.remote_ref,
        )

    def mark_synced(
        self,
        path: str,
        mtime: float,
        remote_ref: str,
        content_ref: Optional[str] = None,
    ) -> FileRecord:
        """Record a successful sync.

        Must only be called once both the upload and the plug call succeeded.
        An existing plug id is never replaced.

        Args:
            path: Canonical path of the file
            mtime: Modification time the synced content was read at
            remote_ref: Plug id returned by the remote
            content_ref: Content id returned by the upload

        Returns:
            The created or updated FileRecord
        """
        with self._guard:
            record = self._records.get(path)
            if record is None:
                record = FileRecord(
                    path=path,
                    last_synced_at=mtime,
                    remote_ref=remote_ref,
                    content_ref=content_ref,
                    sync_count=1,
                )
                self._records[path] = record
                return record

            if record.remote_ref is None:
                record.remote_ref = remote_ref
            elif remote_ref != record.remote_ref:
                logger.warning(
                    f"Remote returned plug {remote_ref} for {path}, "
                    f"keeping {record.remote_ref}"
                )
            record.last_synced_at = mtime
            record.content_ref = content_ref
            record.sync_count += 1
            return record
