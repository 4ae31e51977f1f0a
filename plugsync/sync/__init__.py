"""Sync engine for plugsync - scan, diff and push changed files."""

from .engine import CycleSummary, SyncEngine, SyncOutcome
from .scanner import DirectoryScanner
from .scheduler import CycleResult, SchedulerState, SyncScheduler
from .state import ChangeTracker, FileRecord, SyncDecision

__all__ = [
    "SyncEngine",
    "SyncOutcome",
    "CycleSummary",
    "DirectoryScanner",
    "ChangeTracker",
    "FileRecord",
    "SyncDecision",
    "SyncScheduler",
    "SchedulerState",
    "CycleResult",
]
