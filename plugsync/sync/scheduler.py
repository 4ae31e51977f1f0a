"""Periodic runner that keeps the remote store in sync."""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..api import PlugClient
from ..config import SyncSettings
from ..exceptions import PlugSyncError
from .engine import CycleSummary, SyncEngine
from .state import ChangeTracker

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """States of the scheduler loop."""

    IDLE = "idle"
    """Waiting for the next cycle"""

    RUNNING = "running"
    """A cycle is executing"""


@dataclass
class CycleResult:
    """Outcome of one scheduled cycle and the wait chosen after it."""

    cycle: int
    summary: CycleSummary
    next_wait: float

    @property
    def failed(self) -> bool:
        """True if the cycle ended with a cycle-level failure."""
        return self.summary.is_cycle_failure


ClientFactory = Callable[[str], PlugClient]


class SyncScheduler:
    """Runs sync cycles on a fixed interval until stopped.

    After a cycle-level failure (unreadable root, missing credential, most
    uploads failing) the next cycle starts after ``retry_interval``; after an
    ordinary cycle it starts after ``interval``. Only one cycle runs at a
    time, and ``stop()`` interrupts the idle wait.

    Examples:
        >>> scheduler = SyncScheduler(settings, require_api_key)
        >>> scheduler.run()  # until stop() or Ctrl-C
    """

    def __init__(
        self,
        settings: SyncSettings,
        credential_provider: Callable[[], str],
        tracker: Optional[ChangeTracker] = None,
        client_factory: Optional[ClientFactory] = None,
        on_cycle: Optional[Callable[[CycleResult], None]] = None,
        show_progress: bool = False,
    ):
        """Initialize scheduler.

        Args:
            settings: Directories, extensions, intervals and HTTP settings
            credential_provider: Returns the current API key, raises
                ConfigError if none is available
            tracker: Change tracker kept across cycles (a new one if omitted)
            client_factory: Builds an API client from an API key
            on_cycle: Called after every cycle with its result
            show_progress: Display a progress bar while syncing
        """
        self.settings = settings
        self.credential_provider = credential_provider
        self.tracker = tracker if tracker is not None else ChangeTracker()
        self.client_factory = client_factory or self._default_client
        self.on_cycle = on_cycle
        self.show_progress = show_progress

        self.state = SchedulerState.IDLE
        self.cycles = 0
        self._stop_event = threading.Event()
        self._client: Optional[PlugClient] = None
        self._api_key: Optional[str] = None

    def _default_client(self, api_key: str) -> PlugClient:
        return PlugClient(
            api_key=api_key,
            api_url=self.settings.api_url,
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            timeout=self.settings.timeout,
        )

    def _get_client(self) -> PlugClient:
        """Return a client for the current credential, rebuilding it on change."""
        api_key = self.credential_provider()
        if self._client is None or api_key != self._api_key:
            if self._client is not None:
                self._client.close()
            self._client = self.client_factory(api_key)
            self._api_key = api_key
        return self._client

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to end after the current cycle."""
        self._stop_event.set()

    def run_once(self) -> CycleResult:
        """Run a single cycle and compute the wait before the next one."""
        self.state = SchedulerState.RUNNING
        self.cycles += 1
        summary = CycleSummary()
        start = time.monotonic()
        try:
            engine = SyncEngine(
                self._get_client(),
                self.tracker,
                max_workers=self.settings.max_workers,
                show_progress=self.show_progress,
                max_depth=self.settings.max_depth,
            )
            summary = engine.run_cycle(
                self.settings.directories, self.settings.file_types
            )
        except PlugSyncError as e:
            logger.error(f"Sync cycle {self.cycles} failed: {e}")
            summary.cycle_error = str(e)
            summary.duration = time.monotonic() - start
        except Exception as e:
            logger.exception(f"Unexpected error in sync cycle {self.cycles}")
            summary.cycle_error = f"{type(e).__name__}: {e}"
            summary.duration = time.monotonic() - start
        finally:
            self.state = SchedulerState.IDLE

        if summary.is_cycle_failure:
            if summary.cycle_error is None:
                logger.warning(
                    f"{len(summary.failed)} of {summary.attempted} file(s) "
                    "failed to sync, retrying soon"
                )
            next_wait = self.settings.retry_interval
        else:
            next_wait = self.settings.interval

        result = CycleResult(cycle=self.cycles, summary=summary, next_wait=next_wait)
        if self.on_cycle is not None:
            self.on_cycle(result)
        return result

    def run(self, max_cycles: Optional[int] = None) -> int:
        """Run cycles until stop() is called or ``max_cycles`` is reached.

        A stop() issued before run() is honoured: the loop returns at once
        without running a cycle. A stopped scheduler stays stopped.

        Args:
            max_cycles: Stop after this many cycles (None = run forever)

        Returns:
            Number of cycles run
        """
        run_count = 0
        try:
            while not self.stopped:
                result = self.run_once()
                run_count += 1
                if max_cycles is not None and run_count >= max_cycles:
                    break
                logger.debug(f"Next cycle in {result.next_wait:.0f}s")
                if self._stop_event.wait(result.next_wait):
                    break
        finally:
            if self._client is not None:
                self._client.close()
                self._client = None
        logger.info(f"Scheduler stopped after {run_count} cycle(s)")
        return run_count
