"""
Version watcher service.

This module provides:
- Validation of watcher options at construction time
- Interval scheduling of fetch/reduce cycles with APScheduler
- Ownership of the previous-status cell
- Callback notification and an idempotent cancellation handle
"""

import asyncio
import inspect
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError

from watcher.exceptions import ConfigurationError, NotAFunctionError, WatcherError
from watcher.fetcher import VersionFetcher
from watcher.models import Status, WatcherOptions, utcnow
from watcher.status_reducer import generate_status
from utilities.logger import CycleLogger

logger = structlog.get_logger(__name__)

WatchCallback = Callable[[Optional[BaseException], Status], Any]


class WatcherState(str, Enum):
    """Lifecycle states of a watcher."""
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"


class VersionWatcher:
    """Polls version endpoints and notifies a callback when versions change."""

    def __init__(
        self,
        callback: WatchCallback,
        *,
        fetcher: Optional[VersionFetcher] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        clock: Callable[[], datetime] = utcnow,
        **options: Any
    ):
        """
        Initialize the watcher. Nothing is fetched or scheduled until start().

        Args:
            callback: Called as ``callback(error, status)`` on every notified cycle
            fetcher: Version fetcher (built from the options when omitted)
            scheduler: APScheduler instance (a private one is created when omitted)
            clock: Source of the current time for the status reducer
            **options: Fields of WatcherOptions (rate, immediate, user_agent, status, ...)

        Raises:
            NotAFunctionError: If callback is not callable
            ConfigurationError: If any option is invalid
        """
        if not callable(callback):
            raise NotAFunctionError(f"callback must be callable, got {type(callback).__name__}")

        try:
            self.options = WatcherOptions(**options)
        except ValidationError as e:
            raise ConfigurationError(f"invalid watcher options: {e}") from e

        self.callback = callback
        self.clock = clock
        self.fetcher = fetcher or VersionFetcher(
            self.options.endpoints,
            request_timeout=self.options.request_timeout,
            repo_pattern=self.options.repo_pattern
        )
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

        self.state = WatcherState.IDLE
        self.initial_cycle: Optional[asyncio.Task] = None
        self.cycles = 0
        self._previous_status = self.options.status.model_copy(deep=True)
        self._lock = asyncio.Lock()
        self._job = None

        self.logger = logger.bind(component="version_watcher")
        self.cycle_logger = CycleLogger(__name__).bind_context(component="version_watcher")

    @property
    def status(self) -> Status:
        """Deep copy of the currently held status."""
        return self._previous_status.model_copy(deep=True)

    def start(self) -> Callable[[], None]:
        """
        Run the optional forced first cycle and arm the interval job.

        Must be called from within a running event loop.

        Returns:
            Zero-argument cancellation function
        """
        if self.state != WatcherState.IDLE:
            raise WatcherError(f"cannot start a watcher that is {self.state.value}")

        if self.options.immediate:
            self.initial_cycle = asyncio.ensure_future(self.run_cycle(force_notify=True))

        self._job = self.scheduler.add_job(
            func=self._tick,
            trigger='interval',
            seconds=self.options.rate / 1000,
            id=f'version_watch_{id(self)}',
            name='Version Watch',
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        if self._owns_scheduler and not self.scheduler.running:
            self.scheduler.start()

        self.state = WatcherState.RUNNING
        self.logger.info(
            "Version watcher started",
            rate_ms=self.options.rate,
            immediate=self.options.immediate,
            endpoints=[endpoint.name for endpoint in self.options.endpoints],
            match_by=self.options.match_by.value
        )
        return self.cancel

    def cancel(self) -> None:
        """Disarm the interval job. Calling it again is a no-op."""
        if self.state == WatcherState.CANCELLED:
            return

        if self._job is not None:
            self._job.remove()
            self._job = None
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        self.state = WatcherState.CANCELLED
        self.logger.info("Version watcher cancelled", cycles=self.cycles)

    async def _tick(self) -> None:
        """Interval job body."""
        if self.state == WatcherState.CANCELLED:
            return
        await self.run_cycle()

    async def run_cycle(self, force_notify: bool = False) -> Optional[Status]:
        """
        Run one fetch/reduce cycle and notify the callback if warranted.

        Args:
            force_notify: Notify on success even if nothing changed

        Returns:
            The new status, or None if the fetch failed
        """
        async with self._lock:
            self.cycles += 1
            cycle = self.cycles
            start_time = time.monotonic()
            self.cycle_logger.log_cycle_start(cycle, len(self.options.endpoints), force_notify)

            try:
                records = await self.fetcher.fetch_versions(self.options.user_agent)
            except Exception as e:
                self.cycle_logger.log_fetch_error(cycle, e)
                await self._notify(cycle, e, self._previous_status.model_copy(deep=True), force_notify)
                return None

            status = generate_status(
                records,
                self._previous_status,
                match_by=self.options.match_by,
                now=self.clock
            )
            self._previous_status = status

            self.cycle_logger.log_cycle_complete(
                cycle, status.train, len(status.diffs), time.monotonic() - start_time
            )

            if status.diffs or force_notify:
                await self._notify(cycle, None, status.model_copy(deep=True), force_notify)

            return status

    async def _notify(
        self,
        cycle: int,
        error: Optional[BaseException],
        status: Status,
        forced: bool
    ) -> None:
        """Invoke the callback; exceptions it raises are logged, not propagated."""
        self.cycle_logger.log_notification(cycle, forced, error is not None)
        try:
            result = self.callback(error, status)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.cycle_logger.log_callback_error(cycle, e)


def watch(callback: WatchCallback, **options: Any) -> Callable[[], None]:
    """
    Start watching version endpoints.

    Validation happens before anything is scheduled, so configuration errors
    are raised here. Must be called from within a running event loop.

    Args:
        callback: Called as ``callback(error, status)``
        **options: Watcher options and collaborators, see VersionWatcher

    Returns:
        Zero-argument cancellation function
    """
    return VersionWatcher(callback, **options).start()
