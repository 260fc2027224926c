"""
Polling coordinator that keeps the dashboard data live.

State machine::

    IDLE --start--> SCHEDULED --tick/trigger--> FETCHING --done--> SCHEDULED
      ^                                                            |
      +-------------------- stop() / set_enabled(False) -----------+

At most one fetch is in flight; ticks and manual triggers that arrive while
fetching are dropped, not queued. The timer is injectable so transitions can
be driven without real waits.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

import structlog

from uptime.result import Result

logger = structlog.get_logger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    FETCHING = "fetching"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timer(Protocol):
    """Subset of the asyncio event loop used for scheduling (``loop.call_later``)."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


FetchFn = Callable[[], Awaitable[Any]]


class RefreshCoordinator:
    """Runs ``fetch`` every ``interval_seconds`` and on demand, never concurrently."""

    def __init__(
        self,
        fetch: FetchFn,
        interval_seconds: float,
        *,
        timer: Timer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._fetch = fetch
        self.interval_seconds = interval_seconds
        self._timer = timer
        self._clock = clock or (lambda: datetime.now(UTC))
        self._handle: TimerHandle | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._enabled = False
        self._stopped = False

        self.fetch_count = 0
        self.last_error: BaseException | None = None
        self.last_refreshed_at: datetime | None = None
        self.logger = logger.bind(component="refresh_coordinator")

    @property
    def state(self) -> RefreshState:
        if self._inflight is not None:
            return RefreshState.FETCHING
        if self._handle is not None:
            return RefreshState.SCHEDULED
        return RefreshState.IDLE

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def in_flight(self) -> "asyncio.Task[None] | None":
        """The running fetch task, if any. Awaiting it never raises for fetch errors."""
        return self._inflight

    def start(self, enabled: bool = True) -> "RefreshCoordinator":
        if self._stopped:
            raise RuntimeError("Coordinator was stopped - create a new one")
        self.set_enabled(enabled)
        return self

    def set_enabled(self, enabled: bool) -> None:
        """Arm or disarm the timer without tearing the coordinator down."""
        if self._stopped:
            return
        self._enabled = enabled
        if enabled:
            if self._handle is None:
                self._arm()
                self.logger.info("auto_refresh_enabled", interval_seconds=self.interval_seconds)
        else:
            self._disarm()
            self.logger.info("auto_refresh_disabled")

    def trigger_now(self) -> bool:
        """
        Fetch immediately, bypassing the wait.

        Returns False (and does nothing) while a fetch is in flight or after
        ``stop()``. Works while auto refresh is disabled.
        """
        if self._stopped:
            return False
        return self._begin_fetch(reason="manual")

    def stop(self) -> None:
        """Cancel the pending timer. An in-flight fetch is left to finish on its own."""
        self._stopped = True
        self._enabled = False
        self._disarm()
        self.logger.info("auto_refresh_stopped")

    def _arm(self) -> None:
        timer = self._timer or asyncio.get_running_loop()
        self._handle = timer.call_later(self.interval_seconds, self._on_tick)

    def _disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_tick(self) -> None:
        self._handle = None
        if self._stopped or not self._enabled:
            return
        # Re-arm first so the cadence does not drift with fetch duration
        self._arm()
        if not self._begin_fetch(reason="scheduled"):
            self.logger.debug("refresh_tick_dropped", reason="fetch_in_flight")

    def _begin_fetch(self, reason: str) -> bool:
        if self._inflight is not None:
            return False
        self.fetch_count += 1
        self._inflight = asyncio.get_running_loop().create_task(self._run_fetch(reason))
        return True

    async def _run_fetch(self, reason: str) -> None:
        try:
            outcome = await self._fetch()
            if isinstance(outcome, Result) and outcome.is_err():
                raise outcome.unwrap_err()
        except Exception as e:
            self.last_error = e
            self.logger.warning("refresh_failed", reason=reason, error=str(e))
        else:
            self.last_error = None
            self.last_refreshed_at = self._clock()
            self.logger.debug("refresh_completed", reason=reason)
        finally:
            self._inflight = None


def start_auto_refresh(
    fetch: FetchFn,
    interval_seconds: float = 30.0,
    enabled: bool = True,
    *,
    timer: Timer | None = None,
    clock: Callable[[], datetime] | None = None,
) -> RefreshCoordinator:
    """Create and start a coordinator. Use ``stop()`` / ``trigger_now()`` on the result."""
    coordinator = RefreshCoordinator(fetch, interval_seconds, timer=timer, clock=clock)
    return coordinator.start(enabled)
