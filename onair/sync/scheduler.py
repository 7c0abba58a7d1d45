"""
Adaptive poll scheduler.

One PollScheduler drives one feed. It owns at most one pending timer and
moves through:

    IDLE --start()--> ARMED --timer fires--> FETCHING --result--> ARMED
      ^                                                             |
      +------------------------------stop()-------------------------+

Re-arm delay after a fetch:

    failure (transport, payload, unexpected)  fallback_delay
    fixed cadence feed (interval set)         interval
    server gave next_update                   max(min_delay, until(next_update) + buffer)
    no next_update                            fallback_delay

min_delay keeps a stale or skewed server timestamp from causing an
immediate re-poll. The next timer is armed as soon as the result is
known, before the result handler runs, so slow persistence never delays
the schedule.

A fetch that completes after stop() is discarded: no handler call and
no re-arm. poll_now() fetches on the calling thread without touching
the pending timer; it is refused while another fetch of the same feed is
in flight.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol

from onair.core.exceptions import OnAirError
from onair.core.logger import get_logger
from onair.feed.timefmt import utc_now

logger = get_logger(__name__)


DEFAULT_FALLBACK_DELAY = 30.0
DEFAULT_MIN_DELAY = 2.0
DEFAULT_BUFFER = 1.0


class SchedulerState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    FETCHING = "fetching"


@dataclass(frozen=True)
class PollResult:
    """
    Outcome of one fetch.

    Attributes:
        ok: True if the payload was fetched and parsed.
        payload: Parsed payload handed to the result handler.
        next_update: Server-declared time of the next change, if any.
        error: The failure, when ok is False.
    """
    ok: bool
    payload: Any = None
    next_update: datetime | None = None
    error: Exception | None = None

    @classmethod
    def success(cls, payload: Any, next_update: datetime | None = None) -> "PollResult":
        return cls(ok=True, payload=payload, next_update=next_update)

    @classmethod
    def failure(cls, error: Exception) -> "PollResult":
        return cls(ok=False, error=error)


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Default timer factory: a daemon threading.Timer (not yet started)."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class PollScheduler:
    """
    Runs a fetch function on an adaptive or fixed cadence.

    Args:
        name: Feed name used in log messages.
        fetch: Performs the network request and parsing. Returns a
               successful PollResult or raises; exceptions become failed
               results.
        on_result: Receives every result that was not discarded, after
                   the next timer is armed.
        fallback_delay: Delay after failures or without a server hint.
        min_delay: Lower bound for adaptive delays.
        buffer: Seconds added to the server's next-update time.
        interval: Fixed cadence; when set, server hints are ignored.
        clock: Returns the current aware datetime.
        timer_factory: Creates (unstarted) timers.

    Thread Safety:
        All state changes happen under an internal lock. Fetches and
        on_result run outside it, on the timer thread or the caller of
        poll_now().
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], PollResult],
        on_result: Callable[[PollResult], None],
        fallback_delay: float = DEFAULT_FALLBACK_DELAY,
        min_delay: float = DEFAULT_MIN_DELAY,
        buffer: float = DEFAULT_BUFFER,
        interval: float | None = None,
        clock: Callable[[], datetime] = utc_now,
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        self.name = name
        self.fallback_delay = fallback_delay
        self.min_delay = min_delay
        self.buffer = buffer
        self.interval = interval

        self._fetch = fetch
        self._on_result = on_result
        self._clock = clock
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._timer: TimerHandle | None = None
        self._running = False
        self._fetching = False
        # Bumped by start()/stop(); results from an older generation are stale
        self._generation = 0

        self.last_delay: float | None = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            if self._fetching:
                return SchedulerState.FETCHING
            if self._timer is not None:
                return SchedulerState.ARMED
            return SchedulerState.IDLE

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start polling with an immediate fetch. No-op if already running."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._generation += 1
            logger.debug(f"[{self.name}] Polling started")
            self._arm(0.0)

    def stop(self) -> None:
        """Cancel the pending timer and discard any in-flight result."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            self._cancel_timer()
            logger.debug(f"[{self.name}] Polling stopped")

    def poll_now(self) -> bool:
        """
        Fetch immediately on the calling thread.

        The pending timer, if any, is left alone.

        Returns:
            False if a fetch of this feed was already in flight,
            True otherwise.
        """
        with self._lock:
            if self._fetching:
                logger.debug(f"[{self.name}] Manual poll skipped, fetch in flight")
                return False
            self._fetching = True
            generation = self._generation

        result = self._execute()

        with self._lock:
            self._fetching = False
            if generation != self._generation:
                logger.debug(f"[{self.name}] Discarding manual poll result after stop")
                return True

        self._deliver(result)
        return True

    def compute_delay(self, result: PollResult) -> float:
        """Seconds until the next poll after `result`."""
        if not result.ok:
            return self.fallback_delay
        if self.interval is not None:
            return self.interval
        if result.next_update is None:
            return self.fallback_delay

        until = (result.next_update - self._clock()).total_seconds()
        return max(self.min_delay, until + self.buffer)

    def _arm(self, delay: float) -> None:
        # Caller holds self._lock
        self._cancel_timer()
        generation = self._generation
        self._timer = self._timer_factory(delay, lambda: self._on_timer(generation))
        self.last_delay = delay
        self._timer.start()
        logger.debug(f"[{self.name}] Next poll in {delay:.1f}s")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self._running:
                return
            self._timer = None
            if self._fetching:
                # A manual poll holds the feed; try again shortly
                self._arm(self.min_delay)
                return
            self._fetching = True

        result = self._execute()

        with self._lock:
            self._fetching = False
            if generation != self._generation:
                logger.debug(f"[{self.name}] Discarding result after stop")
                return
            self._arm(self.compute_delay(result))

        self._deliver(result)

    def _execute(self) -> PollResult:
        try:
            return self._fetch()
        except OnAirError as e:
            return PollResult.failure(e)
        except Exception as e:
            logger.exception(f"[{self.name}] Unexpected error during fetch")
            return PollResult.failure(e)

    def _deliver(self, result: PollResult) -> None:
        try:
            self._on_result(result)
        except Exception:
            logger.exception(f"[{self.name}] Result handler failed")
