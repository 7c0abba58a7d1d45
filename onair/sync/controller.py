"""
Sync controller: the facade that keeps the published now-playing state.

The controller owns up to three feeds, each driven by its own
PollScheduler:

    now_playing  adaptive, re-armed from the server's next_updated hint
    recent       fixed cadence (polling.fallback_interval), optional
    program      fixed cadence (polling.program_interval), optional

and publishes one immutable SyncSnapshot:

    track          current track, PRESENTER_TRACK during presenter breaks
    program        current program guide entry
    recent_tracks  merged, deduplicated, bounded recent tracks
    is_loading     a now-playing fetch is in flight
    last_error     status message of the last failed now-playing poll

Fetches run on timer threads. Everything that touches the snapshot or
the history store runs as a job on the update dispatcher, so listeners
always observe complete updates, in order. After stop(), queued and late
results are discarded.

Usage:
    with SyncController(client, store, config) as controller:
        controller.subscribe(lambda snap: print(snap.track.title))
        ...
"""

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable

from onair.core.config import Config
from onair.core.exceptions import FeedError, PayloadError
from onair.core.logger import get_logger, log_poll_failure
from onair.feed.client import RadioApiClient
from onair.feed.models import (
    LOADING_PROGRAM,
    LOADING_TRACK,
    NowPlaying,
    Program,
    Track,
    previous_tracks,
)
from onair.feed.normalizer import (
    parse_now_playing,
    parse_program_guide,
    parse_recent_tracks,
    select_current_program,
)
from onair.feed.timefmt import utc_now
from onair.sync.dispatch import Dispatcher, SerialDispatcher
from onair.sync.history import HistoryStore
from onair.sync.reconcile import merge
from onair.sync.scheduler import PollResult, PollScheduler, TimerFactory, thread_timer

logger = get_logger(__name__)


FEED_NOW_PLAYING = "now_playing"
FEED_RECENT = "recent"
FEED_PROGRAM = "program"


@dataclass(frozen=True)
class SyncSnapshot:
    """Immutable view of everything the controller publishes."""
    track: Track = LOADING_TRACK
    program: Program = LOADING_PROGRAM
    recent_tracks: tuple[Track, ...] = ()
    is_loading: bool = False
    last_error: str | None = None


Listener = Callable[[SyncSnapshot], None]


def describe_error(error: Exception | None) -> str:
    """User-visible status message for a failed poll."""
    if isinstance(error, PayloadError):
        return f"Parse error: {error.message}"
    if isinstance(error, FeedError):
        return f"Network error: {error.message}"
    return f"Unexpected error: {error}"


class SyncController:
    """
    Composes feeds, normalizer, history store and reconciliation.

    Args:
        client: HTTP client for the station API.
        history: Injected history store.
        config: Application configuration (feeds, cadence, list sizes).
        dispatcher: Update context; a SerialDispatcher by default.
        clock: Returns the current aware datetime.
        timer_factory: Passed to every PollScheduler.
    """

    def __init__(
        self,
        client: RadioApiClient,
        history: HistoryStore,
        config: Config,
        dispatcher: Dispatcher | None = None,
        clock: Callable[[], datetime] = utc_now,
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        self._client = client
        self._history = history
        self._config = config
        self._dispatcher = dispatcher or SerialDispatcher()
        self._clock = clock

        self._lock = threading.Lock()
        self._snapshot = SyncSnapshot()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._closed = False

        # Live inputs of the recent tracks merge, kept between polls
        self._last_previous: tuple[Track, ...] = ()
        self._last_search: tuple[Track, ...] = ()

        polling = config.polling
        self._urls = {
            FEED_NOW_PLAYING: config.station.now_playing_url,
            FEED_RECENT: config.station.recent_url,
            FEED_PROGRAM: config.station.program_url,
        }

        self.now_playing_feed = PollScheduler(
            FEED_NOW_PLAYING,
            fetch=self._fetch_now_playing,
            on_result=self._on_now_playing_result,
            fallback_delay=polling.fallback_interval,
            min_delay=polling.min_delay,
            buffer=polling.buffer,
            clock=clock,
            timer_factory=timer_factory,
        )

        self.recent_feed: PollScheduler | None = None
        if config.station.recent_url is not None:
            self.recent_feed = PollScheduler(
                FEED_RECENT,
                fetch=self._fetch_recent,
                on_result=self._on_recent_result,
                fallback_delay=polling.fallback_interval,
                interval=polling.fallback_interval,
                clock=clock,
                timer_factory=timer_factory,
            )

        self.program_feed: PollScheduler | None = None
        if config.station.program_url is not None:
            self.program_feed = PollScheduler(
                FEED_PROGRAM,
                fetch=self._fetch_program,
                on_result=self._on_program_result,
                fallback_delay=polling.fallback_interval,
                interval=polling.program_interval,
                clock=clock,
                timer_factory=timer_factory,
            )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def feeds(self) -> list[PollScheduler]:
        return [f for f in (self.now_playing_feed, self.recent_feed, self.program_feed) if f is not None]

    def start(self) -> None:
        """Start every feed; each fetches immediately."""
        logger.info(f"Starting sync for {self._config.station.name}")
        for feed in self.feeds:
            feed.start()

    def stop(self) -> None:
        """Cancel all timers and discard results that arrive afterwards."""
        for feed in self.feeds:
            feed.stop()
        with self._lock:
            self._generation += 1
            closed = self._closed
        if not closed:
            self._dispatcher.submit(self._reset_loading)
        logger.info("Sync stopped")

    def close(self) -> None:
        """Stop and shut down the update context. Safe to call again."""
        with self._lock:
            if self._closed:
                return
        self.stop()
        with self._lock:
            self._closed = True
        self._dispatcher.shutdown(wait=True)

    def __enter__(self) -> "SyncController":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # =========================================================================
    # Published state
    # =========================================================================

    def snapshot(self) -> SyncSnapshot:
        with self._lock:
            return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        The listener is called on the update context with every new
        snapshot. Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _submit(self, update: Callable[[], None]) -> None:
        """Queue an update that is dropped if stop() happens first."""
        with self._lock:
            if self._closed:
                return
            generation = self._generation

        def job() -> None:
            with self._lock:
                if generation != self._generation:
                    return
            update()

        self._dispatcher.submit(job)

    def _publish(self, **changes: Any) -> None:
        # Runs on the update context only
        with self._lock:
            new_snapshot = replace(self._snapshot, **changes)
            if new_snapshot == self._snapshot:
                return
            self._snapshot = new_snapshot
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(new_snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")

    def _reset_loading(self) -> None:
        self._publish(is_loading=False)

    # =========================================================================
    # Manual refresh and maintenance
    # =========================================================================

    def refresh_now_playing(self) -> bool:
        """Fetch now playing immediately; the poll schedule is unchanged."""
        return self.now_playing_feed.poll_now()

    def refresh_recent(self) -> bool:
        if self.recent_feed is None:
            return False
        return self.recent_feed.poll_now()

    def refresh_program(self) -> bool:
        if self.program_feed is None:
            return False
        return self.program_feed.poll_now()

    def refresh_all(self) -> None:
        for feed in self.feeds:
            feed.poll_now()

    def prune_history(self, days: int | None = None) -> int:
        """Delete history older than `days` (default: history.retention_days)."""
        if days is None:
            days = self._config.history.retention_days
        return self._history.prune_older_than(timedelta(days=days))

    # =========================================================================
    # Feeds
    # =========================================================================

    def _report_failure(self, feed: str, result: PollResult) -> str:
        message = describe_error(result.error)
        log_poll_failure(logger, feed, self._urls[feed] or "", message)
        return message

    def _recent_tracks(self) -> tuple[Track, ...]:
        history = self._config.history
        merged = merge(
            self._last_previous + self._last_search,
            self._history,
            api_limit=history.api_limit,
            output_limit=history.recent_limit,
            now=self._clock(),
        )
        return tuple(merged)

    def _fetch_now_playing(self) -> PollResult:
        self._submit(lambda: self._publish(is_loading=True))
        payload = self._client.now_playing()
        now_playing = parse_now_playing(payload, self._clock())
        return PollResult.success(now_playing, now_playing.next_update)

    def _on_now_playing_result(self, result: PollResult) -> None:
        if not result.ok:
            message = self._report_failure(FEED_NOW_PLAYING, result)
            self._submit(lambda: self._publish(is_loading=False, last_error=message))
            return

        self._submit(lambda: self._apply_now_playing(result.payload))

    def _apply_now_playing(self, now_playing: NowPlaying) -> None:
        changes: dict[str, Any] = {"is_loading": False, "last_error": None}

        if now_playing.current is not None:
            changes["track"] = now_playing.current
            if now_playing.current.is_presenter_segment:
                logger.debug("Presenter segment on air")
            else:
                logger.debug(f"Now playing: {now_playing.current.artist} - {now_playing.current.title}")

        previous = previous_tracks(now_playing.previous)
        # Oldest first, so the newest previous track is the newest record
        for track in reversed(previous):
            self._history.save(track)
        self._last_previous = tuple(previous)

        changes["recent_tracks"] = self._recent_tracks()
        self._publish(**changes)

    def _fetch_recent(self) -> PollResult:
        payload = self._client.recent_plays(self._config.history.api_limit)
        return PollResult.success(parse_recent_tracks(payload, self._clock()))

    def _on_recent_result(self, result: PollResult) -> None:
        if not result.ok:
            self._report_failure(FEED_RECENT, result)
            return

        def apply() -> None:
            self._last_search = tuple(result.payload)
            self._publish(recent_tracks=self._recent_tracks())

        self._submit(apply)

    def _fetch_program(self) -> PollResult:
        return PollResult.success(parse_program_guide(self._client.program_guide()))

    def _on_program_result(self, result: PollResult) -> None:
        if not result.ok:
            self._report_failure(FEED_PROGRAM, result)
            return

        def apply() -> None:
            program = select_current_program(result.payload, self._clock())
            if program is None:
                logger.debug("Program guide is empty, keeping current program")
                return
            self._publish(program=program)

        self._submit(apply)
