"""
Played-track history store.

HistoryStore is the contract the sync engine relies on; HistoryDatabase
underneath is only a storage engine. The store adds the rules:

    - presenter segments are never persisted
    - a track id is stored at most once (first sighting wins)
    - played_at is the time of saving, not an upstream field
    - display strings are recomputed on every read
    - storage failures are logged and become no-ops; they never reach
      the poll scheduler or the published error state

Usage:
    store = HistoryStore(HistoryDatabase(path))
    store.save(track)
    recent = store.fetch_recent(limit=10)
    store.prune_older_than(timedelta(days=7))
"""

from datetime import datetime, timedelta
from typing import Callable

from onair.core.database import HistoryDatabase
from onair.core.exceptions import DatabaseError
from onair.core.logger import get_logger
from onair.feed.models import PLACEHOLDER_ARTWORK_URL, Track
from onair.feed.timefmt import encode_relative, utc_now

logger = get_logger(__name__)


class HistoryStore:
    """
    Durable, append-mostly repository of previously played tracks.

    Attributes:
        database: The storage engine.

    Thread Safety:
        Every method may be called from any thread; the database
        serializes access with its own lock.
    """

    def __init__(self, database: HistoryDatabase, clock: Callable[[], datetime] = utc_now) -> None:
        self.database = database
        self._clock = clock

    def save(self, track: Track) -> bool:
        """
        Persist a track the first time its id is seen.

        Returns:
            True if a record was created. False for presenter segments,
            already stored ids and storage failures.
        """
        if track.is_presenter_segment:
            logger.debug("Skipping save for presenter segment")
            return False

        try:
            created = self.database.insert_played_track(track.to_record(), self._clock())
        except DatabaseError as e:
            logger.error(f"Failed to save track '{track.title}': {e.message}")
            return False

        if created:
            logger.info(f"Saved to history: {track.artist} - {track.title}")
        return created

    def fetch_recent(self, limit: int) -> list[Track]:
        """
        Get up to `limit` stored tracks, newest first.

        played_at_display is computed against the current time, so the
        same record reads "Just now" and later "12m ago".
        """
        try:
            rows = self.database.get_recent_tracks(limit)
        except DatabaseError as e:
            logger.error(f"Failed to fetch recent tracks: {e.message}")
            return []

        now = self._clock()
        return [
            Track(
                id=row["id"],
                title=row["title"] or "Unknown",
                artist=row["artist"] or "Unknown Artist",
                album=row["album"] or "",
                artwork_url=row["artwork_url"] or PLACEHOLDER_ARTWORK_URL,
                played_at_display=encode_relative(row["played_at"], now),
                is_presenter_segment=False,
                played_at=row["played_at"],
            )
            for row in rows
        ]

    def prune_older_than(self, age: timedelta) -> int:
        """
        Delete records played more than `age` ago.

        Maintenance only: nothing in the sync engine calls this on its own.

        Returns:
            Number of records deleted (0 on failure).
        """
        cutoff = self._clock() - age
        try:
            removed = self.database.delete_played_before(cutoff)
        except DatabaseError as e:
            logger.error(f"Failed to prune history: {e.message}")
            return 0

        logger.info(f"Pruned {removed} tracks played before {cutoff.isoformat()}")
        return removed

    def count(self) -> int:
        try:
            return self.database.count_played_tracks()
        except DatabaseError as e:
            logger.error(f"Failed to count history: {e.message}")
            return 0
