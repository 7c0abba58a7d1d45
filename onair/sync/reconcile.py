"""
Reconciliation of live poll results with the persisted history.

The live feed and the history store are two views of overlapping data
with no shared key visible to the client: an upstream play and the
record saved from it an hour ago may carry different ids. Items are
therefore deduplicated on (title, artist). Two different songs with the
same title and artist collide; that approximation is accepted.

Ordering is by minutes ago, newest first. Tracks that carry an absolute
played_at are keyed on it against the merge time, so live tracks parsed
several polls ago age at the same rate as history rows. Otherwise the key
is decoded from played_at_display; the "HH:MM" form cannot be decoded
and sorts last.
"""

from datetime import datetime
from typing import Iterable

from onair.core.logger import get_logger
from onair.feed.models import Track
from onair.feed.timefmt import decode_ordering_key, utc_now
from onair.sync.history import HistoryStore

logger = get_logger(__name__)


DEFAULT_OUTPUT_LIMIT = 5


def ordering_key(track: Track, now: datetime) -> int:
    """Minutes since the track played, UNKNOWN_ORDERING_KEY when unknown."""
    if track.played_at is not None:
        return max(0, int((now - track.played_at).total_seconds()) // 60)
    return decode_ordering_key(track.played_at_display)


def merge(
    live: Iterable[Track],
    history: HistoryStore,
    api_limit: int,
    output_limit: int = DEFAULT_OUTPUT_LIMIT,
    now: datetime | None = None
) -> list[Track]:
    """
    Merge live tracks with stored history into the recent tracks list.

    Args:
        live: Tracks from the current poll, most recent first. The
              now-playing "prev" slot supplies zero or one track.
        history: Store read for up to `api_limit` records.
        api_limit: Number of history records to consider.
        output_limit: Maximum length of the result.
        now: Reference time for ordering; defaults to the current time.

    Returns:
        At most `output_limit` tracks, newest first, unique on
        (title, artist). Live items win over history items for the same
        pair. Ties keep input order.
    """
    if now is None:
        now = utc_now()

    merged: list[Track] = []
    seen: set[tuple[str, str]] = set()

    def _append_unique(tracks: Iterable[Track]) -> None:
        for track in tracks:
            if track.is_presenter_segment or track.identity_key in seen:
                continue
            seen.add(track.identity_key)
            merged.append(track)

    _append_unique(live)
    live_count = len(merged)
    _append_unique(history.fetch_recent(api_limit))

    # sorted() is stable, so equal keys keep live-before-history order
    merged = sorted(merged, key=lambda t: ordering_key(t, now))

    logger.debug(
        f"Merged {live_count} live + {len(merged) - live_count} history tracks, "
        f"keeping {min(len(merged), output_limit)}"
    )
    return merged[:output_limit]
