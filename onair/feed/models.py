"""
Data models for radio feed entities.

This module defines immutable dataclasses representing what the station
is playing: tracks, programs and a parsed now-playing response.

Design Decisions:
    - All dataclasses are frozen (immutable); a new value is built on
      every poll and published as a whole
    - Display strings (played_at_display, start/end times) are computed
      at parse time, the absolute timestamps travel alongside them
    - Sentinel values stand in for "not loaded yet" and "presenter on air"
    - The "prev" slot of a now-playing response is modelled as a small
      tagged union (NoPrevious / SinglePrevious / MultiplePrevious)
      instead of being shape-sniffed downstream

Usage:
    from onair.feed.models import Track, PRESENTER_TRACK

    if track.is_presenter_segment:
        print("Live presenter segment")
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


PLACEHOLDER_ARTWORK_URL = "https://www.abc.net.au/cm/rimage/11948498-1x1-large.png?v=2"


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of a played or playing track.

    Attributes:
        id: Stable identity of this play, independent of display strings.
            Taken from the upstream play id when available.
            Example: "9a8b7c6d-..."

        title: Recording title.
               Example: "Bohemian Rhapsody"

        artist: Primary artist name.
                Example: "Queen"

        album: Release title, empty when unknown.

        artwork_url: Square artwork at least 400px wide, or
                     PLACEHOLDER_ARTWORK_URL.

        played_at_display: Relative time string ("Now", "Just now",
                           "12m ago", "3h ago", "HH:MM").

        is_presenter_segment: True when the station is in a live presenter
                              break rather than playing a song.

        played_at: Absolute play time when known. Carried so that ordering
                   does not depend only on the lossy display string.
    """

    id: str
    title: str
    artist: str
    album: str = ""
    artwork_url: str = PLACEHOLDER_ARTWORK_URL
    played_at_display: str = "Now"
    is_presenter_segment: bool = False
    played_at: datetime | None = None

    @property
    def identity_key(self) -> tuple[str, str]:
        """(title, artist) pair used to deduplicate across sources."""
        return (self.title, self.artist)

    def to_record(self) -> dict[str, str]:
        """Convert to the dict stored by the history database."""
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "artwork_url": self.artwork_url,
        }


LOADING_TRACK = Track(
    id="loading",
    title="Loading...",
    artist="triple j",
    played_at_display="Now",
    is_presenter_segment=False,
)

PRESENTER_TRACK = Track(
    id="presenter-segment",
    title="On Air",
    artist="triple j",
    played_at_display="Now",
    is_presenter_segment=True,
)


@dataclass(frozen=True)
class Program:
    """
    Immutable representation of a program guide entry.

    Attributes:
        title: Program title (required upstream).
        presenter: First host name, empty when unknown.
        image_url: First program image, or PLACEHOLDER_ARTWORK_URL.
        start_time_display: 12-hour start time ("7:00 PM"), empty when unknown.
        end_time_display: 12-hour end time, empty when unknown.
        description: Free-text description, empty when unknown.
        starts_at: Absolute start, used to pick the current program.
        ends_at: Absolute end.
    """

    title: str
    presenter: str = ""
    image_url: str = PLACEHOLDER_ARTWORK_URL
    start_time_display: str = ""
    end_time_display: str = ""
    description: str = ""
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    def is_on_air(self, now: datetime) -> bool:
        if self.starts_at is None or self.ends_at is None:
            return False
        return self.starts_at <= now < self.ends_at


LOADING_PROGRAM = Program(
    title="Loading...",
    presenter="triple j",
    description="Loading program information...",
)


@dataclass(frozen=True)
class NoPrevious:
    """The response had no "prev" slot."""


@dataclass(frozen=True)
class SinglePrevious:
    """
    "prev" was a single object.

    Attributes:
        track: The parsed track, or None if the record was unusable.
    """
    track: Track | None


@dataclass(frozen=True)
class MultiplePrevious:
    """"prev" was an array; unusable records are already dropped."""
    tracks: tuple[Track, ...] = field(default_factory=tuple)


PreviousSlot = Union[NoPrevious, SinglePrevious, MultiplePrevious]


def previous_tracks(slot: PreviousSlot) -> list[Track]:
    """Flatten a previous slot into a (possibly empty) list of tracks."""
    if isinstance(slot, SinglePrevious):
        return [slot.track] if slot.track is not None else []
    if isinstance(slot, MultiplePrevious):
        return list(slot.tracks)
    return []


@dataclass(frozen=True)
class NowPlaying:
    """
    Parsed now-playing response.

    Attributes:
        current: PRESENTER_TRACK for an absent or empty "now" slot, the
                 normalized track otherwise, or None when "now" was present
                 but unusable (current state should be left as is).
        previous: The "prev" slot.
        next_update: Server-declared time of the next change, if given.
    """
    current: Track | None
    previous: PreviousSlot
    next_update: datetime | None = None
