"""
Normalization of radio API payloads into Track and Program values.

The upstream JSON is heterogeneous and mostly optional. Every field
except a track's nested "recording" object degrades to a default:

    title        recording.title              -> "Unknown Track"
    artist       first recording.artists[] of type "primary" -> "Unknown Artist"
    album        release.title                -> ""
    artwork      release.artwork[0].sizes[], first 1x1 at >= 400px
                                              -> PLACEHOLDER_ARTWORK_URL
    played time  played_time                  -> "Just now"

A record without "recording" raises TrackParseError and is skipped by
the list parsers. An absent or empty "now" slot is not an error: it
means a presenter is on air.

Program records need a "title"; records without one are dropped.
"""

import uuid
from datetime import datetime
from typing import Any

from onair.core.exceptions import PayloadError, TrackParseError
from onair.core.logger import get_logger
from onair.feed.models import (
    PLACEHOLDER_ARTWORK_URL,
    PRESENTER_TRACK,
    MultiplePrevious,
    NoPrevious,
    NowPlaying,
    PreviousSlot,
    Program,
    SinglePrevious,
    Track,
)
from onair.feed.timefmt import JUST_NOW, NOW, encode_relative, format_clock_time, parse_timestamp

logger = get_logger(__name__)


UNKNOWN_TRACK = "Unknown Track"
UNKNOWN_ARTIST = "Unknown Artist"
PRIMARY_ARTIST_TYPE = "primary"
ARTWORK_ASPECT_RATIO = "1x1"
ARTWORK_MIN_WIDTH = 400


def _str_field(data: dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return value if isinstance(value, str) else default


def _dict_field(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    return value if isinstance(value, dict) else None


def _list_field(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    return value if isinstance(value, list) else []


def is_empty_slot(value: Any) -> bool:
    """True for an absent, null or empty "now" slot (presenter on air)."""
    return value is None or (isinstance(value, (dict, list)) and not value)


def _primary_artist(recording: dict[str, Any]) -> str:
    for artist in _list_field(recording, "artists"):
        if not isinstance(artist, dict):
            continue
        name = artist.get("name")
        if artist.get("type") == PRIMARY_ARTIST_TYPE and isinstance(name, str):
            return name
    return UNKNOWN_ARTIST


def _artwork_url(release: dict[str, Any] | None) -> str:
    """First square size variant at least ARTWORK_MIN_WIDTH wide."""
    if release is None:
        return PLACEHOLDER_ARTWORK_URL

    artwork = _list_field(release, "artwork")
    if not artwork or not isinstance(artwork[0], dict):
        return PLACEHOLDER_ARTWORK_URL

    for size in _list_field(artwork[0], "sizes"):
        if not isinstance(size, dict):
            continue
        width = size.get("width")
        url = size.get("url")
        if (
            size.get("aspect_ratio") == ARTWORK_ASPECT_RATIO
            and isinstance(width, int) and not isinstance(width, bool)
            and width >= ARTWORK_MIN_WIDTH
            and isinstance(url, str) and url
        ):
            return url

    return PLACEHOLDER_ARTWORK_URL


def _track_id(raw: dict[str, Any], recording: dict[str, Any], title: str, artist: str) -> str:
    """
    Stable identity for a play.

    Prefers the play's own arid, then the recording's. Without either,
    a UUID5 over title, artist and played_time gives the same id for the
    same play on every poll.
    """
    for source in (raw, recording):
        arid = source.get("arid")
        if isinstance(arid, str) and arid:
            return arid

    played_time = _str_field(raw, "played_time")
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{title}|{artist}|{played_time}"))


def normalize_track(raw: Any, is_now_playing: bool, now: datetime) -> Track:
    """
    Build a Track from one upstream track record.

    Args:
        raw: A "now", "prev" or "items[]" record.
        is_now_playing: True for the "now" slot; its display is "Now".
        now: Reference time for the relative display string.

    Returns:
        The normalized Track. Never the presenter sentinel.

    Raises:
        TrackParseError: If the record is not an object or has no
                         "recording" object.
    """
    if not isinstance(raw, dict):
        raise TrackParseError(
            "Track record is not an object",
            details={"type": type(raw).__name__}
        )

    recording = _dict_field(raw, "recording")
    if recording is None:
        raise TrackParseError(
            "Track record has no recording",
            details={"keys": sorted(raw.keys())}
        )

    title = _str_field(recording, "title", UNKNOWN_TRACK)
    artist = _primary_artist(recording)
    release = _dict_field(raw, "release")

    played_at = parse_timestamp(raw.get("played_time"))
    if is_now_playing:
        display = NOW
    elif played_at is not None:
        display = encode_relative(played_at, now)
    else:
        display = JUST_NOW

    return Track(
        id=_track_id(raw, recording, title, artist),
        title=title,
        artist=artist,
        album=_str_field(release, "title") if release is not None else "",
        artwork_url=_artwork_url(release),
        played_at_display=display,
        is_presenter_segment=False,
        played_at=played_at,
    )


def _require_object(payload: Any, feed: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise PayloadError(
            f"{feed} response is not a JSON object",
            details={"type": type(payload).__name__}
        )
    return payload


def _parse_previous(prev: Any, now: datetime) -> PreviousSlot:
    if prev is None:
        return NoPrevious()

    if isinstance(prev, list):
        tracks = []
        for item in prev:
            try:
                tracks.append(normalize_track(item, is_now_playing=False, now=now))
            except TrackParseError as e:
                logger.debug(f"Skipping previous track: {e.message}")
        return MultiplePrevious(tuple(tracks))

    if isinstance(prev, dict):
        if not prev:
            return SinglePrevious(None)
        try:
            return SinglePrevious(normalize_track(prev, is_now_playing=False, now=now))
        except TrackParseError as e:
            logger.debug(f"Skipping previous track: {e.message}")
            return SinglePrevious(None)

    logger.warning(f"Ignoring 'prev' of unexpected type {type(prev).__name__}")
    return NoPrevious()


def parse_now_playing(payload: Any, now: datetime) -> NowPlaying:
    """
    Parse a now-playing response.

    Args:
        payload: Decoded JSON body.
        now: Reference time for relative display strings.

    Returns:
        NowPlaying with the presenter sentinel for an empty "now", the
        tagged previous slot and the next_updated hint (None when absent
        or unparsable).

    Raises:
        PayloadError: If the body is not a JSON object.
    """
    payload = _require_object(payload, "Now playing")

    now_slot = payload.get("now")
    current: Track | None
    if is_empty_slot(now_slot):
        current = PRESENTER_TRACK
    else:
        try:
            current = normalize_track(now_slot, is_now_playing=True, now=now)
        except TrackParseError as e:
            logger.warning(f"Unusable 'now' record, keeping current track: {e.message}")
            current = None

    return NowPlaying(
        current=current,
        previous=_parse_previous(payload.get("prev"), now),
        next_update=parse_timestamp(payload.get("next_updated")),
    )


def parse_recent_tracks(payload: Any, now: datetime) -> list[Track]:
    """
    Parse a recent plays search response ({"items": [...]}).

    Unusable items are skipped. A missing "items" key is an empty result.

    Raises:
        PayloadError: If the body is not an object or "items" is not a list.
    """
    payload = _require_object(payload, "Recent tracks")

    items = payload.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise PayloadError(
            "Recent tracks 'items' is not a list",
            details={"type": type(items).__name__}
        )

    tracks = []
    for item in items:
        try:
            tracks.append(normalize_track(item, is_now_playing=False, now=now))
        except TrackParseError as e:
            logger.debug(f"Skipping recent track: {e.message}")
    return tracks


def normalize_program(raw: Any) -> Program:
    """
    Build a Program from one program guide record.

    Raises:
        PayloadError: If the record is not an object or has no title.
    """
    if not isinstance(raw, dict):
        raise PayloadError(
            "Program record is not an object",
            details={"type": type(raw).__name__}
        )

    title = raw.get("title")
    if not isinstance(title, str) or not title:
        raise PayloadError(
            "Program record has no title",
            details={"keys": sorted(raw.keys())}
        )

    hosts = _list_field(raw, "hosts")
    presenter = _str_field(hosts[0], "name") if hosts and isinstance(hosts[0], dict) else ""

    images = _list_field(raw, "images")
    image_url = _str_field(images[0], "url") if images and isinstance(images[0], dict) else ""

    starts_at = parse_timestamp(raw.get("from"))
    ends_at = parse_timestamp(raw.get("to"))

    return Program(
        title=title,
        presenter=presenter,
        image_url=image_url or PLACEHOLDER_ARTWORK_URL,
        start_time_display=format_clock_time(starts_at) if starts_at else "",
        end_time_display=format_clock_time(ends_at) if ends_at else "",
        description=_str_field(raw, "description"),
        starts_at=starts_at,
        ends_at=ends_at,
    )


def parse_program_guide(payload: Any) -> list[Program]:
    """
    Parse a program guide response ({"items": [...]}).

    Records without a title are dropped.

    Raises:
        PayloadError: If the body is not an object or "items" is not a list.
    """
    payload = _require_object(payload, "Program guide")

    items = payload.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise PayloadError(
            "Program guide 'items' is not a list",
            details={"type": type(items).__name__}
        )

    programs = []
    for item in items:
        try:
            programs.append(normalize_program(item))
        except PayloadError as e:
            logger.debug(f"Skipping program: {e.message}")
    return programs


def select_current_program(programs: list[Program], now: datetime) -> Program | None:
    """The program on air at `now`, else the first listed, else None."""
    for program in programs:
        if program.is_on_air(now):
            return program
    return programs[0] if programs else None
