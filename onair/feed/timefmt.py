"""
Timestamp parsing and relative-time display strings.

The radio API reports absolute timestamps, but tracks are shown (and, for
history reconciliation, sorted) through short display strings:

    elapsed < 60s       "Just now"
    elapsed < 1h        "12m ago"
    elapsed < 24h       "3h ago"
    otherwise           "HH:MM" (local wall clock of the play)

decode_ordering_key() recovers minutes-ago from such a string. The HH:MM
form does not say which day it refers to, so it decodes to
UNKNOWN_ORDERING_KEY and sorts after everything else.
"""

import re
from datetime import datetime, timezone, tzinfo


JUST_NOW = "Just now"
NOW = "Now"

# Larger than any decodable key (23h ago = 1380 minutes)
UNKNOWN_ORDERING_KEY = 1_000_000

_MINUTES_AGO_RE = re.compile(r"^(\d+)m ago$")
_HOURS_AGO_RE = re.compile(r"^(\d+)h ago$")
_LONG_FRACTION_RE = re.compile(r"(\.\d{6})\d+")

# Tried in order. %z accepts "Z", "+11:00" and "+1100", which also covers
# the legacy yyyy-MM-dd'T'HH:mm:ssZ form.
TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: object) -> datetime | None:
    """
    Parse an API timestamp into an aware datetime.

    Args:
        value: Raw field value. Anything that is not a non-empty string
               yields None.

    Returns:
        Aware datetime, or None if no known format matches. Timestamps
        without an offset are taken as UTC.

    Example:
        parse_timestamp("2030-01-01T00:00:10Z")
        parse_timestamp("2025-03-29T19:04:11.123+11:00")
        parse_timestamp("2025-03-29T19:04:11+1100")
    """
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    # strptime's %f takes at most 6 digits
    text = _LONG_FRACTION_RE.sub(r"\1", text)

    for fmt in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    return None


def encode_relative(absolute: datetime, now: datetime, tz: tzinfo | None = None) -> str:
    """
    Render how long ago `absolute` was, relative to `now`.

    Thresholds are half-open and compare whole seconds elapsed. Times in
    the future (clock skew) render as "Just now".

    Args:
        absolute: Aware datetime of the event.
        now: Aware datetime to measure from.
        tz: Zone used for the HH:MM form; None means the local zone.
    """
    elapsed = int((now - absolute).total_seconds())

    if elapsed < 60:
        return JUST_NOW
    if elapsed < 3600:
        return f"{elapsed // 60}m ago"
    if elapsed < 86400:
        return f"{elapsed // 3600}h ago"
    return absolute.astimezone(tz).strftime("%H:%M")


def decode_ordering_key(display: str) -> int:
    """
    Recover an approximate minutes-ago value from a display string.

    Returns:
        0 for "Just now" / "Now", n for "{n}m ago", n * 60 for "{n}h ago",
        UNKNOWN_ORDERING_KEY for anything else.
    """
    if display in (JUST_NOW, NOW):
        return 0

    match = _MINUTES_AGO_RE.match(display)
    if match:
        return int(match.group(1))

    match = _HOURS_AGO_RE.match(display)
    if match:
        return int(match.group(1)) * 60

    return UNKNOWN_ORDERING_KEY


def format_clock_time(absolute: datetime, tz: tzinfo | None = None) -> str:
    """Render a 12-hour clock time such as "7:30 PM"."""
    local = absolute.astimezone(tz)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"
