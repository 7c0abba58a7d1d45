"""
Radio feed module for onair.

This module talks to the station's JSON API and turns its payloads into
canonical values:
    - client: RadioApiClient (requests) for the three endpoints
    - models: Track, Program, sentinels and the parsed NowPlaying response
    - normalizer: payload -> Track / Program conversion with defaults
    - timefmt: timestamp parsing and relative-time display strings

Usage:
    from onair.feed import RadioApiClient, parse_now_playing

    client = RadioApiClient(config.station)
    now_playing = parse_now_playing(client.now_playing(), utc_now())
"""

from onair.feed.client import RadioApiClient
from onair.feed.models import (
    LOADING_PROGRAM,
    LOADING_TRACK,
    PLACEHOLDER_ARTWORK_URL,
    PRESENTER_TRACK,
    MultiplePrevious,
    NoPrevious,
    NowPlaying,
    Program,
    SinglePrevious,
    Track,
    previous_tracks,
)
from onair.feed.normalizer import (
    normalize_program,
    normalize_track,
    parse_now_playing,
    parse_program_guide,
    parse_recent_tracks,
    select_current_program,
)
from onair.feed.timefmt import (
    UNKNOWN_ORDERING_KEY,
    decode_ordering_key,
    encode_relative,
    format_clock_time,
    parse_timestamp,
    utc_now,
)

__all__ = [
    "RadioApiClient",
    # Models
    "Track",
    "Program",
    "NowPlaying",
    "NoPrevious",
    "SinglePrevious",
    "MultiplePrevious",
    "previous_tracks",
    "LOADING_TRACK",
    "PRESENTER_TRACK",
    "LOADING_PROGRAM",
    "PLACEHOLDER_ARTWORK_URL",
    # Normalizer
    "normalize_track",
    "normalize_program",
    "parse_now_playing",
    "parse_recent_tracks",
    "parse_program_guide",
    "select_current_program",
    # Time formatting
    "parse_timestamp",
    "encode_relative",
    "decode_ordering_key",
    "format_clock_time",
    "utc_now",
    "UNKNOWN_ORDERING_KEY",
]
