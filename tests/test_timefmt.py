"""Test timestamp parsing and relative time strings"""

import pytest
from datetime import datetime, timedelta, timezone

from onair.feed.timefmt import (
    UNKNOWN_ORDERING_KEY,
    decode_ordering_key,
    encode_relative,
    format_clock_time,
    parse_timestamp,
)

from conftest import NOW


class TestParseTimestamp:
    """Test API timestamp parsing"""

    def test_utc_designator(self):
        """Test trailing Z is read as UTC"""
        assert parse_timestamp("2030-01-01T00:00:10Z") == datetime(2030, 1, 1, 0, 0, 10, tzinfo=timezone.utc)

    def test_offsets(self):
        """Test both colon and compact offsets"""
        expected = datetime(2025, 3, 29, 8, 4, 11, tzinfo=timezone.utc)
        assert parse_timestamp("2025-03-29T19:04:11+11:00") == expected
        assert parse_timestamp("2025-03-29T19:04:11+1100") == expected

    def test_fractional_seconds(self):
        """Test fractions, including ones longer than microseconds"""
        parsed = parse_timestamp("2025-03-29T19:04:11.123+11:00")
        assert parsed.microsecond == 123000

        parsed = parse_timestamp("2025-03-29T19:04:11.123456789Z")
        assert parsed.microsecond == 123456

    def test_naive_is_utc(self):
        """Test timestamps without offset are taken as UTC"""
        parsed = parse_timestamp("2030-01-01T00:00:00")
        assert parsed == NOW
        assert parsed.tzinfo is not None

    def test_unparsable(self):
        """Test garbage and non-strings give None"""
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(1234567890) is None


class TestEncodeRelative:
    """Test relative display strings"""

    @pytest.mark.parametrize("seconds, expected", [
        (0, "Just now"),
        (59, "Just now"),
        (60, "1m ago"),
        (12 * 60 + 30, "12m ago"),
        (3599, "59m ago"),
        (3600, "1h ago"),
        (3 * 3600 + 59 * 60, "3h ago"),
        (86399, "23h ago"),
    ])
    def test_thresholds(self, seconds, expected):
        """Test half-open thresholds on whole seconds"""
        assert encode_relative(NOW - timedelta(seconds=seconds), NOW) == expected

    def test_older_than_a_day_uses_clock_time(self):
        """Test a play over 24h ago renders as HH:MM"""
        played = datetime(2029, 12, 30, 19, 4, tzinfo=timezone.utc)
        assert encode_relative(played, NOW, tz=timezone.utc) == "19:04"

    def test_future_is_just_now(self):
        """Test clock skew does not produce negative ages"""
        assert encode_relative(NOW + timedelta(minutes=5), NOW) == "Just now"


class TestDecodeOrderingKey:
    """Test recovering minutes-ago from display strings"""

    def test_recent_forms(self):
        assert decode_ordering_key("Just now") == 0
        assert decode_ordering_key("Now") == 0
        assert decode_ordering_key("12m ago") == 12
        assert decode_ordering_key("3h ago") == 180

    def test_unknown_forms(self):
        """Test clock times and garbage sort last"""
        assert decode_ordering_key("19:04") == UNKNOWN_ORDERING_KEY
        assert decode_ordering_key("a while ago") == UNKNOWN_ORDERING_KEY
        assert decode_ordering_key("") == UNKNOWN_ORDERING_KEY

    def test_encoded_values_decode_in_order(self):
        """Test older plays always get larger keys"""
        ages = [0, 30, 90, 600, 3599, 3600, 7300, 86399]
        keys = [decode_ordering_key(encode_relative(NOW - timedelta(seconds=a), NOW)) for a in ages]
        assert keys == sorted(keys)
        assert all(k < UNKNOWN_ORDERING_KEY for k in keys)


class TestFormatClockTime:
    """Test 12-hour program times"""

    def test_format(self):
        assert format_clock_time(datetime(2030, 1, 1, 19, 30, tzinfo=timezone.utc), tz=timezone.utc) == "7:30 PM"
        assert format_clock_time(datetime(2030, 1, 1, 0, 5, tzinfo=timezone.utc), tz=timezone.utc) == "12:05 AM"
        assert format_clock_time(datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc), tz=timezone.utc) == "12:00 PM"
