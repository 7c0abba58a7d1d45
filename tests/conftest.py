"""Test configuration and fixtures"""

import pytest
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from onair.core.config import (
    Config,
    HistoryConfig,
    LoggingConfig,
    PollingConfig,
    StationConfig,
)
from onair.core.database import HistoryDatabase
from onair.sync.history import HistoryStore


NOW = datetime(2030, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

NOW_PLAYING_URL = "https://radio.test/api/v1/plays/station/now.json"
RECENT_URL = "https://radio.test/api/v1/plays/search.json"
PROGRAM_URL = "https://radio.test/api/v1/programitems/search.json"


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeTimer:
    """Timer stand-in that fires only when the test says so"""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        self.callback()


class FakeTimerFactory:
    """Timer factory recording every timer a scheduler creates"""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_pending(self):
        """Fire the single pending timer"""
        pending = self.pending
        assert len(pending) == 1, f"expected one pending timer, got {len(pending)}"
        pending[0].fire()


def make_track_record(title, artist, played_time=None, arid=None, album="Test Album"):
    """Upstream track record in the shape the radio API returns"""
    record = {
        "recording": {
            "title": title,
            "artists": [{"name": artist, "type": "primary"}],
        },
        "release": {
            "title": album,
            "artwork": [{
                "sizes": [
                    {"url": f"https://img.test/{title}-100.jpg", "width": 100, "aspect_ratio": "1x1"},
                    {"url": f"https://img.test/{title}-580.jpg", "width": 580, "aspect_ratio": "1x1"},
                ]
            }],
        },
    }
    if played_time is not None:
        record["played_time"] = played_time
    if arid is not None:
        record["arid"] = arid
    return record


def iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock():
    """Clock fixed at 2030-01-01T00:00:00Z"""
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def config(temp_dir):
    """Full configuration pointing at test URLs and the temp directory"""
    return Config(
        station=StationConfig(
            name="test fm",
            now_playing_url=NOW_PLAYING_URL,
            recent_url=RECENT_URL,
            program_url=PROGRAM_URL,
            request_timeout=5.0,
        ),
        polling=PollingConfig(
            fallback_interval=30.0,
            min_delay=2.0,
            buffer=1.0,
            program_interval=3600.0,
        ),
        history=HistoryConfig(
            database=temp_dir / "history.db",
            api_limit=10,
            recent_limit=5,
            retention_days=7,
        ),
        logging=LoggingConfig(directory=temp_dir / "logs"),
    )


@pytest.fixture
def database(temp_dir):
    db = HistoryDatabase(temp_dir / "history.db")
    yield db
    db.close()


@pytest.fixture
def store(database, clock):
    """History store on a real database, sharing the fake clock"""
    return HistoryStore(database, clock=clock)


@pytest.fixture
def sample_now_playing():
    """Now playing response with a current and a previous track"""
    return {
        "now": make_track_record(
            "Song A", "Artist A",
            played_time=iso(NOW - timedelta(minutes=1)),
            arid="play-a",
        ),
        "prev": make_track_record(
            "Song B", "Artist B",
            played_time=iso(NOW - timedelta(minutes=4)),
            arid="play-b",
        ),
        "next_updated": iso(NOW + timedelta(seconds=10)),
    }


@pytest.fixture
def sample_program_guide():
    """Program guide with one past and one current program"""
    return {
        "items": [
            {
                "title": "Breakfast",
                "hosts": [{"name": "Host One"}],
                "images": [{"url": "https://img.test/breakfast.jpg"}],
                "from": iso(NOW - timedelta(hours=3)),
                "to": iso(NOW - timedelta(hours=1)),
            },
            {
                "title": "Drive",
                "hosts": [{"name": "Host Two"}, {"name": "Host Three"}],
                "description": "Afternoon show",
                "from": iso(NOW - timedelta(hours=1)),
                "to": iso(NOW + timedelta(hours=2)),
            },
        ]
    }
