"""Test configuration loading"""

import pytest
from pathlib import Path

from onair.core.config import (
    DEFAULT_NOW_PLAYING_URL,
    DEFAULT_PROGRAM_URL,
    DEFAULT_RECENT_URL,
    load_config,
)
from onair.core.exceptions import ConfigError


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test config.yaml loading and validation"""

    def test_defaults_without_file(self, temp_dir, monkeypatch):
        """Test a missing default config.yaml gives defaults"""
        monkeypatch.chdir(temp_dir)
        config = load_config()

        assert config.station.now_playing_url == DEFAULT_NOW_PLAYING_URL
        assert config.station.recent_url == DEFAULT_RECENT_URL
        assert config.station.program_url == DEFAULT_PROGRAM_URL
        assert config.polling.fallback_interval == 30.0
        assert config.polling.min_delay == 2.0
        assert config.polling.buffer == 1.0
        assert config.history.api_limit == 10
        assert config.history.recent_limit == 5
        assert config.history.retention_days == 7
        assert config.history.database.is_absolute()

    def test_reads_cwd_file(self, temp_dir, monkeypatch):
        _write(temp_dir / "config.yaml", "polling:\n  fallback_interval: 45\n")
        monkeypatch.chdir(temp_dir)

        assert load_config().polling.fallback_interval == 45.0

    def test_explicit_missing_file(self, temp_dir):
        with pytest.raises(ConfigError) as exc:
            load_config(temp_dir / "nope.yaml")
        assert "not found" in exc.value.message

    def test_empty_file(self, temp_dir):
        config = load_config(_write(temp_dir / "c.yaml", ""))
        assert config.station.name == "triple j"

    def test_invalid_yaml(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(_write(temp_dir / "c.yaml", "station: [unclosed\n"))

    def test_not_a_dictionary(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(_write(temp_dir / "c.yaml", "- a\n- b\n"))

    def test_full_file(self, temp_dir):
        config = load_config(_write(temp_dir / "c.yaml", """
station:
  name: "test fm"
  now_playing_url: "https://radio.test/now.json"
  recent_url: null
  program_url: null
  request_timeout: 3
polling:
  min_delay: 5
history:
  database: "~/radio/history.db"
  recent_limit: 8
logging:
  directory: "~/radio/logs"
"""))

        assert config.station.name == "test fm"
        assert config.station.now_playing_url == "https://radio.test/now.json"
        assert config.station.recent_url is None
        assert config.station.program_url is None
        assert config.station.request_timeout == 3.0
        assert config.polling.min_delay == 5.0
        assert config.history.recent_limit == 8
        assert config.history.database == Path("~/radio/history.db").expanduser().resolve()
        assert config.logging.directory.name == "logs"

    @pytest.mark.parametrize("text", [
        "station:\n  now_playing_url: null\n",
        "station:\n  now_playing_url: ftp://radio.test/now.json\n",
        "station:\n  recent_url: ''\n",
        "polling:\n  fallback_interval: -1\n",
        "polling:\n  min_delay: true\n",
        "polling:\n  buffer: soon\n",
        "history:\n  api_limit: 0\n",
        "history:\n  recent_limit: 2.5\n",
        "history: [1, 2]\n",
    ])
    def test_invalid_values(self, temp_dir, text):
        with pytest.raises(ConfigError):
            load_config(_write(temp_dir / "c.yaml", text))
