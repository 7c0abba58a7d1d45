"""Test the command-line interface"""

import pytest
from click.testing import CliRunner
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from onair import __version__
from onair.cli import cli
from onair.core.database import HistoryDatabase
from onair.feed.models import Track

from conftest import make_track_record


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.yaml"
    path.write_text(
        "station:\n"
        "  name: \"test fm\"\n"
        "  program_url: null\n"
        "history:\n"
        f"  database: \"{temp_dir / 'data' / 'history.db'}\"\n"
        "logging:\n"
        f"  directory: \"{temp_dir / 'logs'}\"\n",
        encoding="utf-8"
    )
    return path


class TestCli:
    """Test commands and exit codes"""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_command_shows_help(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_bad_config_exits_1(self, runner, temp_dir):
        result = runner.invoke(cli, ["--config", str(temp_dir / "missing.yaml"), "history"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_history_empty(self, runner, config_file, temp_dir):
        """Test the database directory is created on first use"""
        result = runner.invoke(cli, ["--config", str(config_file), "history"])

        assert result.exit_code == 0
        assert "History is empty" in result.output
        assert (temp_dir / "data" / "history.db").exists()

    def test_history_and_prune(self, runner, config_file, temp_dir):
        (temp_dir / "data").mkdir()
        db = HistoryDatabase(temp_dir / "data" / "history.db")
        now = datetime.now(timezone.utc)
        db.insert_played_track(Track(id="1", title="Old Song", artist="X").to_record(), now - timedelta(days=10))
        db.insert_played_track(Track(id="2", title="New Song", artist="Y").to_record(), now)
        db.close()

        result = runner.invoke(cli, ["--config", str(config_file), "history", "--limit", "5"])
        assert result.exit_code == 0
        assert "New Song" in result.output
        assert "Old Song" in result.output

        result = runner.invoke(cli, ["--config", str(config_file), "prune", "--days", "7"])
        assert result.exit_code == 0
        assert "Removed 1 tracks" in result.output

    def test_now(self, runner, config_file):
        """Test a one-shot fetch prints the current track"""
        with patch("onair.cli.RadioApiClient") as client_class:
            client = client_class.return_value
            client.now_playing.return_value = {
                "now": make_track_record("Song A", "Artist A"),
                "prev": make_track_record("Song B", "Artist B", arid="b"),
            }
            client.recent_plays.return_value = {"items": []}

            result = runner.invoke(cli, ["--config", str(config_file), "now"])

        assert result.exit_code == 0
        assert "Song A" in result.output
        assert "Song B" in result.output
        client.close.assert_called_once()
