"""
Configuration management for onair.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Station feed URLs (now playing, recent plays search, program guide)
    - Polling cadence (fallback retry interval, rescheduling margins)
    - History database location and list sizes
    - Log directory

Configuration File Location:
    By default config.yaml is read from the current working directory.
    Unlike an explicit --config path, a missing default file is not an
    error: every field has a default.

Example config.yaml:
    station:
      name: "triple j"
      now_playing_url: "https://music.abcradio.net.au/api/v1/plays/triplej/now.json?tz=Australia%2FSydney"
      recent_url: "https://music.abcradio.net.au/api/v1/plays/search.json?station=triplej&order=desc"
      program_url: null  # disables the program guide feed

    polling:
      fallback_interval: 30
      min_delay: 2
      buffer: 1
      program_interval: 3600

    history:
      database: "~/.onair/history.db"
      api_limit: 10
      recent_limit: 5
      retention_days: 7

    logging:
      directory: "~/.onair/logs"
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from onair.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_STATION_NAME = "triple j"
DEFAULT_NOW_PLAYING_URL = (
    "https://music.abcradio.net.au/api/v1/plays/triplej/now.json?tz=Australia%2FSydney"
)
DEFAULT_RECENT_URL = (
    "https://music.abcradio.net.au/api/v1/plays/search.json?station=triplej&order=desc"
)
DEFAULT_PROGRAM_URL = (
    "https://program.abcradio.net.au/api/v1/programitems/search.json?service=triplej&order=asc"
)
DEFAULT_DATA_DIR = "~/.onair"


@dataclass(frozen=True)
class StationConfig:
    """
    Upstream feed configuration.

    Attributes:
        name: Display name of the station, used in CLI output.
        now_playing_url: Endpoint reporting the current and previous play.
        recent_url: Recent plays search endpoint, or None to disable the feed.
        program_url: Program guide endpoint, or None to disable the feed.
        request_timeout: HTTP timeout in seconds for every request.
    """
    name: str
    now_playing_url: str
    recent_url: str | None
    program_url: str | None
    request_timeout: float


@dataclass(frozen=True)
class PollingConfig:
    """
    Poll scheduling configuration (all values in seconds).

    Attributes:
        fallback_interval: Retry delay after a failure, or when the server
                           gives no next-update hint. Default: 30.
        min_delay: Lower bound on any adaptive delay, so a stale server
                   timestamp never causes an immediate re-poll. Default: 2.
        buffer: Added to the server's next-update time to absorb
                processing latency. Default: 1.
        program_interval: Fixed cadence of the program guide feed. Default: 3600.
    """
    fallback_interval: float
    min_delay: float
    buffer: float
    program_interval: float


@dataclass(frozen=True)
class HistoryConfig:
    """
    Played-track history configuration.

    Attributes:
        database: Absolute path of the SQLite history database.
        api_limit: How many history records are read for each merge.
        recent_limit: Length of the published recent tracks list.
        retention_days: Age limit applied by the explicit prune command.
    """
    database: Path
    api_limit: int
    recent_limit: int
    retention_days: int


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        directory: Directory receiving the log files.
    """
    directory: Path


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Polling {config.station.now_playing_url}")
        print(f"History in {config.history.database}")
    """
    station: StationConfig
    polling: PollingConfig
    history: HistoryConfig
    logging: LoggingConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory
                     and falls back to defaults when it is absent.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, the file has
                     invalid YAML syntax, or a field has an invalid value.

    Example:
        try:
            config = load_config()
        except ConfigError as e:
            print(f"Configuration error: {e.message}")
            sys.exit(1)
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
        if not config_path.exists():
            return _build_config({})

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return _build_config(raw_config)


def _build_config(raw_config: dict[str, Any]) -> Config:
    return Config(
        station=_parse_station_config(_section(raw_config, "station")),
        polling=_parse_polling_config(_section(raw_config, "polling")),
        history=_parse_history_config(_section(raw_config, "history")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section, treating a missing or null section as empty."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _positive_number(section: dict[str, Any], key: str, default: float, prefix: str) -> float:
    value = section.get(key)
    if value is None:
        return default
    # bool is an int subclass; "true" is not a duration
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{prefix}.{key}' must be a positive number",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return float(value)


def _positive_int(section: dict[str, Any], key: str, default: int, prefix: str) -> int:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            f"'{prefix}.{key}' must be a positive integer",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return value


def _url(section: dict[str, Any], key: str, default: str | None, prefix: str, required: bool) -> str | None:
    """
    Parse a URL field.

    A missing key takes the default. An explicit null disables optional
    feeds; for required feeds it is an error.
    """
    if key not in section:
        return default

    value = section[key]
    if value is None and not required:
        return None

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{prefix}.{key}' must be a non-empty string",
            details={"field": f"{prefix}.{key}"}
        )

    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ConfigError(
            f"'{prefix}.{key}' must be an http(s) URL",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return value


def _parse_station_config(station_section: dict[str, Any]) -> StationConfig:
    """
    Parse and validate the station configuration section.

    Raises:
        ConfigError: If a URL is not an http(s) URL, the now playing URL is
                     null, or the timeout is not positive.
    """
    name = station_section.get("name", DEFAULT_STATION_NAME)
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(
            "'station.name' must be a non-empty string",
            details={"field": "station.name"}
        )

    return StationConfig(
        name=name.strip(),
        now_playing_url=_url(station_section, "now_playing_url", DEFAULT_NOW_PLAYING_URL, "station", True),
        recent_url=_url(station_section, "recent_url", DEFAULT_RECENT_URL, "station", False),
        program_url=_url(station_section, "program_url", DEFAULT_PROGRAM_URL, "station", False),
        request_timeout=_positive_number(station_section, "request_timeout", 10.0, "station"),
    )


def _parse_polling_config(polling_section: dict[str, Any]) -> PollingConfig:
    return PollingConfig(
        fallback_interval=_positive_number(polling_section, "fallback_interval", 30.0, "polling"),
        min_delay=_positive_number(polling_section, "min_delay", 2.0, "polling"),
        buffer=_positive_number(polling_section, "buffer", 1.0, "polling"),
        program_interval=_positive_number(polling_section, "program_interval", 3600.0, "polling"),
    )


def _parse_history_config(history_section: dict[str, Any]) -> HistoryConfig:
    """
    Parse and validate the history configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the parent directory (the CLI does that at startup).
    """
    database = history_section.get("database", f"{DEFAULT_DATA_DIR}/history.db")
    if not isinstance(database, str) or not database.strip():
        raise ConfigError(
            "'history.database' must be a non-empty string",
            details={"field": "history.database"}
        )

    return HistoryConfig(
        database=Path(database.strip()).expanduser().resolve(),
        api_limit=_positive_int(history_section, "api_limit", 10, "history"),
        recent_limit=_positive_int(history_section, "recent_limit", 5, "history"),
        retention_days=_positive_int(history_section, "retention_days", 7, "history"),
    )


def _parse_logging_config(logging_section: dict[str, Any]) -> LoggingConfig:
    directory = logging_section.get("directory", f"{DEFAULT_DATA_DIR}/logs")
    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'logging.directory' must be a non-empty string",
            details={"field": "logging.directory"}
        )
    return LoggingConfig(directory=Path(directory.strip()).expanduser().resolve())
