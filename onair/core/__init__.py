"""
Core module for onair.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite store of played tracks
    - logger: Logging system with multiple outputs

Usage:
    from onair.core import (
        Config, load_config,
        HistoryDatabase,
        setup_logging, get_logger,
        OnAirError, ConfigError, DatabaseError
    )
"""

from onair.core.config import (
    Config,
    HistoryConfig,
    LoggingConfig,
    PollingConfig,
    StationConfig,
    load_config,
)
from onair.core.database import HistoryDatabase
from onair.core.exceptions import (
    ConfigError,
    DatabaseError,
    FeedError,
    OnAirError,
    PayloadError,
    TrackParseError,
)
from onair.core.logger import (
    get_logger,
    log_poll_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "StationConfig",
    "PollingConfig",
    "HistoryConfig",
    "LoggingConfig",
    "load_config",
    # Database
    "HistoryDatabase",
    # Exceptions
    "OnAirError",
    "ConfigError",
    "DatabaseError",
    "FeedError",
    "PayloadError",
    "TrackParseError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_poll_failure",
    "shutdown_logging",
]
