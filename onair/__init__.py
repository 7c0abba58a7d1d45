"""
onair: keep a local view of what a radio station is playing.

This package polls a station's now-playing JSON API on the cadence the
server dictates, normalizes the payloads into Track and Program values,
keeps a deduplicated history of played tracks in SQLite, and publishes a
merged "recently played" list.

Architecture:
    feed/   - HTTP client, payload normalization, display time strings
    sync/   - History store, reconciliation, poll scheduling, controller
    core/   - Configuration, database, logging, exceptions
    cli.py  - Command-line interface

Usage:
    Command Line:
        onair now
        onair watch
        onair history --limit 20
        onair prune --days 7

    Python API:
        from onair.core import load_config, HistoryDatabase, setup_logging
        from onair.feed import RadioApiClient
        from onair.sync import HistoryStore, SyncController

        config = load_config()
        setup_logging(config.logging.directory)
        store = HistoryStore(HistoryDatabase(config.history.database))

        with SyncController(RadioApiClient(config.station), store, config) as controller:
            controller.subscribe(lambda snapshot: print(snapshot.track.title))

Dependencies:
    - requests: HTTP client
    - rich-click / rich: CLI and terminal rendering
    - tqdm: Console logging that coexists with live output
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "onair"
__license__ = "MIT"

# Convenience imports for common usage
from onair.core import (
    Config,
    ConfigError,
    DatabaseError,
    FeedError,
    HistoryDatabase,
    OnAirError,
    PayloadError,
    get_logger,
    load_config,
    setup_logging,
)
from onair.feed import Program, RadioApiClient, Track
from onair.sync import HistoryStore, SyncController, SyncSnapshot

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "HistoryDatabase",
    "setup_logging",
    "get_logger",
    # Exceptions
    "OnAirError",
    "ConfigError",
    "DatabaseError",
    "FeedError",
    "PayloadError",
    # Models
    "Track",
    "Program",
    "RadioApiClient",
    # Sync
    "HistoryStore",
    "SyncController",
    "SyncSnapshot",
]
