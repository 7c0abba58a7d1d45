"""
Sync module for onair.

This module keeps the local now-playing view in step with the station:
    - history: HistoryStore, the played-track repository contract
    - reconcile: merge() of live results with stored history
    - scheduler: PollScheduler, adaptive single-timer polling per feed
    - dispatch: update contexts for published state
    - controller: SyncController facade and SyncSnapshot

Usage:
    from onair.sync import HistoryStore, SyncController

    store = HistoryStore(HistoryDatabase(config.history.database))
    with SyncController(RadioApiClient(config.station), store, config) as controller:
        controller.subscribe(render)
"""

from onair.sync.controller import SyncController, SyncSnapshot, describe_error
from onair.sync.dispatch import ImmediateDispatcher, SerialDispatcher
from onair.sync.history import HistoryStore
from onair.sync.reconcile import merge, ordering_key
from onair.sync.scheduler import PollResult, PollScheduler, SchedulerState

__all__ = [
    "SyncController",
    "SyncSnapshot",
    "describe_error",
    "ImmediateDispatcher",
    "SerialDispatcher",
    "HistoryStore",
    "merge",
    "ordering_key",
    "PollResult",
    "PollScheduler",
    "SchedulerState",
]
