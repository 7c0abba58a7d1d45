"""
Update contexts for published state.

Network responses complete on timer threads, but every mutation of the
controller's published state, and every listener notification, runs on
one update context so observers never see a half-applied update.

    SerialDispatcher     single worker thread (long-running controller)
    ImmediateDispatcher  runs the job inline on the caller's thread
                         (one-shot CLI commands and tests)
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol

from onair.core.logger import get_logger

logger = get_logger(__name__)


class Dispatcher(Protocol):
    def submit(self, job: Callable[[], None]) -> None: ...

    def shutdown(self, wait: bool = True) -> None: ...


class SerialDispatcher:
    """
    Runs submitted jobs one at a time, in submission order.

    Jobs submitted after shutdown() are dropped: a timer thread may still
    be finishing a fetch while the controller closes.
    """

    def __init__(self, name: str = "onair-update") -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, job: Callable[[], None]) -> None:
        with self._lock:
            if self._closed:
                logger.debug("Dropping update job submitted after shutdown")
                return
            self._executor.submit(self._run, job)

    @staticmethod
    def _run(job: Callable[[], None]) -> None:
        # Exceptions in an executor job are otherwise stored on an unread Future
        try:
            job()
        except Exception:
            logger.exception("Update job failed")

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)


class ImmediateDispatcher:
    """Runs submitted jobs synchronously."""

    def submit(self, job: Callable[[], None]) -> None:
        try:
            job()
        except Exception:
            logger.exception("Update job failed")

    def shutdown(self, wait: bool = True) -> None:
        pass
