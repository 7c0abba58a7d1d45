"""
Logging configuration for onair.

Every onair command logs to four places:
    - Console: Coloured, tqdm-compatible output (INFO, or DEBUG with --verbose)
    - log_full_<ts>.log: Complete log of all events (DEBUG and above)
    - log_errors_<ts>.log: Only ERROR and CRITICAL level messages
    - poll_failures_<ts>.log: One entry per failed poll (feed, URL, reason)

Whatever reaches the console also reaches log_full; the other two files are
narrower views of the same stream.

Usage:
    from onair.core.logger import setup_logging, get_logger

    setup_logging(config.logging.directory)
    logger = get_logger(__name__)

    logger.info("Polling started")
    log_poll_failure(logger, "now_playing", url, "Network error: timed out")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# File lines carry the thread name: polls run on timer threads
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(threadName)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"


class Colors:
    """ANSI escape sequences used by ColoredConsoleFormatter."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Console formatter printing the level name in colour.

    Failed polls are WARNING (yellow), so a flaky connection stands out
    from the green INFO lines of saved tracks without looking fatal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to the console through tqdm.write().

    Poll callbacks log from timer threads while the CLI may be drawing a
    status line; tqdm.write() serializes output so lines never interleave.

    Attributes:
        stream: Where records go; stderr keeps stdout free for the CLI tables.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class PollFailureHandler(logging.Handler):
    """
    Custom handler that captures failed polls for the poll failure report.

    This handler listens for log records that carry poll failure
    information and writes them to poll_failures.log in a simple,
    human-readable format:

        2030-01-01 10:00:00 now_playing
        https://music.abcradio.net.au/api/v1/plays/triplej/now.json
        Network error: Read timed out

    The handler looks for specific extra fields in log records:
        - 'poll_failed_feed': The feed name ("now_playing", "recent", "program")
        - 'poll_failed_url': The URL that was requested
        - 'poll_failed_reason': The status message shown to the user

    Only records containing these fields are written to the report.

    Attributes:
        report_path: Path to the poll_failures.log file.
        report_file: Open file handle (opened by open()).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """
        Start a fresh report; each run gets its own timestamped file.
        """
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        """
        Write poll failure info to the report if present in the log record.

        Thread Safety:
            logging.Handler.handle() holds the handler lock around emit(),
            so entries from concurrent feeds never interleave.
        """
        if not hasattr(record, "poll_failed_feed"):
            return

        if self.report_file is None:
            return

        try:
            feed = getattr(record, "poll_failed_feed", "unknown")
            url = getattr(record, "poll_failed_url", "")
            reason = getattr(record, "poll_failed_reason", "")
            when = datetime.fromtimestamp(record.created).strftime(FILE_DATE_FORMAT)

            self.report_file.write(f"{when} {feed}\n")
            self.report_file.write(f"{url}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """
        Close the report. shutdown_logging() may call this more than once.
        """
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Passes ERROR and above, so log_errors stays free of poll warnings.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """
    Install the onair handlers on the root logger.

    Run once per CLI command, after load_config() and before the
    controller starts.

    Args:
        log_dir: Directory where log files will be created.
        verbose: If True, the console shows DEBUG records too.

    Handlers (the root logger itself is set to DEBUG):
        console        TqdmLoggingHandler, INFO or DEBUG, coloured
        log_full       every record
        log_errors     ERROR and above (ErrorOnlyFilter)
        poll_failures  PollFailureHandler report

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main
        thread before any poll timer is armed.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    # A second command in the same process (tests) starts from scratch
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter(CONSOLE_LOG_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_file_handler(log_dir / f"log_full_{stamp}.log"))

    error_handler = _file_handler(log_dir / f"log_errors_{stamp}.log")
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    poll_failures_path = log_dir / f"poll_failures_{stamp}.log"
    poll_handler = PollFailureHandler(poll_failures_path)
    poll_handler.open()
    root_logger.addHandler(poll_handler)

    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _file_handler(path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    return handler


def get_logger(name: str) -> logging.Logger:
    """
    Module logger, e.g. get_logger(__name__) -> "onair.sync.scheduler".

    Before setup_logging() only Python's last-resort handler applies
    (WARNING and above to stderr).
    """
    return logging.getLogger(name)


def log_poll_failure(
    logger: logging.Logger,
    feed: str,
    url: str,
    reason: str
) -> None:
    """
    Log a failed poll.

    Logs a WARNING with the reason and attaches the extra fields that
    PollFailureHandler writes to poll_failures.log.

    Args:
        logger: The logger to use for the message.
        feed: Feed name ("now_playing", "recent", "program").
        url: The URL that was requested.
        reason: The user-visible status message for the failure.

    Example:
        log_poll_failure(
            logger,
            feed="now_playing",
            url="https://music.abcradio.net.au/api/v1/plays/triplej/now.json",
            reason="Parse error: Response body is not valid JSON"
        )
    """
    logger.warning(
        f"Poll failed [{feed}]: {reason}",
        extra={
            "poll_failed_feed": feed,
            "poll_failed_url": url,
            "poll_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes every root handler, then removes them.
    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except Exception:
            pass
        root_logger.removeHandler(handler)
