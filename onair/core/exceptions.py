"""
Exception classes for onair.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between the failure modes of a polling cycle.

Exception Hierarchy:
    OnAirError (base)
        ConfigError - Configuration file issues
        DatabaseError - History database issues
        FeedError - Transport failures talking to the radio API
        PayloadError - Response body could not be used
            TrackParseError - A single track record is unusable

Severity:
    Only ConfigError stops the program. Feed and payload errors are
    recovered by the poll scheduler (fallback retry interval), database
    errors are swallowed by the history store, and track parse errors
    only drop the offending item.
"""


class OnAirError(Exception):
    """
    Base exception for all onair errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all onair errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URLs, field names).

    Example:
        try:
            # some operation
        except OnAirError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL that caused the error
                     - 'field': Config or payload field involved
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(OnAirError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - An explicitly requested config file does not exist
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., negative polling interval, empty URL)

    Example:
        raise ConfigError(
            "'polling.fallback_interval' must be a positive number",
            details={'field': 'polling.fallback_interval', 'value': -1}
        )
    """
    pass


class DatabaseError(OnAirError):
    """
    Raised when there's an issue with the history database.

    This is CRITICAL only at startup (the database cannot be opened).
    Once the history store is running, these errors are logged and the
    operation is treated as a no-op.

    Common causes:
        - Parent directory of the database file does not exist
        - Permission denied when reading/writing
        - Disk full
        - Schema version mismatch

    Example:
        raise DatabaseError(
            "Failed to insert played track",
            details={'path': '/path/to/history.db', 'track_id': 'abc123'}
        )
    """
    pass


class FeedError(OnAirError):
    """
    Raised when the radio API cannot be reached.

    This is a NON-CRITICAL error - the poll scheduler retries after the
    fallback interval and the controller shows a status message.

    Common causes:
        - DNS / connection failure
        - Request timeout
        - HTTP error status (5xx, 404)

    Attributes:
        is_timeout: True if the request timed out.
        status_code: HTTP status code, if a response was received.

    Example:
        raise FeedError(
            "Failed to fetch now playing: 503 Service Unavailable",
            details={'url': url},
            status_code=503
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_timeout: bool = False,
        status_code: int | None = None
    ) -> None:
        """
        Initialize feed error with transport context.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_timeout: Set to True when the request timed out.
            status_code: HTTP status code of the failed response, if any.
        """
        super().__init__(message, details)
        self.is_timeout = is_timeout
        self.status_code = status_code


class PayloadError(OnAirError):
    """
    Raised when a response body cannot be used.

    Recovered the same way as FeedError: logged, surfaced as a status
    message, retried after the fallback interval.

    Common causes:
        - Empty response body
        - Body is not valid JSON
        - Body is valid JSON but not an object

    Example:
        raise PayloadError(
            "Response body is not valid JSON",
            details={'url': url, 'original_error': str(e)}
        )
    """
    pass


class TrackParseError(PayloadError):
    """
    Raised when a single track record lacks its nested "recording" object.

    Callers skip the record; a track is never fabricated from it.

    Example:
        raise TrackParseError(
            "Track record has no recording",
            details={'keys': sorted(raw.keys())}
        )
    """
    pass
