"""
HTTP client for the station's JSON API.

Wraps a requests.Session and maps every failure onto the onair exception
hierarchy so that the poll scheduler only has to deal with two kinds of
error:

    FeedError     connection failure, timeout, HTTP error status
    PayloadError  empty body, undecodable JSON

The client is constructed explicitly and injected into the controller;
there is no module-level instance.

Usage:
    client = RadioApiClient(config.station)
    payload = client.now_playing()
"""

from typing import Any

import requests

from onair import __version__
from onair.core.config import StationConfig
from onair.core.exceptions import FeedError, PayloadError
from onair.core.logger import get_logger

logger = get_logger(__name__)


USER_AGENT = f"onair/{__version__}"
PROGRAM_GUIDE_LIMIT = 10


class RadioApiClient:
    """
    Client for the now-playing, recent plays and program guide endpoints.

    Attributes:
        station: Station configuration (URLs and request timeout).
        session: The shared requests.Session.

    Thread Safety:
        Each feed has at most one request in flight, but the three feeds
        may request concurrently. requests.Session is safe for that use
        as long as session-level settings are not mutated after creation.
    """

    def __init__(self, station: StationConfig, session: requests.Session | None = None) -> None:
        self.station = station
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        })

    def close(self) -> None:
        self.session.close()

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a URL and decode its JSON body.

        Raises:
            FeedError: On connection errors, timeouts and HTTP error statuses.
            PayloadError: On an empty or undecodable body.
        """
        logger.debug(f"GET {url} params={params}")

        try:
            response = self.session.get(url, params=params, timeout=self.station.request_timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise FeedError(
                f"Request timed out after {self.station.request_timeout:g}s",
                details={"url": url, "original_error": str(e)},
                is_timeout=True
            ) from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FeedError(
                f"HTTP {status} from server",
                details={"url": url, "original_error": str(e)},
                status_code=status
            ) from e
        except requests.RequestException as e:
            raise FeedError(
                f"Connection failed: {e}",
                details={"url": url, "original_error": str(e)}
            ) from e

        if not response.content or not response.content.strip():
            raise PayloadError(
                "Empty response body",
                details={"url": url, "status_code": response.status_code}
            )

        try:
            return response.json()
        except ValueError as e:
            raise PayloadError(
                "Response body is not valid JSON",
                details={"url": url, "original_error": str(e)}
            ) from e

    def now_playing(self) -> Any:
        """Fetch the now-playing document ({"now", "prev", "next_updated"})."""
        return self._get_json(self.station.now_playing_url)

    def recent_plays(self, limit: int) -> Any:
        """
        Fetch the recent plays search document ({"items": [...]}).

        Raises:
            FeedError: If the recent feed is disabled in config.
        """
        if self.station.recent_url is None:
            raise FeedError("Recent plays feed is disabled")
        return self._get_json(self.station.recent_url, params={"limit": limit})

    def program_guide(self) -> Any:
        """
        Fetch the program guide document ({"items": [...]}).

        Raises:
            FeedError: If the program feed is disabled in config.
        """
        if self.station.program_url is None:
            raise FeedError("Program guide feed is disabled")
        return self._get_json(self.station.program_url, params={"limit": PROGRAM_GUIDE_LIMIT})
