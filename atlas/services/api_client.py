"""
Atlas API Client Module.

Thin ``requests`` wrapper around the atlas web server used by the map
client. The admin session cookie lives in the ``requests.Session`` cookie
jar; the client never inspects it, it only looks at ok/not-ok responses.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from atlas.app.constants import DEFAULT_SERVER_URL, REQUEST_TIMEOUT_S
from atlas.core.content import EntrySummary
from atlas.core.pins import Pin, PinValidationError, parse_pins, pins_to_payload

logger = logging.getLogger(__name__)


class AtlasApiError(Exception):
    """
    Raised for any failed API call.

    Attributes:
        status_code: HTTP status, or None for transport failures.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class AtlasApiClient:
    """
    Client for the pin, admin and content endpoints.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = REQUEST_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            base_url: Server root, e.g. ``http://127.0.0.1:8000``.
            timeout: Per-request timeout in seconds.
            session: Optional pre-configured session (shares cookies).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self.url_for(path)
        try:
            response = self.session.request(
                method, url, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise AtlasApiError(f"Could not reach the server: {e}") from e

        if not response.ok:
            raise AtlasApiError(
                self._error_detail(response), status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise AtlasApiError(
                f"Invalid response from {url}", status_code=response.status_code
            ) from e

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"Request failed ({response.status_code})."
        if isinstance(data, dict):
            detail = data.get("error") or data.get("detail")
            if isinstance(detail, str) and detail:
                return detail
        return f"Request failed ({response.status_code})."

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def get_admin_status(self) -> bool:
        data = self._request("GET", "/api/admin/status")
        return bool(data.get("authenticated")) if isinstance(data, dict) else False

    def login(self, password: str) -> None:
        """Raises AtlasApiError (401) on a wrong password."""
        self._request("POST", "/api/admin/login", json={"password": password})
        logger.info("Logged in as admin")

    def logout(self) -> None:
        self._request("POST", "/api/admin/logout")
        logger.info("Logged out")

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    def get_pins(self) -> List[Pin]:
        data = self._request("GET", "/api/world-map-pins")
        try:
            return parse_pins(data.get("pins") if isinstance(data, dict) else None)
        except PinValidationError as e:
            raise AtlasApiError(f"Server returned invalid pins: {e}") from e

    def save_pins(self, pins: Iterable[Pin]) -> List[Pin]:
        """
        Replaces the stored pin collection.

        Returns:
            List[Pin]: The pins echoed back by the server.
        """
        data = self._request("POST", "/api/world-map-pins", json=pins_to_payload(pins))
        try:
            return parse_pins(data.get("pins") if isinstance(data, dict) else None)
        except PinValidationError as e:
            raise AtlasApiError(f"Server returned invalid pins: {e}") from e

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_entry_summaries(self) -> List[EntrySummary]:
        data = self._request("GET", "/api/entries")
        entries: List[Dict[str, Any]] = data.get("entries", []) if isinstance(data, dict) else []
        try:
            return [EntrySummary.from_dict(item) for item in entries]
        except (KeyError, TypeError) as e:
            raise AtlasApiError(f"Server returned invalid entries: {e}") from e

    def set_cover_position(self, category: str, slug: str, x: float, y: float) -> Dict[str, float]:
        data = self._request(
            "POST",
            "/api/cover-position",
            json={"category": category, "slug": slug, "x": x, "y": y},
        )
        return data.get("position", {})
