"""
API Worker Module.
Runs the HTTP calls of the map client off the GUI thread.
"""

import logging
from typing import List

from PySide6.QtCore import QObject, Signal, Slot

from atlas.app.constants import DEFAULT_SERVER_URL, REQUEST_TIMEOUT_S
from atlas.services.api_client import AtlasApiClient, AtlasApiError

logger = logging.getLogger(__name__)


class ApiWorker(QObject):
    """
    Worker object that executes API calls in a separate thread.
    Owns the AtlasApiClient so the cookie jar never crosses threads.
    """

    # Signals
    status_checked = Signal(object)  # bool, or None when the check failed
    login_finished = Signal(bool, str)  # success, error message
    logout_finished = Signal(bool, str)
    pins_loaded = Signal(list)  # List[Pin]
    pins_saved = Signal(int, bool, str)  # request_id, success, error message
    entries_loaded = Signal(list)  # List[EntrySummary]
    error_occurred = Signal(str)

    def __init__(
        self, server_url: str = DEFAULT_SERVER_URL, timeout: float = REQUEST_TIMEOUT_S
    ) -> None:
        """
        Initializes the worker.

        Args:
            server_url (str): Root URL of the atlas server.
            timeout (float): Per-request timeout in seconds.
        """
        super().__init__()
        self.client = AtlasApiClient(server_url, timeout=timeout)

    @Slot()
    def check_status(self) -> None:
        """Reports whether the admin cookie is still valid."""
        try:
            self.status_checked.emit(self.client.get_admin_status())
        except AtlasApiError as e:
            logger.warning(f"Admin status check failed: {e}")
            self.status_checked.emit(None)

    @Slot(str)
    def login(self, password: str) -> None:
        try:
            self.client.login(password)
            self.login_finished.emit(True, "")
        except AtlasApiError as e:
            logger.warning(f"Login failed: {e}")
            self.login_finished.emit(False, str(e))

    @Slot()
    def logout(self) -> None:
        try:
            self.client.logout()
            self.logout_finished.emit(True, "")
        except AtlasApiError as e:
            logger.warning(f"Logout failed: {e}")
            self.logout_finished.emit(False, str(e))

    @Slot()
    def load_pins(self) -> None:
        """Loads all pins."""
        try:
            self.pins_loaded.emit(self.client.get_pins())
        except AtlasApiError as e:
            logger.error(f"Failed to load pins: {e}")
            self.error_occurred.emit(f"Failed to load pins: {e}")

    @Slot(int, list)
    def save_pins(self, request_id: int, pins: List) -> None:
        """
        Replaces the stored pins.

        Args:
            request_id (int): Id echoed back so stale results can be ignored.
            pins (List[Pin]): Snapshot to persist.
        """
        try:
            self.client.save_pins(pins)
            logger.info(f"Save request {request_id} stored {len(pins)} pins")
            self.pins_saved.emit(request_id, True, "")
        except AtlasApiError as e:
            logger.error(f"Save request {request_id} failed: {e}")
            self.pins_saved.emit(request_id, False, str(e))

    @Slot()
    def load_entries(self) -> None:
        """Loads the lore entry summaries used for linking."""
        try:
            self.entries_loaded.emit(self.client.get_entry_summaries())
        except AtlasApiError as e:
            logger.error(f"Failed to load entries: {e}")
            self.error_occurred.emit(f"Failed to load entries: {e}")
