"""
Admin Session Gate.

Tracks whether the current client holds the admin capability. The session
cookie itself is owned by the HTTP client; this gate only records the
ok/not-ok answers of the status, login and logout calls.
"""

import logging
from typing import Optional

from atlas.app.constants import MSG_LOGIN_FAILED
from atlas.app.effects import (
    Effects,
    FetchAdminStatus,
    SubmitLogin,
    SubmitLogout,
)

logger = logging.getLogger(__name__)


class AdminGate:
    """
    Admin capability for one map session.

    Capability is False until the status check resolves and stays False on
    any failure.
    """

    def __init__(self) -> None:
        self.is_admin = False
        self.status_resolved = False
        self.login_pending = False
        self.error: Optional[str] = None
        self._mounted = False

    def mount(self) -> Effects:
        """Issues the one status check of this session."""
        if self._mounted:
            return []
        self._mounted = True
        return [FetchAdminStatus()]

    def on_status(self, authenticated: Optional[bool]) -> None:
        """
        Records the status check result.

        Args:
            authenticated: Server answer, or None if the call failed.
        """
        self.status_resolved = True
        self.is_admin = bool(authenticated)
        logger.info(f"Admin status resolved: {self.is_admin}")

    def login(self, password: str) -> Effects:
        """Submits the shared secret. Blank input is ignored."""
        if not password or self.login_pending:
            return []
        self.error = None
        self.login_pending = True
        return [SubmitLogin(password)]

    def on_login_result(self, success: bool, error: Optional[str] = None) -> None:
        self.login_pending = False
        if success:
            self.is_admin = True
            self.error = None
            logger.info("Admin login succeeded")
        else:
            self.error = error or MSG_LOGIN_FAILED
            logger.warning(f"Admin login failed: {self.error}")

    def logout(self) -> Effects:
        """Drops the capability immediately and tells the server."""
        self.is_admin = False
        self.error = None
        return [SubmitLogout()]
