"""
Admin cookie signing.

The admin session is a single signed cookie. Its value is
``<issued-at>.<signature>`` where the signature is an HMAC-SHA256 of the
issue time under the server's session secret. Clients treat it as opaque.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

from atlas.webserver.config import ServerConfig

logger = logging.getLogger(__name__)


def _signature(secret: str, payload: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def issue_token(config: ServerConfig, now: Optional[float] = None) -> str:
    """Creates a fresh admin cookie value."""
    issued_at = str(int(now if now is not None else time.time()))
    return f"{issued_at}.{_signature(config.session_secret, issued_at)}"


def verify_token(
    config: ServerConfig, token: Optional[str], now: Optional[float] = None
) -> bool:
    """
    Checks an admin cookie value.

    Returns False for missing, malformed, forged or expired tokens.
    """
    if not token or "." not in token:
        return False
    issued_at, signature = token.split(".", 1)
    expected = _signature(config.session_secret, issued_at)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        return False
    try:
        age = (now if now is not None else time.time()) - int(issued_at)
    except ValueError:
        return False
    return 0 <= age <= config.cookie_max_age


def check_password(config: ServerConfig, password: Optional[str]) -> bool:
    """Constant-time comparison against the configured admin password."""
    if not config.admin_password or not password:
        return False
    return hmac.compare_digest(
        password.encode("utf-8"), config.admin_password.encode("utf-8")
    )


def is_admin_request(config: ServerConfig, request: Request) -> bool:
    return verify_token(config, request.cookies.get(config.cookie_name))


def require_admin(config: ServerConfig, request: Request) -> None:
    """Raises 401 unless the request carries a valid admin cookie."""
    if not is_admin_request(config, request):
        logger.warning(f"Rejected unauthenticated {request.method} {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorized")
