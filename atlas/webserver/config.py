"""
Configuration helpers for the atlas web server.
"""

import os
import secrets
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    data_dir: str = "data"
    content_dir: str = "content"
    map_dir: str = "public/maps"
    admin_password: Optional[str] = None
    session_secret: str = field(default_factory=lambda: secrets.token_hex(32))
    cookie_name: str = "atlas_admin"
    cookie_max_age: int = 60 * 60 * 24 * 7  # 7 days
    secure_cookies: bool = False

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Builds a config from environment variables (``.env`` is loaded by the
        entry points).

        ADMIN_PASSWORD, ATLAS_HOST, ATLAS_PORT, ATLAS_DATA_DIR,
        ATLAS_CONTENT_DIR, ATLAS_MAP_DIR, ATLAS_SESSION_SECRET,
        ATLAS_SECURE_COOKIES.
        """
        config = cls(
            host=os.getenv("ATLAS_HOST", cls.host),
            port=int(os.getenv("ATLAS_PORT", str(cls.port))),
            data_dir=os.getenv("ATLAS_DATA_DIR", cls.data_dir),
            content_dir=os.getenv("ATLAS_CONTENT_DIR", cls.content_dir),
            map_dir=os.getenv("ATLAS_MAP_DIR", cls.map_dir),
            admin_password=os.getenv("ADMIN_PASSWORD") or None,
            secure_cookies=_env_bool("ATLAS_SECURE_COOKIES", False),
        )
        secret = os.getenv("ATLAS_SESSION_SECRET")
        if secret:
            config.session_secret = secret
        return config
