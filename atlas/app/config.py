"""
Configuration for the map client.
"""

import os
from dataclasses import dataclass

from atlas.app.constants import AUTOSAVE_DELAY_MS, DEFAULT_SERVER_URL, REQUEST_TIMEOUT_S
from atlas.core.map_layers import MapLayer


@dataclass
class ClientConfig:
    server_url: str = DEFAULT_SERVER_URL
    map_dir: str = "public/maps"
    request_timeout: float = REQUEST_TIMEOUT_S
    autosave_delay_ms: int = AUTOSAVE_DELAY_MS
    default_layer: MapLayer = MapLayer.CURRENT

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Reads ATLAS_SERVER_URL, ATLAS_MAP_DIR, ATLAS_REQUEST_TIMEOUT,
        ATLAS_AUTOSAVE_DELAY_MS and ATLAS_DEFAULT_LAYER.
        """
        return cls(
            server_url=os.getenv("ATLAS_SERVER_URL", DEFAULT_SERVER_URL),
            map_dir=os.getenv("ATLAS_MAP_DIR", cls.map_dir),
            request_timeout=float(
                os.getenv("ATLAS_REQUEST_TIMEOUT", str(REQUEST_TIMEOUT_S))
            ),
            autosave_delay_ms=int(
                os.getenv("ATLAS_AUTOSAVE_DELAY_MS", str(AUTOSAVE_DELAY_MS))
            ),
            default_layer=MapLayer.parse(os.getenv("ATLAS_DEFAULT_LAYER")),
        )
