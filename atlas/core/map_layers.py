"""
Map Layers.

The world map ships as a fixed set of image layers that share one pin set.
"""

import os
from enum import Enum
from typing import Optional

from atlas.core.map_math import ImageSize


class MapLayer(str, Enum):
    """Named image layers of the world map."""

    CURRENT = "current"
    POLITICAL = "political"
    ELEVATION = "elevation"
    BIOME = "biome"

    @property
    def label(self) -> str:
        """Human readable name for selectors."""
        return self.value.capitalize()

    @property
    def filename(self) -> str:
        """Image file name of the layer inside the map directory."""
        return f"world-map-{self.value}.png"

    def image_path(self, map_dir: str) -> str:
        """Absolute path of the layer image inside map_dir."""
        return os.path.join(map_dir, self.filename)

    @classmethod
    def parse(cls, value: Optional[str]) -> "MapLayer":
        """
        Resolves a layer from its name, falling back to CURRENT.

        Args:
            value: Layer name (case-insensitive) or None.
        """
        if not value:
            return cls.CURRENT
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.CURRENT


# Used until the real image reports its natural size.
FALLBACK_IMAGE_SIZE = ImageSize(4096, 2304)
