"""
Cover Position Repository Module.

Stores the focal point used to crop each lore entry's cover image, keyed by
``category/slug``. Positions are percentages in [0, 100].
"""

import logging
import math
import os
import re
from dataclasses import dataclass
from typing import Dict, Optional

from atlas.services.json_store import JsonDocumentStore

logger = logging.getLogger(__name__)

POSITIONS_FILENAME = "cover-positions.json"
DEFAULT_PERCENT = 50.0
MAX_KEY_PART_LENGTH = 120

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9/_-]", re.IGNORECASE)


@dataclass(frozen=True)
class CoverPosition:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


def clamp_percent(value: float) -> float:
    """Clamps to [0, 100]; NaN becomes the centre (50)."""
    if math.isnan(value):
        return DEFAULT_PERCENT
    return min(100.0, max(0.0, value))


def normalize_key(category: str, slug: str) -> str:
    """Builds the storage key, stripping unsafe characters from both parts."""
    safe_category = _UNSAFE_KEY_CHARS.sub("", category)[:MAX_KEY_PART_LENGTH]
    safe_slug = _UNSAFE_KEY_CHARS.sub("", slug)[:MAX_KEY_PART_LENGTH]
    return f"{safe_category}/{safe_slug}"


class CoverPositionRepository:
    """Upserts cover positions into ``cover-positions.json``."""

    def __init__(self, data_dir: str, filename: str = POSITIONS_FILENAME) -> None:
        self._store = JsonDocumentStore(os.path.join(data_dir, filename), initial=dict)

    def _read(self) -> Dict[str, Dict[str, float]]:
        document = self._store.read_document()
        return document if isinstance(document, dict) else {}

    def get(self, key: str) -> Optional[CoverPosition]:
        """Returns the stored position for a key, or None."""
        entry = self._read().get(key)
        if not isinstance(entry, dict):
            return None
        try:
            return CoverPosition(x=float(entry["x"]), y=float(entry["y"]))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Ignoring malformed cover position for {key}")
            return None

    def set(self, key: str, x: float, y: float) -> CoverPosition:
        """
        Clamps and stores a position, replacing any previous one for the key.

        Returns:
            CoverPosition: The stored (clamped) position.
        """
        position = CoverPosition(x=clamp_percent(x), y=clamp_percent(y))
        with self._store.lock:
            document = self._read()
            document[key] = position.to_dict()
            self._store.write_document(document)
        logger.info(f"Cover position for {key} set to ({position.x}, {position.y})")
        return position
