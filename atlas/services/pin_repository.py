"""
Pin Repository Module.

Flat-file persistence of the world map pins in ``world-map-pins.json``.
The collection is always replaced as a whole, never diffed.

Document shape::

    {"pins": [{"id": "...", "x": 0.5, "y": 0.5, "title": "..."}]}

A bare list of pins (the older store format) is accepted on read.
"""

import logging
import os
from typing import Iterable, List

from atlas.core.pins import (
    Pin,
    PinValidationError,
    parse_pin,
    parse_pins,
    pins_to_payload,
)
from atlas.services.json_store import JsonDocumentStore, StoreError

logger = logging.getLogger(__name__)

PINS_FILENAME = "world-map-pins.json"


class PinStoreError(StoreError):
    """Raised when the stored pin document is unreadable or malformed."""


class PinRepository:
    """
    Reads and writes the full pin collection.
    """

    def __init__(self, data_dir: str, filename: str = PINS_FILENAME) -> None:
        """
        Initialize the repository.

        Args:
            data_dir: Directory holding the store files.
            filename: Name of the pin document.
        """
        self._store = JsonDocumentStore(
            os.path.join(data_dir, filename), initial=lambda: {"pins": []}
        )

    @property
    def path(self) -> str:
        return str(self._store.path)

    def read_all(self) -> List[Pin]:
        """
        Loads every stored pin.

        Returns:
            List[Pin]: Normalized pins in stored order.

        Raises:
            PinStoreError: If the document cannot be decoded or a record is
                malformed. Corrupt pins are reported, never dropped.
        """
        try:
            document = self._store.read_document()
        except StoreError as e:
            raise PinStoreError(str(e)) from e

        records = document if isinstance(document, list) else None
        if isinstance(document, dict):
            records = document.get("pins", [])
        if records is None:
            raise PinStoreError(f"Unexpected document in {self.path}")

        try:
            return parse_pins(records)
        except PinValidationError as e:
            raise PinStoreError(f"Invalid pin in {self.path}: {e}") from e

    def replace_all(self, pins: Iterable[Pin]) -> List[Pin]:
        """
        Atomically replaces the stored collection.

        Args:
            pins: Already validated pins.

        Returns:
            List[Pin]: The pins as written.
        """
        pins = list(pins)
        self._store.write_document(pins_to_payload(pins))
        logger.info(f"Stored {len(pins)} pins in {self.path}")
        return pins

    def add(self, pin: Pin) -> List[Pin]:
        """
        Appends one pin (read-modify-write of the whole list).

        Raises:
            PinValidationError: If the pin would not parse back from the
                store (blank id, non-finite coordinates) or its id is taken.
        """
        pin = parse_pin(pin.to_dict())
        with self._store.lock:
            pins = self.read_all()
            if any(p.id == pin.id for p in pins):
                raise PinValidationError(f"duplicate id '{pin.id}'", field="id")
            pins.append(pin)
            return self.replace_all(pins)

    def remove(self, pin_id: str) -> bool:
        """Removes one pin by id. Returns False if it was not stored."""
        with self._store.lock:
            pins = self.read_all()
            remaining = [p for p in pins if p.id != pin_id]
            if len(remaining) == len(pins):
                return False
            self.replace_all(remaining)
            return True
