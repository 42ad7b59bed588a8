"""
Pin Data Model.

A pin is a point of interest anchored to normalized map coordinates,
optionally linked to a lore entry. Pins travel over the wire and sit in the
JSON store as plain dictionaries; this module owns the conversion in both
directions.

Parsing is strict: a record with the wrong shape raises PinValidationError
instead of being coerced or silently dropped.
"""

import math
import uuid
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, List, Optional

from atlas.core.map_math import clamp01

UNTITLED_PIN_TITLE = "Untitled"
NEW_PIN_TITLE = "New pin"

# Wire keys of the optional string fields, in serialization order.
_OPTIONAL_FIELDS = {
    "subtitle": "subtitle",
    "description": "description",
    "linkedCategory": "linked_category",
    "linkedSlug": "linked_slug",
}

# Older stores named the link fields after the page format.
_LEGACY_ALIASES = {
    "mdxCategory": "linkedCategory",
    "mdxSlug": "linkedSlug",
}


class PinValidationError(ValueError):
    """
    Raised when a pin payload does not match the expected shape.

    Attributes:
        index: Position of the offending record in the list, if any.
        field: Name of the offending field, if any.
    """

    def __init__(
        self, message: str, index: Optional[int] = None, field: Optional[str] = None
    ) -> None:
        location = []
        if index is not None:
            location.append(f"pin {index}")
        if field is not None:
            location.append(f"field '{field}'")
        prefix = f"{', '.join(location)}: " if location else ""
        super().__init__(f"{prefix}{message}")
        self.index = index
        self.field = field


@dataclass(frozen=True)
class Pin:
    """
    A point of interest on the world map.

    Attributes:
        id: Unique, immutable identifier.
        x: Normalized X coordinate (0.0 = left edge, 1.0 = right edge).
        y: Normalized Y coordinate (0.0 = top edge, 1.0 = bottom edge).
        title: Display title; never blank after normalization.
        subtitle: Optional one-line caption.
        description: Optional longer text.
        linked_category: Category of the linked lore entry.
        linked_slug: Slug of the linked lore entry.
    """

    id: str
    x: float
    y: float
    title: str = UNTITLED_PIN_TITLE
    subtitle: Optional[str] = None
    description: Optional[str] = None
    linked_category: Optional[str] = None
    linked_slug: Optional[str] = None

    @property
    def has_link(self) -> bool:
        """True if both link fields are set."""
        return bool(self.linked_category and self.linked_slug)

    @property
    def link_key(self) -> Optional[str]:
        """``category/slug`` of the linked entry, or None."""
        if not self.has_link:
            return None
        return f"{self.linked_category}/{self.linked_slug}"

    @property
    def href(self) -> Optional[str]:
        """Site path of the linked lore entry, or None."""
        if not self.has_link:
            return None
        return f"/lore/{self.linked_category}/{self.linked_slug}"

    def to_dict(self) -> Dict[str, Any]:
        """
        Converts the pin to its wire/storage dictionary.

        Absent optional fields are omitted rather than written as null.
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "title": self.title,
        }
        for wire_key, attr in _OPTIONAL_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[wire_key] = value
        return data

    @classmethod
    def from_dict(cls, data: Any, index: Optional[int] = None) -> "Pin":
        """
        Parses and normalizes one pin record.

        Args:
            data: Decoded JSON value.
            index: Position in the enclosing list, for error messages.

        Returns:
            Pin: The normalized pin.

        Raises:
            PinValidationError: If the record has the wrong shape.
        """
        return parse_pin(data, index)

    def merged(self, **changes: Any) -> "Pin":
        """Returns a copy with the given fields replaced. The id never changes."""
        changes.pop("id", None)
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise TypeError(f"Unknown pin fields: {', '.join(sorted(unknown))}")
        return replace(self, **changes)


def new_pin_id() -> str:
    """Generates a fresh pin identifier."""
    return str(uuid.uuid4())


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_pin(pin: Pin) -> Pin:
    """
    Applies the storage invariants to a pin.

    - Coordinates clamped to [0, 1] (NaN becomes 0.5)
    - Title trimmed, blank title replaced by "Untitled"
    - Optional strings trimmed, empty strings dropped
    """
    return Pin(
        id=pin.id.strip(),
        x=clamp01(float(pin.x)),
        y=clamp01(float(pin.y)),
        title=(pin.title or "").strip() or UNTITLED_PIN_TITLE,
        subtitle=_clean_optional(pin.subtitle),
        description=_clean_optional(pin.description),
        linked_category=_clean_optional(pin.linked_category),
        linked_slug=_clean_optional(pin.linked_slug),
    )


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_pin(data: Any, index: Optional[int] = None) -> Pin:
    """
    Validates one decoded pin record and returns the normalized Pin.

    Required: ``id`` (non-empty string), ``x`` and ``y`` (numbers), ``title``
    (string). Optional: ``subtitle``, ``description``, ``linkedCategory``,
    ``linkedSlug`` (strings or null). Unknown keys are ignored.

    Raises:
        PinValidationError: On the first violation found.
    """
    if not isinstance(data, dict):
        raise PinValidationError("record must be an object", index=index)

    pin_id = data.get("id")
    if not isinstance(pin_id, str) or not pin_id.strip():
        raise PinValidationError("must be a non-empty string", index, "id")

    coords: Dict[str, float] = {}
    for axis in ("x", "y"):
        value = data.get(axis)
        if not _is_number(value):
            raise PinValidationError("must be a number", index, axis)
        try:
            coords[axis] = float(value)
        except OverflowError:
            raise PinValidationError("must be finite", index, axis) from None
        if math.isinf(coords[axis]):
            raise PinValidationError("must be finite", index, axis)

    title = data.get("title")
    if not isinstance(title, str):
        raise PinValidationError("must be a string", index, "title")

    optional: Dict[str, Optional[str]] = {}
    for legacy_key, wire_key in _LEGACY_ALIASES.items():
        if wire_key not in data and legacy_key in data:
            data = {**data, wire_key: data[legacy_key]}
    for wire_key, attr in _OPTIONAL_FIELDS.items():
        value = data.get(wire_key)
        if value is not None and not isinstance(value, str):
            raise PinValidationError("must be a string", index, wire_key)
        optional[attr] = value

    return normalize_pin(
        Pin(id=pin_id, x=coords["x"], y=coords["y"], title=title, **optional)
    )


def parse_pins(payload: Any) -> List[Pin]:
    """
    Validates a full pin collection.

    Args:
        payload: Decoded JSON value expected to be a list of pin records.

    Returns:
        List[Pin]: Normalized pins in input order.

    Raises:
        PinValidationError: If the payload is not a list, a record is
            malformed, or two records share an id.
    """
    if not isinstance(payload, list):
        raise PinValidationError("pins must be a list")

    pins: List[Pin] = []
    seen = set()
    for index, record in enumerate(payload):
        pin = parse_pin(record, index)
        if pin.id in seen:
            raise PinValidationError(f"duplicate id '{pin.id}'", index, "id")
        seen.add(pin.id)
        pins.append(pin)
    return pins


def pins_to_payload(pins: Iterable[Pin]) -> Dict[str, List[Dict[str, Any]]]:
    """Wraps pins in the ``{"pins": [...]}`` document shape."""
    return {"pins": [pin.to_dict() for pin in pins]}
