#!/usr/bin/env python3
"""
Pin Management CLI.

Provides command-line tools for listing, adding, removing and validating the
world map pins stored in ``world-map-pins.json``.

Usage:
    python -m atlas.cli.pins list --data-dir data
    python -m atlas.cli.pins add --data-dir data --title "Harbor" --x 0.4 --y 0.6
    python -m atlas.cli.pins remove --data-dir data --id <id>
    python -m atlas.cli.pins validate --data-dir data
"""

import argparse
import json
import logging
import sys

from atlas.core.pins import Pin, PinValidationError, new_pin_id, normalize_pin
from atlas.services.pin_repository import PinRepository, PinStoreError

# Setup logging
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def list_pins(args) -> int:
    """List all pins."""
    try:
        pins = PinRepository(args.data_dir).read_all()
    except PinStoreError as e:
        print(f"✗ Error: {e}")
        return 1

    if args.json:
        print(json.dumps([p.to_dict() for p in pins], indent=2))
    else:
        print(f"\nFound {len(pins)} pin(s):\n")
        for pin in pins:
            print(f"  {pin.title} ({pin.id})")
            print(f"    Position: ({pin.x:.3f}, {pin.y:.3f})")
            if pin.subtitle:
                print(f"    Subtitle: {pin.subtitle}")
            if pin.has_link:
                print(f"    Links to: {pin.href}")
            print()
    return 0


def add_pin(args) -> int:
    """Add a pin."""
    if (args.category is None) != (args.slug is None):
        print("✗ Error: --category and --slug must be given together")
        return 1

    pin = normalize_pin(
        Pin(
            id=args.id or new_pin_id(),
            x=args.x,
            y=args.y,
            title=args.title,
            subtitle=args.subtitle,
            description=args.description,
            linked_category=args.category,
            linked_slug=args.slug,
        )
    )
    try:
        PinRepository(args.data_dir).add(pin)
    except (PinStoreError, PinValidationError) as e:
        print(f"✗ Error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Failed to add pin: {e}")
        if args.verbose:
            raise
        return 1

    print(f"✓ Added pin: {pin.id}")
    print(f"  Title: {pin.title}")
    print(f"  Position: ({pin.x:.3f}, {pin.y:.3f})")
    return 0


def remove_pin(args) -> int:
    """Remove a pin by id."""
    try:
        removed = PinRepository(args.data_dir).remove(args.id)
    except PinStoreError as e:
        print(f"✗ Error: {e}")
        return 1

    if not removed:
        print(f"✗ Pin not found: {args.id}")
        return 1
    print(f"✓ Removed pin: {args.id}")
    return 0


def validate_pins(args) -> int:
    """Check that the pin store parses."""
    repo = PinRepository(args.data_dir)
    try:
        pins = repo.read_all()
    except PinStoreError as e:
        print(f"✗ Invalid pin store {repo.path}: {e}")
        return 1

    unlinked = sum(1 for p in pins if not p.has_link)
    print(f"✓ {repo.path}: {len(pins)} valid pin(s), {unlinked} without a link")
    return 0


def main():
    """Main entry point for the pin CLI tool."""
    parser = argparse.ArgumentParser(description="Manage Atlas world map pins")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # List
    list_p = subparsers.add_parser("list", help="List all pins")
    list_p.add_argument("--data-dir", "-d", default="data")
    list_p.add_argument("--json", action="store_true")
    list_p.set_defaults(func=list_pins)

    # Add
    add_p = subparsers.add_parser("add", help="Add a pin")
    add_p.add_argument("--data-dir", "-d", default="data")
    add_p.add_argument("--id", help="Pin id (generated if omitted)")
    add_p.add_argument("--title", "-t", default="")
    add_p.add_argument("--x", type=float, required=True, help="Normalized X (0-1)")
    add_p.add_argument("--y", type=float, required=True, help="Normalized Y (0-1)")
    add_p.add_argument("--subtitle")
    add_p.add_argument("--description")
    add_p.add_argument("--category", help="Linked lore category")
    add_p.add_argument("--slug", help="Linked lore slug")
    add_p.set_defaults(func=add_pin)

    # Remove
    remove_p = subparsers.add_parser("remove", help="Remove a pin")
    remove_p.add_argument("--data-dir", "-d", default="data")
    remove_p.add_argument("--id", required=True)
    remove_p.set_defaults(func=remove_pin)

    # Validate
    validate_p = subparsers.add_parser("validate", help="Validate the pin store")
    validate_p.add_argument("--data-dir", "-d", default="data")
    validate_p.set_defaults(func=validate_pins)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if hasattr(args, "func"):
        sys.exit(args.func(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
