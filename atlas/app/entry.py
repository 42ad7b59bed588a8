"""
Application Entry Point.

This module contains the main() function and cleanup logic for the map client.
"""

import argparse
import sys
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Imports after load_dotenv() to allow modules to access environment variables
from PySide6.QtCore import Qt  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from atlas.app.config import ClientConfig  # noqa: E402
from atlas.app.constants import WINDOW_SETTINGS_APP, WINDOW_SETTINGS_KEY  # noqa: E402
from atlas.core.logging_config import (  # noqa: E402
    get_logger,
    setup_logging,
    shutdown_logging,
)
from atlas.core.map_layers import MapLayer  # noqa: E402

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Atlas world map client")
    parser.add_argument("--server", help="Server URL (default: ATLAS_SERVER_URL)")
    parser.add_argument("--map-dir", help="Directory with world-map-*.png layers")
    parser.add_argument(
        "--layer",
        choices=[layer.value for layer in MapLayer],
        help="Layer shown on start",
    )
    parser.add_argument(
        "--autosave-ms",
        type=int,
        help="Debounce delay for autosaving form edits (0 disables)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Environment first, command-line flags override."""
    config = ClientConfig.from_env()
    if args.server:
        config.server_url = args.server
    if args.map_dir:
        config.map_dir = args.map_dir
    if args.layer:
        config.default_layer = MapLayer.parse(args.layer)
    if args.autosave_ms is not None:
        config.autosave_delay_ms = max(0, args.autosave_ms)
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """Application entry point."""
    # Defer window import so logging is configured first
    from atlas.gui.map_window import MapWindow

    args = build_parser().parse_args(argv)
    setup_logging(debug_mode=args.debug)

    logger.info("=" * 60)
    logger.info(f"Atlas Session Started at {datetime.now().isoformat()}")
    logger.info("=" * 60)

    try:
        config = build_config(args)
        logger.info(f"Using server {config.server_url}, maps in {config.map_dir}")

        QApplication.setHighDpiScaleFactorRoundingPolicy(
            Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
        )
        app = QApplication(sys.argv[:1])
        app.setOrganizationName(WINDOW_SETTINGS_KEY)
        app.setApplicationName(WINDOW_SETTINGS_APP)

        window = MapWindow(config)
        window.show()
        window.start()

        logger.info("Entering Event Loop...")
        exit_code = app.exec()
        cleanup_app()
        sys.exit(exit_code)
    except Exception:
        logger.exception("CRITICAL: Unhandled exception in main application loop")
        sys.exit(1)


def cleanup_app() -> None:
    """Performs global cleanup operations before exit."""
    logger.info("Shutting down logging.")
    shutdown_logging()


if __name__ == "__main__":
    main()
