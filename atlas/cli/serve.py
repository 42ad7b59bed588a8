#!/usr/bin/env python3
"""
Atlas Server CLI.

Runs the map API (pins, cover positions, admin session, lore content) under
uvicorn.

Usage:
    python -m atlas.cli.serve --port 8000 --data-dir data --content-dir content
"""

import argparse
import logging
import sys

import uvicorn
from dotenv import load_dotenv

from atlas.core.logging_config import setup_logging
from atlas.webserver.config import ServerConfig
from atlas.webserver.server import create_app

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first (``.env`` included), command-line flags override."""
    config = ServerConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.content_dir:
        config.content_dir = args.content_dir
    if args.map_dir:
        config.map_dir = args.map_dir
    return config


def main() -> None:
    """Main entry point for the server CLI tool."""
    load_dotenv()
    parser = argparse.ArgumentParser(description="Serve the Atlas map API")
    parser.add_argument("--host", help="Bind address (default: ATLAS_HOST or 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port (default: ATLAS_PORT or 8000)")
    parser.add_argument("--data-dir", "-d", help="Directory for the JSON stores")
    parser.add_argument("--content-dir", "-c", help="Directory with lore entries")
    parser.add_argument("--map-dir", "-m", help="Directory with map layer images")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    args = parser.parse_args()

    setup_logging(debug_mode=args.verbose, program="atlas-server")

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"✗ Invalid configuration: {e}")
        sys.exit(1)

    if not config.admin_password:
        logger.warning("ADMIN_PASSWORD is not set; admin login is disabled")

    logger.info(f"Starting Atlas server at http://{config.host}:{config.port}")
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level="info")
    sys.exit(0)


if __name__ == "__main__":
    main()
