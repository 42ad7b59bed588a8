"""
Logging Configuration Module.

Root logger setup shared by ``atlas-map`` and ``atlas-serve``. Each program
writes its own rotating file under the log directory (``atlas-map.log``,
``atlas-server.log``) so a client and a server started from the same
checkout never contend for one file. Console output mirrors the file.

The level comes from the ``--debug``/``--verbose`` flags and can be forced
with ``ATLAS_LOG_LEVEL`` (e.g. ``WARNING`` on a quiet server).
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_DIR = "logs"
LOG_LEVEL_ENV = "ATLAS_LOG_LEVEL"
MAX_BYTES = 2 * 1024 * 1024  # 2 MB
BACKUP_COUNT = 3
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the HTTP stack; Atlas logs its own request outcomes.
NOISY_LOGGERS = ("urllib3", "uvicorn.access", "httpx", "multipart")


class SafeRotatingFileHandler(RotatingFileHandler):
    """
    RotatingFileHandler that keeps writing to the current file when Windows
    refuses the rename because another handle is still open.
    """

    def doRollover(self) -> None:
        try:
            super().doRollover()
        except PermissionError:
            if sys.platform != "win32":
                raise


def log_filename(program: str) -> str:
    """``atlas-map`` -> ``atlas-map.log``."""
    return f"{program}.log"


def resolve_level(debug_mode: bool) -> int:
    """
    Level from ``ATLAS_LOG_LEVEL`` if it names a standard level, otherwise
    DEBUG or INFO depending on ``debug_mode``.
    """
    name = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else None
    if isinstance(level, int):
        return level
    return logging.DEBUG if debug_mode else logging.INFO


def setup_logging(
    debug_mode: bool = False,
    log_to_console: bool = True,
    program: str = "atlas-map",
    log_dir: Optional[str] = None,
) -> str:
    """
    Replaces the root logger's handlers with a rotating file handler and,
    optionally, a console handler.

    Args:
        debug_mode (bool): DEBUG instead of INFO unless ATLAS_LOG_LEVEL is set.
        log_to_console (bool): Also log to stderr.
        program (str): Program name; selects the log file and the banner.
        log_dir (str): Directory for the log file. Defaults to ``logs``.

    Returns:
        str: Path of the log file (the working directory is used when the
        log directory cannot be created).
    """
    log_dir = log_dir or LOG_DIR
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError as e:
        print(f"Failed to create log directory: {e}. Logging to current directory.")
        log_path = log_filename(program)
    else:
        log_path = os.path.join(log_dir, log_filename(program))

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.handlers.clear()

    level = resolve_level(debug_mode)
    root_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    try:
        file_handler = SafeRotatingFileHandler(
            log_path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        print(f"CRITICAL: Could not set up file logging: {e}")

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("=" * 60)
    logging.info(f"{program} started at {datetime.now().isoformat()} (pid {os.getpid()})")
    logging.info("=" * 60)
    return log_path


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Flushes and closes all handlers so the log file is released."""
    logging.shutdown()
