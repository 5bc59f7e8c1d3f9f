"""Logging setup for grip3r entry points.

One call per process. Records go to stderr and, when a server name is
given, to a rotating ``<log_dir>/<server_name>.log``. uvicorn is started
with ``log_config=None`` so its access and error records land in the
same handlers.

The level comes from ``--debug``, else ``GRIPPER_LOG_LEVEL``, else INFO.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent.parent / "logs"

# Per-request and bus client chatter; raised to WARNING outside debug runs
_NOISY_LOGGERS = ("uvicorn.access", "redis")


def resolve_level(debug: bool = False) -> int:
    """Log level for this process; unknown level names fall back to INFO."""
    if debug:
        return logging.DEBUG
    name = os.getenv("GRIPPER_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def log_file_path(server_name: str, log_dir: str | Path | None = None) -> Path:
    target = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    target.mkdir(parents=True, exist_ok=True)
    return target / f"{server_name}.log"


def setup_logging(
    *,
    server_name: str | None = None,
    log_dir: str | Path | None = None,
    debug: bool = False,
) -> Path | None:
    """Configure the root logger; returns the log file path, if any."""
    level = resolve_level(debug)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = log_file_path(server_name, log_dir) if server_name else None
    if log_file:
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS)
        )
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    quiet = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    logging.getLogger(__name__).info(
        "Logging at %s%s", logging.getLevelName(level), f" to {log_file}" if log_file else ""
    )
    return log_file
