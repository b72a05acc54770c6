"""Logging setup for the envfile command line tool.

Library modules only create loggers under the ``envfile`` namespace; nothing
here runs on import. The CLI (or an application embedding envfile) calls
setup_logging() to attach handlers:

- console output on stderr, without timestamps
- an optional rotating log file under ~/.config/envfile/logs
- per-module DEBUG overrides

Only variable names are ever logged, never values.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

PACKAGE_LOGGER = "envfile"

DEFAULT_LOG_LEVEL = logging.WARNING
CONSOLE_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 1024 * 1024
DEFAULT_BACKUP_COUNT = 3

LOG_DIR = Path.home() / ".config" / "envfile" / "logs"
LOG_FILE_NAME = "envfile.log"


def get_log_file_path() -> Path:
    """Return the log file location, creating its directory."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR / LOG_FILE_NAME


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL


def _file_handler(level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_file_path(),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
    return handler


def _console_handler(level: int, stream: TextIO) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def setup_logging(
    *,
    level: int | str = DEFAULT_LOG_LEVEL,
    log_to_file: bool = False,
    log_to_console: bool = True,
    console_stream: TextIO | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    debug_modules: list[str] | None = None,
) -> None:
    """Attach handlers to the ``envfile`` logger, replacing earlier ones.

    Args:
        level: Level name or number; unknown names fall back to WARNING.
        log_to_file: Also write to the rotating file from get_log_file_path().
        log_to_console: Write to console_stream.
        console_stream: Console destination (default: the current sys.stderr).
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.
        debug_modules: Modules such as ``"parser"`` or ``"envfile.config"``
            to log at DEBUG regardless of level.
    """
    level = _resolve_level(level)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    if log_to_file:
        package_logger.addHandler(_file_handler(level, max_bytes, backup_count))
    if log_to_console:
        package_logger.addHandler(_console_handler(level, console_stream or sys.stderr))

    for module_name in debug_modules or []:
        get_logger(module_name).setLevel(logging.DEBUG)


def enable_debug_mode() -> None:
    """Log everything from envfile to the console."""
    setup_logging(level=logging.DEBUG, log_to_console=True)


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the envfile namespace.

    ``"parser"`` and ``"envfile.parser"`` name the same logger.
    """
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    message: str = "An error occurred",
    *,
    level: int = logging.ERROR,
    include_traceback: bool = True,
) -> None:
    """Log exc under message.

    Without a traceback the exception type is appended instead, so the
    one-line form still says what went wrong.
    """
    if include_traceback:
        logger.log(level, "%s: %s", message, exc, exc_info=exc)
    else:
        logger.log(level, "%s: %s (%s)", message, exc, type(exc).__name__)
