"""Catwatch — Logging Setup.

Centralized logging for the adoption listing watcher: a colored console
handler for operators and a rotating DEBUG file under logs/. Modules
obtain named loggers through get_logger() so the handlers are attached
exactly once per process.

Set CATWATCH_LOG_DIR to move the log file (tests point it at a temp dir).
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_DIR = Path(os.environ.get("CATWATCH_LOG_DIR", Path(__file__).resolve().parent.parent.parent / "logs"))
LOG_FILE = LOG_DIR / "catwatch.log"
LOG_FILE_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_CONSOLE_FORMAT = "%(asctime)s │ %(levelname)s │ %(name)s │ %(message)s"
_FILE_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[41m",
}
_RESET = "\033[0m"

_QUIET_LIBRARIES = ("httpx", "httpcore", "apscheduler", "telegram", "uvicorn.access")

_configured = False
_console: Optional[logging.Handler] = None


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name and timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        # Restore the plain level name so the file handler never sees ANSI codes
        plain = record.levelname
        record.levelname = f"{_LEVEL_COLORS.get(record.levelno, '')}{plain:<8}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = super().formatTime(record, datefmt)
        return f"{_LEVEL_COLORS.get(record.levelno, '')}{stamp}{_RESET}"


def _make_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(ColoredFormatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _make_file_handler() -> Optional[logging.Handler]:
    """Rotating DEBUG file, or None when the log directory is not writable."""
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            LOG_FILE, maxBytes=LOG_FILE_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8",
        )
    except OSError:
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _setup_logging() -> None:
    """Attach handlers to the root logger on the first call only."""
    global _configured, _console
    if _configured:
        return
    _configured = True

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    _console = _make_console_handler()
    root.addHandler(_console)

    file_handler = _make_file_handler()
    if file_handler is None:
        root.warning("Cannot write to %s, logging to console only", LOG_DIR)
    else:
        root.addHandler(file_handler)

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_console_level(level: str) -> None:
    """Apply the configured log level to the console handler.

    Args:
        level: A logging level name such as "DEBUG" or "INFO".
    """
    _setup_logging()
    _console.setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, configuring the root logger on first use.

    Args:
        name: The logger name, typically __name__ of the calling module.
    """
    _setup_logging()
    return logging.getLogger(name)
