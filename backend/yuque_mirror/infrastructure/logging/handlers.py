"""Logging handlers for the console and the mirror's log file.

Every handler built here can stamp the active sync run id on the records it
handles, so the formatters can show which run a line belongs to.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, TextIO

from .context import NO_SYNC_RUN, get_sync_run_id
from .formatters import get_formatter

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_DIM = "\033[2m"
_RESET = "\033[0m"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5


class SyncRunIdFilter(logging.Filter):
    """Adds ``sync_run_id`` to each record; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "sync_run_id"):
            record.sync_run_id = get_sync_run_id() or NO_SYNC_RUN
        return True


class SyncConsoleHandler(logging.StreamHandler):
    """Console handler that colors the level and dims the run id on a TTY."""

    def __init__(self, stream: Optional[TextIO] = None, use_colors: bool = True):
        super().__init__(stream or sys.stdout)
        self.use_colors = use_colors and self._is_tty()

    def _is_tty(self) -> bool:
        return hasattr(self.stream, "isatty") and self.stream.isatty() and sys.platform != "win32"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        if not self.use_colors:
            return formatted

        color = _LEVEL_COLORS.get(record.levelname)
        if color:
            formatted = formatted.replace(f"[{record.levelname:>8}]", f"[{color}{record.levelname:>8}{_RESET}]", 1)
        run_id = getattr(record, "sync_run_id", NO_SYNC_RUN)
        if run_id != NO_SYNC_RUN:
            formatted = formatted.replace(f"[run={run_id}]", f"{_DIM}[run={run_id}]{_RESET}")
        return formatted


class MirrorLogFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating log file that creates its directory and opens lazily."""

    def __init__(self, filename: str, max_bytes: int = DEFAULT_MAX_BYTES, backup_count: int = DEFAULT_BACKUP_COUNT):
        Path(filename).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8", delay=True)


def _prepare(handler: logging.Handler, format_type: str, level: int, stamp_run_id: bool) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(get_formatter(format_type))
    if stamp_run_id:
        handler.addFilter(SyncRunIdFilter())
    return handler


def create_console_handler(
    format_type: str = "detailed", level: int = logging.INFO, use_colors: bool = True, stamp_run_id: bool = True
) -> logging.Handler:
    """Console handler writing to stdout.

    Args:
        format_type: Formatter name, see ``get_formatter``
        level: Minimum level handled
        use_colors: Color the output when stdout is a terminal
        stamp_run_id: Attach the sync run id to each record
    """
    return _prepare(SyncConsoleHandler(use_colors=use_colors), format_type, level, stamp_run_id)


def create_file_handler(
    filepath: str,
    format_type: str = "structured",
    level: int = logging.DEBUG,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    stamp_run_id: bool = True,
) -> logging.Handler:
    """Rotating file handler for ``filepath``."""
    handler = MirrorLogFileHandler(filepath, max_bytes=max_bytes, backup_count=backup_count)
    return _prepare(handler, format_type, level, stamp_run_id)


def create_null_handler() -> logging.Handler:
    return logging.NullHandler()
