"""Log formatters, selected by name through ``get_formatter``.

- simple: ``[LEVEL] logger: message``
- detailed: timestamped console lines, suffixed with ``[run=<id>]`` inside a sync run
- structured: ``key=value`` pairs for log files
- json: one JSON object per line
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Tuple, Type

from .context import NO_SYNC_RUN

# Attributes every LogRecord has; anything else arrived through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _extras(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    return ((key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS)


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


class SimpleFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(fmt="[%(levelname)s] %(name)s: %(message)s")


class DetailedFormatter(logging.Formatter):
    """``2024-05-01 10:00:00 [    INFO] yuque_mirror.modules.sync.orchestrator: Sync finished [run=3f2a9c]``"""

    def __init__(self):
        super().__init__(fmt="%(asctime)s [%(levelname)8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        run_id = getattr(record, "sync_run_id", NO_SYNC_RUN)
        return line if run_id == NO_SYNC_RUN else f"{line} [run={run_id}]"


class StructuredFormatter(logging.Formatter):
    """``timestamp=... level=INFO logger=... message="..." doc_id="42"``"""

    def format(self, record: logging.LogRecord) -> str:
        fields = [
            f"timestamp={_timestamp(record)}",
            f"level={record.levelname}",
            f"logger={record.name}",
            f'message="{record.getMessage()}"',
        ]
        for key, value in _extras(record):
            fields.append(f"{key}={value}" if isinstance(value, (bool, int, float)) else f'{key}="{value}"')
        if record.exc_info:
            fields.append('exception="{}"'.format(self.formatException(record.exc_info).replace("\n", "\\n")))
        return " ".join(fields)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.filename}:{record.lineno}",
            "function": record.funcName,
        }
        for key, value in _extras(record):
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            payload[key] = value
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }
        return json.dumps(payload, ensure_ascii=False)


FORMATTERS: Dict[str, Type[logging.Formatter]] = {
    "simple": SimpleFormatter,
    "detailed": DetailedFormatter,
    "structured": StructuredFormatter,
    "json": JSONFormatter,
}


def get_formatter(format_type: str) -> logging.Formatter:
    """A new formatter of the named kind.

    Raises:
        ValueError: If ``format_type`` is not one of ``FORMATTERS``
    """
    try:
        return FORMATTERS[format_type.lower()]()
    except KeyError:
        raise ValueError(f"Unknown log format {format_type!r}; expected one of {', '.join(FORMATTERS)}") from None
