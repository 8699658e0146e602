"""Logger factory.

``get_logger()`` is the one entry point modules use. The first call installs
the handlers for the configured environment; later calls only hand out
loggers, named after the calling module unless a name is given.
"""

import inspect
import logging
from threading import Lock
from typing import Any, Dict, MutableMapping, Optional, Tuple, Union

from ..config.settings import get_settings
from .config import get_configured_logger, setup_logging_configuration

AnyLogger = Union[logging.Logger, "LoggerAdapter"]

_configured = False
_lock = Lock()


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter whose fixed context is merged under the ``extra`` of each call."""

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any]):
        super().__init__(logger, extra)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> Tuple[str, MutableMapping[str, Any]]:
        call_extra = kwargs.get("extra")
        context = dict(self.extra) if isinstance(self.extra, dict) else {}
        if isinstance(call_extra, dict):
            context.update(call_extra)
        kwargs["extra"] = context
        return msg, kwargs


def configure_logging() -> None:
    """Install the logging handlers once per process."""
    global _configured

    with _lock:
        if _configured:
            return
        setup_logging_configuration()
        _configured = True

    settings = get_settings()
    logging.getLogger(__name__).info(
        f"Logging ready ({settings.ENVIRONMENT.value}, level {settings.LOG_LEVEL})",
        extra={"log_format": settings.LOG_FORMAT, "file_enabled": settings.LOG_FILE_ENABLED},
    )


def get_logger(name: Optional[str] = None, **context: Any) -> AnyLogger:
    """A logger for the caller, configuring logging on first use.

    Args:
        name: Logger name; defaults to the calling module's ``__name__``
        **context: Fixed fields added to every record of the returned logger

    Example:
        ```python
        logger = get_logger()
        pipeline_logger = get_logger(component="resource_pipeline")
        ```
    """
    if not _configured:
        configure_logging()

    base = get_configured_logger(name or _caller_module())
    return LoggerAdapter(base, context) if context else base


def create_child_logger(parent: AnyLogger, child_name: str, **context: Any) -> AnyLogger:
    """A ``<parent>.<child_name>`` logger carrying the parent's context plus ``context``.

    Example:
        ```python
        image_logger = create_child_logger(logger, "image", resource_type="image")
        ```
    """
    if isinstance(parent, logging.LoggerAdapter):
        merged = {**(parent.extra or {}), **context}
        parent_name = parent.logger.name
    else:
        merged = dict(context)
        parent_name = parent.name

    child = get_configured_logger(f"{parent_name}.{child_name}")
    return LoggerAdapter(child, merged) if merged else child


def _caller_module() -> str:
    # Two frames up: past get_logger to the module that called it.
    frame = inspect.currentframe()
    try:
        for _ in range(2):
            frame = frame.f_back if frame is not None else None
        return str(frame.f_globals.get("__name__", "unknown")) if frame is not None else "unknown"
    finally:
        del frame
