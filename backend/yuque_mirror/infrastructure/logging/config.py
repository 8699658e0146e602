"""Environment-aware logging setup.

Handlers per environment:
- local: colored detailed console, plus a structured log file when enabled
- staging: console in ``LOG_FORMAT``, plus a structured log file when enabled
- production: JSON console only, with httpx and SQLAlchemy quietened

Tests call ``configure_testing_logging`` to silence everything below ERROR.
"""

import logging

from ..config.settings import EnvironmentOption, Settings, get_settings
from .handlers import create_console_handler, create_file_handler, create_null_handler

_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine", "sqlalchemy.pool")


def setup_logging_configuration() -> None:
    """Install the root handlers for the current environment.

    Called once, lazily, by the logger factory.
    """
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in _handlers_for(settings):
        root_logger.addHandler(handler)
    root_logger.setLevel(settings.LOG_LEVEL_INT)

    if settings.ENVIRONMENT == EnvironmentOption.PRODUCTION:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _handlers_for(settings: Settings) -> list[logging.Handler]:
    stamp = settings.LOG_SYNC_RUN_ID
    handlers: list[logging.Handler] = []

    if settings.LOG_CONSOLE_ENABLED:
        if settings.ENVIRONMENT == EnvironmentOption.PRODUCTION:
            level = logging.WARNING if settings.LOG_PRODUCTION_OPTIMIZE else settings.LOG_LEVEL_INT
            handlers.append(create_console_handler("json", level, use_colors=False, stamp_run_id=stamp))
        elif settings.ENVIRONMENT == EnvironmentOption.STAGING:
            handlers.append(
                create_console_handler(settings.LOG_FORMAT, settings.LOG_LEVEL_INT, use_colors=False, stamp_run_id=stamp)
            )
        else:
            level = logging.DEBUG if settings.LOG_DEVELOPMENT_VERBOSE else settings.LOG_LEVEL_INT
            handlers.append(create_console_handler("detailed", level, use_colors=True, stamp_run_id=stamp))

    if settings.LOG_FILE_ENABLED and settings.ENVIRONMENT != EnvironmentOption.PRODUCTION:
        handlers.append(
            create_file_handler(
                settings.LOG_FILE_PATH,
                max_bytes=settings.LOG_FILE_MAX_SIZE,
                backup_count=settings.LOG_FILE_BACKUP_COUNT,
                stamp_run_id=stamp,
            )
        )

    return handlers


def configure_testing_logging() -> None:
    """Discard log output below ERROR; meant for test setup."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(create_null_handler())
    root_logger.setLevel(logging.ERROR)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


def get_configured_logger(name: str) -> logging.Logger:
    """A logger under the configured root logger."""
    return logging.getLogger(name)
