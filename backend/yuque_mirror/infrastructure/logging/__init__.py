"""Centralized logging infrastructure for yuque-mirror.

Provides an environment-aware logging setup driven by application settings,
and a small API for obtaining loggers.

Usage:
    ```python
    from yuque_mirror.infrastructure.logging import get_logger

    logger = get_logger()  # Auto-detects module name
    logger.info("Sync started", extra={"book_count": 2})
    ```
"""

from .config import configure_testing_logging, setup_logging_configuration
from .context import generate_sync_run_id, get_sync_run_id, reset_sync_run_id, set_sync_run_id
from .factory import configure_logging, create_child_logger, get_logger

__all__ = [
    "get_logger",
    "create_child_logger",
    "configure_logging",
    "configure_testing_logging",
    "setup_logging_configuration",
    "generate_sync_run_id",
    "get_sync_run_id",
    "set_sync_run_id",
    "reset_sync_run_id",
]
