"""Sync run id bound to the current context.

The orchestrator binds a fresh id for the duration of each run, and the
logging handlers stamp it on every record emitted from that run.
"""

import contextvars
import uuid

NO_SYNC_RUN = "no-sync-run"

sync_run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("sync_run_id")


def set_sync_run_id(run_id: str) -> contextvars.Token[str]:
    """Bind a sync run id to the current context.

    Args:
        run_id: Identifier of the sync run being executed

    Returns:
        Token that restores the previous value via ``reset_sync_run_id``
    """
    return sync_run_id_var.set(run_id)


def reset_sync_run_id(token: contextvars.Token[str]) -> None:
    """Restore the sync run id that was active before ``set_sync_run_id``."""
    sync_run_id_var.reset(token)


def get_sync_run_id() -> str | None:
    """The sync run id of the current context, or None outside a run."""
    try:
        return sync_run_id_var.get()
    except LookupError:
        return None


def generate_sync_run_id() -> str:
    """Short random id for a new sync run."""
    return uuid.uuid4().hex[:12]
