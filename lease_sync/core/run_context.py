"""Sync run context for correlating log lines of a single run."""

import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for the active sync run
sync_run_id_var: ContextVar[Optional[str]] = ContextVar("sync_run_id", default=None)


def start_run_context() -> str:
    """Start a new run context.

    Returns:
        The generated run id
    """
    run_id = uuid.uuid4().hex[:12]
    sync_run_id_var.set(run_id)
    return run_id


def get_run_context() -> str | None:
    """Get the current sync run id."""
    return sync_run_id_var.get()


def clear_run_context() -> None:
    """Clear the current run context."""
    sync_run_id_var.set(None)
