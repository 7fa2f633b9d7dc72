"""
Run ID tracking for trace processing.

Every trace analysed by the CLI runs inside a run context so that log lines
emitted by the reader, the reassembler and the pairing engine can be grouped
per run, even when several traces are processed by one process.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "current_run_id",
    "new_run_id",
    "run_context",
    "set_run_id",
]

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "duml_trace_run_id",
    default=None,
)


def new_run_id() -> str:
    """
    Generate a new run ID.

    Returns:
        UUID4 hex string without dashes
    """
    return uuid.uuid4().hex


def current_run_id() -> str | None:
    """Return the run ID bound to the current context, if any."""
    return _run_id.get()


def set_run_id(run_id: str | None) -> None:
    _run_id.set(run_id)


@contextmanager
def run_context(run_id: str | None = None) -> Generator[str]:
    """
    Bind a run ID for the duration of the block.

    A fresh ID is generated when none is given. The previously bound ID is
    restored on exit, also when the block raises.

    Example:
        with run_context() as run_id:
            packets = reassembler.reassemble(read_trace(path))
    """
    previous = current_run_id()
    run_id = run_id or new_run_id()
    set_run_id(run_id)
    try:
        yield run_id
    finally:
        set_run_id(previous)
