"""Logging context: process role and pid plus per-task fields.

The role and pid describe the whole process and are kept in module state, so
lines logged from the server's request threads and the poller's watcher
thread carry them too. Per-task fields (such as the poll cycle) live in a
``ContextVar`` and only apply to the code running inside ``log_context``.
"""

from __future__ import annotations

import contextvars
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

domain_context_var: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "domain_context", default={}
)

_process_context: dict[str, Any] = {}
_process_lock = threading.Lock()


def get_domain_context() -> dict[str, Any]:
    """Get the current domain context."""
    return domain_context_var.get({})


def set_process_role(role: str) -> None:
    """Tag every subsequent log line of this process, from any thread, with role and pid.

    The poller and the server child share one stderr, so the role is what
    tells their lines apart.
    """
    with _process_lock:
        _process_context.update(role=role, pid=os.getpid())


def get_process_context() -> dict[str, Any]:
    with _process_lock:
        return dict(_process_context)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Temporarily add ``fields`` to the domain context."""
    token = domain_context_var.set({**get_domain_context(), **fields})
    try:
        yield
    finally:
        domain_context_var.reset(token)


def get_log_context() -> dict[str, Any]:
    """Return the fields the formatters attach to each record."""
    return {**get_process_context(), **get_domain_context()}


__all__ = [
    "get_domain_context",
    "set_process_role",
    "get_process_context",
    "log_context",
    "get_log_context",
]
