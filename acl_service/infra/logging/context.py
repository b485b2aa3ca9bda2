"""Context management for structured logging.

Fields set with ``set_log_context`` live in a ``ContextVar`` so each asyncio
task sees its own copy; ``ContextInjectingFilter`` copies them onto every
record so formatters (JSONFormatter in particular) emit them without the
call sites passing ``extra``.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        set_log_context(actor_id="u-42", operation="acl.grant")
        logger.info("Granting access")  # record carries actor_id and operation
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Drop every field from the current logging context."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from the current logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Copy context fields onto each LogRecord.

    Attributes already present on the record (including ones passed via
    ``extra``) are never overwritten. Always returns True.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
