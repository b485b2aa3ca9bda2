"""Lazy evaluation support for logging.

Debug messages in the hot permission paths are built from lambdas so the
f-string (and anything it calls) only runs when DEBUG is enabled:

    logger = get_lazy_logger(__name__)
    logger.debug(lambda: f"candidates: {[e.id for e in entries]}")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any


class LazyString:
    """String whose value is computed on first ``str()``."""

    __slots__ = ("_func",)

    def __init__(self, func: Callable[[], Any]) -> None:
        self._func = func

    def __str__(self) -> str:
        return str(self._func())

    def __repr__(self) -> str:
        return f"LazyString({self._func!r})"


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that evaluates callable messages and args lazily.

    The level check happens before any callable is invoked. Context bound
    at construction is merged with the ``extra`` of each call, call values
    winning on key collisions.

    Example:
        logger = LazyLoggerAdapter(logging.getLogger(__name__), {"component": "acl"})
        logger.debug(lambda: f"Evaluated {len(entries)} entries")
        logger.info("Granted %s", lambda: describe(entry))
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log message, resolving callables only if ``level`` is enabled."""
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()
        if args:
            args = tuple(arg() if callable(arg) else arg for arg in args)

        super().log(level, msg, *args, **kwargs)

    def exception(self, msg: Any, *args: Any, exc_info: Any = True, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**(self.extra or {}), **extra}
        return msg, kwargs


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Get logger with lazy evaluation support.

    Args:
        name: Logger name (usually __name__).
        **context: Optional fields bound to every record.

    Returns:
        Logger adapter with lazy evaluation support.
    """
    return LazyLoggerAdapter(logging.getLogger(name), context or {})


def lazy(func: Callable[[], Any]) -> LazyString:
    """Wrap a callable for use as a ``%s`` argument on a plain logger."""
    return LazyString(func)
