"""Database repository exceptions.

Custom exceptions for repository operations that provide better
error messages and typing than raw SQLAlchemy exceptions, plus the
translation of driver-level connectivity failures into
``StoreUnavailableError``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from acl_service.core.exceptions import StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

# Driver/pool failures that mean "the store could not answer", as opposed to
# integrity or programming errors which indicate a bug and propagate as-is.
STORE_UNAVAILABLE_ERRORS: tuple[type[Exception], ...] = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    TimeoutError,
    ConnectionError,
)


class RepositoryError(Exception):
    """Base exception for repository operations.

    Raised when a repository operation fails due to programming
    errors, configuration issues, or unexpected states.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize repository error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


def is_store_unavailable(exc: BaseException) -> bool:
    """Check whether an exception means the store could not be reached.

    ``DBAPIError`` subclasses flagged with ``connection_invalidated`` also
    count, since the connection was dropped mid-statement.
    """
    if isinstance(exc, STORE_UNAVAILABLE_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@asynccontextmanager
async def translate_store_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise connectivity failures inside the block as StoreUnavailableError.

    Args:
        operation: Operation name recorded on the error and in logs
            (e.g., "acl.grant").

    Example:
            async with translate_store_errors("acl.find_by_resource"):
            result = await session.execute(stmt)
    """
    try:
        yield
    except Exception as exc:
        if not is_store_unavailable(exc):
            raise
        logger.error(
            "ACL store unavailable",
            extra={"operation": operation, "error": str(exc), "error_type": type(exc).__name__},
        )
        raise StoreUnavailableError(operation=operation) from exc


__all__ = [
    "STORE_UNAVAILABLE_ERRORS",
    "RepositoryError",
    "is_store_unavailable",
    "translate_store_errors",
]
