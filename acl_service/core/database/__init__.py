"""Database building blocks: declarative base, repository, errors."""

from acl_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    IntegerPKMixin,
    TimestampedBase,
    TimestampMixin,
)
from acl_service.core.database.exceptions import (
    STORE_UNAVAILABLE_ERRORS,
    RepositoryError,
    is_store_unavailable,
    translate_store_errors,
)
from acl_service.core.database.repository import BULK_DELETE_WARN_THRESHOLD, BaseRepository

__all__ = [
    "BULK_DELETE_WARN_THRESHOLD",
    "NAMING_CONVENTION",
    "STORE_UNAVAILABLE_ERRORS",
    "Base",
    "BaseRepository",
    "IntegerPKMixin",
    "RepositoryError",
    "TimestampMixin",
    "TimestampedBase",
    "is_store_unavailable",
    "translate_store_errors",
]
