"""Minimal generic repository for SQLAlchemy models.

Provides an atomic upsert and delete logging with explicit session passing.
Queries use the session directly - this is a convenience, not a cage.

Example:
    from acl_service.core.database import BaseRepository
    from acl_service.features.permissions.models import AclEntry

    class AclEntryRepository(BaseRepository[AclEntry]):
        async def find_by_resource(self, session, resource_type, resource_id):
            stmt = select(AclEntry).where(
                AclEntry.resource_type == resource_type,
                AclEntry.resource_id == resource_id,
            )
            result = await session.execute(stmt)
            return result.scalars().all()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from acl_service.core.database.exceptions import RepositoryError
from acl_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

# Rows deleted in one statement above which the delete is logged at WARNING
BULK_DELETE_WARN_THRESHOLD = 10

T = TypeVar("T")

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class BaseRepository(Generic[T]):
    """Minimal generic repository.

    Provides:
        - upsert_one(session, values, ...) -> T | None
        - _log_delete(deleted_count, operation, ...) for DELETE statements

    Session is always explicit - no hidden state. This is a thin
    convenience layer, not an ORM wrapper.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class (e.g., AclEntry)
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def upsert_one(
        self,
        session: AsyncSession,
        values: Mapping[str, Any],
        *,
        conflict_columns: Sequence[str],
        update_values: Mapping[str, Any],
    ) -> T | None:
        """Insert a row or update it in place when the unique key exists.

        Uses ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING`` so the write
        is a single atomic statement; concurrent upserts on the same key
        resolve as last-writer-wins inside the database.

        Args:
            session: Database session
            values: Column values for the insert
            conflict_columns: Columns of the unique constraint to upsert on
            update_values: Column values applied when the row already exists

        Returns:
            The stored entity, or None if the statement returned no row

        Raises:
            ValueError: If conflict_columns or update_values is empty
            RepositoryError: If the dialect has no ON CONFLICT support
        """
        if not conflict_columns:
            raise ValueError("conflict_columns must not be empty")
        if not update_values:
            raise ValueError("update_values must not be empty")

        dialect = session.get_bind().dialect.name
        insert_factory = _UPSERT_DIALECTS.get(dialect)
        if insert_factory is None:
            raise RepositoryError(
                "Upsert is not supported for this dialect",
                details={"dialect": dialect, "model": self.model.__name__},
            )

        stmt = insert_factory(self.model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_=dict(update_values),
        ).returning(self.model)

        result = await session.execute(
            stmt,
            execution_options={"populate_existing": True},
        )
        instance = result.scalars().one_or_none()

        self._lazy.debug(
            lambda: f"db.upsert_one: {self.model.__name__}(conflict={list(conflict_columns)}) -> "
            f"{'stored' if instance is not None else 'no row'}"
        )
        return instance

    def _log_delete(self, deleted_count: int, operation: str, **context: Any) -> None:
        """Log a DELETE statement result.

        WARNING level for bulk deletes above the threshold (audit-worthy),
        DEBUG otherwise.
        """
        if deleted_count > BULK_DELETE_WARN_THRESHOLD:
            self._logger.warning(
                "Bulk delete executed",
                extra={
                    "entity": self.model.__name__,
                    "deleted": deleted_count,
                    "operation": operation,
                    **context,
                },
            )
        else:
            self._lazy.debug(
                lambda: f"{operation}: {self.model.__name__} -> {deleted_count} deleted"
            )


__all__ = [
    "BULK_DELETE_WARN_THRESHOLD",
    "BaseRepository",
]
