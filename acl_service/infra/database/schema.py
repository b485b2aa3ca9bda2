"""Create and drop the ACL tables without a migration tool.

Intended for tests, local development and ephemeral deployments; both
operations are idempotent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from acl_service.core.database.base import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def _register_models() -> None:
    # Importing the models module attaches its tables to Base.metadata
    from acl_service.features.permissions import models  # noqa: F401


async def create_schema(engine: AsyncEngine) -> list[str]:
    """Create every mapped table that does not exist yet.

    Returns:
        Names of the tables known to the metadata.
    """
    _register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    tables = sorted(Base.metadata.tables)
    logger.info("Schema created", extra={"tables": tables, "operation": "db.create_schema"})
    return tables


async def drop_schema(engine: AsyncEngine) -> None:
    """Drop every mapped table that exists."""
    _register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all, checkfirst=True)
    logger.info("Schema dropped", extra={"operation": "db.drop_schema"})
