"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: SQLAlchemy engine, sessions and session factory
    - Permission Fixtures: repository, service and principal helpers

Every database test gets its own SQLite file under ``tmp_path`` so sessions
opened by the service and sessions opened by the test see the same data
through separate connections.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from acl_service.features.permissions import AclEntryRepository, PermissionService

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("ACL_LOG_DECISIONS", "false")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine on a throwaway SQLite file with the schema applied.

    Yields:
        Async SQLAlchemy engine with the ACL tables created.
    """
    from acl_service.infra.database import create_schema

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'acl.db'}",
        echo=False,
    )
    await create_schema(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, as the service receives it."""
    from acl_service.infra.database import create_session_factory

    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a session that is rolled back after the test.

    Example:
        async def test_upsert(db_session, acl_repo):
            entry = await acl_repo.upsert(db_session, ...)
            assert entry.id is not None
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Permission Fixtures
# ============================================================================


@pytest.fixture
def acl_repo() -> AclEntryRepository:
    """Fresh AclEntryRepository."""
    from acl_service.features.permissions import AclEntryRepository

    return AclEntryRepository()


@pytest.fixture
def permission_service(
    session_factory: async_sessionmaker[AsyncSession],
    acl_repo: AclEntryRepository,
) -> PermissionService:
    """PermissionService opening its own sessions on the test database."""
    from acl_service.core.settings import AclSettings
    from acl_service.features.permissions import PermissionService

    return PermissionService(session_factory, repo=acl_repo, settings=AclSettings())


@pytest.fixture
def user_principal() -> dict[str, str]:
    """Principal mapping for user ``u1``."""
    return {"principal_type": "user", "principal_id": "u1"}
