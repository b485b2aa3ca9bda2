"""Database engine and session management with psycopg3 async driver.

Nothing connects at import time: callers build an engine from settings and
hand the resulting session factory to the services that need it.

Example:
    engine = create_engine_from_settings()
    await init_database(engine)
    session_factory = create_session_factory(engine)
    service = PermissionService(session_factory)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from acl_service.core.database.exceptions import STORE_UNAVAILABLE_ERRORS
from acl_service.core.settings import get_acl_settings, get_db_settings
from acl_service.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from acl_service.core.settings import AclSettings, PostgresSettings

logger = logging.getLogger(__name__)


def _safe_url(engine: AsyncEngine) -> str:
    return engine.url.render_as_string(hide_password=True)


def create_engine_from_settings(
    db_settings: PostgresSettings | None = None,
    acl_settings: AclSettings | None = None,
) -> AsyncEngine:
    """Create the async engine for the ACL store.

    ``AclSettings.statement_timeout`` becomes a server-side
    ``statement_timeout`` on PostgreSQL and the busy timeout on SQLite.
    """
    db_settings = db_settings or get_db_settings()
    acl_settings = acl_settings or get_acl_settings()

    url = db_settings.get_sqlalchemy_url()
    engine_kwargs: dict[str, Any] = db_settings.sqlalchemy_engine_kwargs()

    timeout = acl_settings.statement_timeout
    if timeout is not None:
        connect_args = dict(engine_kwargs.get("connect_args", {}))
        if make_url(url).get_backend_name() == "postgresql":
            connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
        else:
            connect_args["timeout"] = timeout
        engine_kwargs["connect_args"] = connect_args

    engine = create_async_engine(url, **engine_kwargs)
    logger.info(
        "Database engine created",
        extra={"url": _safe_url(engine), "dialect": engine.dialect.name},
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``.

    Objects stay usable after commit so services can return them.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Open a session from ``session_factory`` and close it on exit.

    Example:
        async with get_async_session(session_factory) as session:
            entries = await repo.find_by_resource(session, "agent", "a1")
    """
    async with session_factory() as session:
        yield session


async def init_database(
    engine: AsyncEngine,
    db_settings: PostgresSettings | None = None,
) -> None:
    """Probe store connectivity with exponential backoff.

    Uses startup retry settings from PostgresSettings:
    - startup_retry_attempts: Maximum number of probes
    - startup_retry_delay: Initial delay between probes
    - startup_retry_timeout: Total time budget

    Raises:
        RetryError: If the store is still unreachable after all attempts.
    """
    db_settings = db_settings or get_db_settings()

    logger.info(
        "Initializing database connection with retry",
        extra={
            "max_attempts": db_settings.startup_retry_attempts,
            "initial_delay": db_settings.startup_retry_delay,
        },
    )

    @retry(
        max_attempts=db_settings.startup_retry_attempts,
        initial_delay=db_settings.startup_retry_delay,
        max_delay=30.0,
        exponential_base=2.0,
        jitter=True,
        exceptions=STORE_UNAVAILABLE_ERRORS,
        stop_after_delay=db_settings.startup_retry_timeout,
    )
    async def _probe() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await _probe()
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": _safe_url(engine), "error": str(e)},
        )
        raise

    logger.info(
        "Database connection established successfully",
        extra={"url": _safe_url(engine), "dialect": engine.dialect.name},
    )


async def close_database(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool.

    Called during application shutdown; errors are logged, not raised.
    """
    logger.info("Closing database connection")
    try:
        await engine.dispose()
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    else:
        logger.info("Database connection closed successfully")
