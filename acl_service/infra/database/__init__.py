"""ACL store wiring: engine, sessions, schema helpers."""

from acl_service.infra.database.schema import create_schema, drop_schema
from acl_service.infra.database.session import (
    close_database,
    create_engine_from_settings,
    create_session_factory,
    get_async_session,
    init_database,
)

__all__ = [
    "close_database",
    "create_engine_from_settings",
    "create_schema",
    "create_session_factory",
    "drop_schema",
    "get_async_session",
    "init_database",
]
