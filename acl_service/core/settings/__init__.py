"""Pydantic Settings v2 configuration.

Settings are split by domain (db/logging/acl), frozen, and loaded from
environment variables or a ``.env`` file.

Import settings via cached loaders:
    from acl_service.core.settings import get_db_settings

Or use unified settings:
    from acl_service.core.settings import get_settings
"""

from __future__ import annotations

from .acl import AclSettings
from .loader import (
    clear_all_caches,
    get_acl_settings,
    get_db_settings,
    get_logging_settings,
)
from .logs import LoggingSettings
from .postgres import SQLITE_FALLBACK_URL, PostgresSettings
from .unified import Settings, get_settings

__all__ = [
    "SQLITE_FALLBACK_URL",
    "AclSettings",
    "LoggingSettings",
    "PostgresSettings",
    "Settings",
    "clear_all_caches",
    "get_acl_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_settings",
]
