"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Usage:
    from acl_service.core.settings import get_acl_settings

    settings = get_acl_settings()  # First call: loads and validates
    settings = get_acl_settings()  # Subsequent calls: cached instance

Testing:
    clear_all_caches() forces a reload after changing the environment.
"""

from __future__ import annotations

from functools import lru_cache

from .acl import AclSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings."""
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_acl_settings() -> AclSettings:
    """Get cached permission engine settings."""
    return AclSettings()


def clear_all_caches() -> None:
    """Clear all settings caches, including the unified one."""
    from .unified import get_settings

    get_db_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_acl_settings.cache_clear()
    get_settings.cache_clear()
