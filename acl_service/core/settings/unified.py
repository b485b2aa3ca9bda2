"""Unified settings composition for convenient access.

Usage:
    from acl_service.core.settings import get_settings

    settings = get_settings()
    settings.db.get_sqlalchemy_url()
    settings.acl.max_principals

Each nested settings class still loads from its own environment prefix
(DB_, LOG_, ACL_).
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .acl import AclSettings
from .loader import get_acl_settings, get_db_settings, get_logging_settings
from .logs import LoggingSettings
from .postgres import PostgresSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings.

    Example:
        settings = Settings(acl=AclSettings(max_principals=10))
        assert settings.acl.max_principals == 10
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
    )

    db: PostgresSettings = Field(default_factory=get_db_settings)
    logging: LoggingSettings = Field(default_factory=get_logging_settings)
    acl: AclSettings = Field(default_factory=get_acl_settings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get unified settings instance (cached)."""
    return Settings()
