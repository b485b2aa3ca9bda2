"""Permission engine settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AclSettings(BaseSettings):
    """Tuning knobs for permission evaluation.

    Environment variables use ACL_ prefix.
    Example: ACL_MAX_PRINCIPALS=500, ACL_LOG_DECISIONS=true
    """

    max_principals: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Upper bound on the number of principals accepted by one query.",
    )
    statement_timeout: float | None = Field(
        default=None,
        gt=0,
        le=300.0,
        description=(
            "Per-statement timeout in seconds for ACL store queries. "
            "None leaves the driver default in place."
        ),
    )
    log_decisions: bool = Field(
        default=False,
        description="Log every permission decision at DEBUG.",
    )

    model_config = SettingsConfigDict(
        env_prefix="ACL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
