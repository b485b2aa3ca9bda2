"""SQLAlchemy models for the permissions feature."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from acl_service.core.database import TimestampedBase

# Columns of the one-entry-per-(principal, resource) constraint; grants upsert on it
ACL_UNIQUE_COLUMNS: tuple[str, ...] = (
    "principal_type",
    "principal_key",
    "resource_type",
    "resource_id",
)


class AclEntry(TimestampedBase):
    """One grant of permission bits from a principal to a resource.

    ``principal_id`` is NULL for the public principal; ``principal_key``
    mirrors it with ``""`` instead of NULL so the uniqueness constraint also
    holds for public entries. ``group_roles`` is only set on group entries;
    an empty or NULL list means every member of the group is covered.
    """

    __tablename__ = "acl_entries"
    __table_args__ = (
        UniqueConstraint(*ACL_UNIQUE_COLUMNS, name="uq_acl_entries_principal_resource"),
        CheckConstraint("perm_bits >= 0", name="perm_bits_non_negative"),
        Index("ix_acl_entries_resource", "resource_type", "resource_id"),
        Index("ix_acl_entries_principal", "principal_type", "principal_id", "resource_type"),
    )

    principal_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="user, group, public or role",
    )
    principal_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="User/group id or role key; NULL for public",
    )
    principal_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="principal_id, or empty string for public",
    )
    principal_model: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="User, Group or Role; NULL for public",
    )
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(255), nullable=False)
    perm_bits: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Permission bitmask",
    )
    role_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Access-role template the bits were derived from (informational)",
    )
    inherited_from: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group_roles: Mapped[list[str] | None] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
        comment="Group member roles covered by a group entry",
    )
    granted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    @property
    def is_group_scoped(self) -> bool:
        """True for group entries that restrict which member roles they cover."""
        return self.principal_type == "group" and bool(self.group_roles)

    def has_bits(self, bits: int) -> bool:
        """True when every bit of ``bits`` is set on this entry."""
        return (self.perm_bits & bits) == bits

    def __repr__(self) -> str:
        """Return entry summary for debugging."""
        return (
            f"<AclEntry(id={self.id}, principal={self.principal_type}:{self.principal_id}, "
            f"resource={self.resource_type}:{self.resource_id}, perm_bits={self.perm_bits})>"
        )
