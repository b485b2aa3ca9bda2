"""Repository for the permissions feature (the ACL store)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, or_, select, update

from acl_service.core.database.exceptions import translate_store_errors
from acl_service.core.database.repository import BaseRepository
from acl_service.features.permissions.bits import PrincipalType
from acl_service.features.permissions.filters import filter_entries
from acl_service.features.permissions.models import ACL_UNIQUE_COLUMNS, AclEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from acl_service.features.permissions.schemas import Principal


def _principal_condition(principal_type: str, principal_id: str | None) -> ColumnElement[bool]:
    # Public entries are matched on type alone; any id on the query is ignored
    if principal_type == PrincipalType.PUBLIC:
        return AclEntry.principal_type == PrincipalType.PUBLIC.value
    return and_(
        AclEntry.principal_type == str(principal_type),
        AclEntry.principal_id == principal_id,
    )


def _principals_condition(principals: Iterable[Principal]) -> ColumnElement[bool] | None:
    # One branch per principal type keeps the expression shallow for long lists
    ids_by_type: dict[str, dict[str, None]] = {}
    for principal in principals:
        ids = ids_by_type.setdefault(principal.principal_type, {})
        if principal.principal_type != PrincipalType.PUBLIC:
            ids[principal.key] = None

    branches: list[ColumnElement[bool]] = []
    for principal_type, ids in ids_by_type.items():
        if principal_type == PrincipalType.PUBLIC:
            branches.append(AclEntry.principal_type == PrincipalType.PUBLIC.value)
        else:
            branches.append(
                and_(AclEntry.principal_type == principal_type, AclEntry.principal_id.in_(list(ids)))
            )
    if not branches:
        return None
    return or_(*branches)


def _tuple_condition(
    principal_type: str,
    principal_key: str,
    resource_type: str,
    resource_id: str,
) -> ColumnElement[bool]:
    return and_(
        AclEntry.principal_type == str(principal_type),
        AclEntry.principal_key == principal_key,
        AclEntry.resource_type == resource_type,
        AclEntry.resource_id == resource_id,
    )


class AclEntryRepository(BaseRepository[AclEntry]):
    """Repository for AclEntry model.

    Inherits from BaseRepository:
        - upsert_one(session, values, ...) -> AclEntry | None

    Every method runs a single statement, so each read sees one consistent
    snapshot and each write is atomic. Connectivity failures surface as
    StoreUnavailableError; an empty result is never an error.
    """

    def __init__(self) -> None:
        """Initialize with AclEntry model."""
        super().__init__(AclEntry)

    # ──────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────

    async def find_by_principal(
        self,
        session: AsyncSession,
        principal_type: PrincipalType | str,
        principal_id: str | None,
        resource_type: str | None = None,
    ) -> Sequence[AclEntry]:
        """List the entries granted to one principal.

        Args:
            session: Database session
            principal_type: Principal kind
            principal_id: Principal identifier (ignored for public)
            resource_type: Restrict to one resource type

        Returns:
            Entries ordered by id
        """
        stmt = select(AclEntry).where(_principal_condition(principal_type, principal_id))
        if resource_type is not None:
            stmt = stmt.where(AclEntry.resource_type == resource_type)
        stmt = stmt.order_by(AclEntry.id)

        async with translate_store_errors("acl.find_by_principal"):
            result = await session.execute(stmt)
            items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.find_by_principal({principal_type}:{principal_id}, "
            f"resource_type={resource_type!r}) -> {len(items)} entries"
        )
        return items

    async def find_by_resource(
        self,
        session: AsyncSession,
        resource_type: str,
        resource_id: str,
    ) -> Sequence[AclEntry]:
        """List every entry on one resource, ordered by id."""
        stmt = (
            select(AclEntry)
            .where(AclEntry.resource_type == resource_type, AclEntry.resource_id == resource_id)
            .order_by(AclEntry.id)
        )

        async with translate_store_errors("acl.find_by_resource"):
            result = await session.execute(stmt)
            items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.find_by_resource({resource_type}:{resource_id}) -> {len(items)} entries"
        )
        return items

    async def find_entry(
        self,
        session: AsyncSession,
        principal_type: PrincipalType | str,
        principal_key: str,
        resource_type: str,
        resource_id: str,
    ) -> AclEntry | None:
        """Get the single entry for a (principal, resource) tuple."""
        stmt = select(AclEntry).where(
            _tuple_condition(principal_type, principal_key, resource_type, resource_id)
        )

        async with translate_store_errors("acl.find_entry"):
            result = await session.execute(stmt)
            entry = result.scalar_one_or_none()

        self._lazy.debug(
            lambda: f"db.find_entry({principal_type}:{principal_key!r}, "
            f"{resource_type}:{resource_id}) -> {entry is not None}"
        )
        return entry

    async def find_candidates(
        self,
        session: AsyncSession,
        principals: Iterable[Principal],
        resource_type: str,
        resource_id: str | None = None,
        *,
        required_bits: int | None = None,
    ) -> Sequence[AclEntry]:
        """Raw candidate query: entries of any of ``principals`` on a resource type.

        No group-role filtering happens here.

        Args:
            session: Database session
            principals: Caller principals; matched with OR
            resource_type: Resource type to search
            resource_id: Restrict to one resource when given
            required_bits: Keep only entries with all of these bits set

        Returns:
            Entries ordered by id; empty without touching the store when
            ``principals`` is empty
        """
        principals = list(principals)
        condition = _principals_condition(principals)
        if condition is None:
            return []

        stmt = select(AclEntry).where(condition, AclEntry.resource_type == resource_type)
        if resource_id is not None:
            stmt = stmt.where(AclEntry.resource_id == resource_id)
        if required_bits is not None:
            bits = int(required_bits)
            stmt = stmt.where(AclEntry.perm_bits.bitwise_and(bits) == bits)
        stmt = stmt.order_by(AclEntry.id)

        async with translate_store_errors("acl.find_candidates"):
            result = await session.execute(stmt)
            items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.find_candidates({len(principals)} principals, {resource_type}:"
            f"{resource_id or '*'}, bits={required_bits}) -> {len(items)} entries"
        )
        return items

    async def find_by_principals_and_resource(
        self,
        session: AsyncSession,
        principals: Sequence[Principal],
        resource_type: str,
        resource_id: str,
        *,
        skip_group_role_check: bool = False,
    ) -> list[AclEntry]:
        """Entries of any principal on one resource, after group-role filtering."""
        candidates = await self.find_candidates(session, principals, resource_type, resource_id)
        return filter_entries(
            candidates,
            principals,
            skip_group_role_check=skip_group_role_check,
        )

    # ──────────────────────────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────────────────────────

    async def upsert(
        self,
        session: AsyncSession,
        *,
        principal_type: PrincipalType | str,
        principal_id: str | None,
        principal_model: str | None,
        resource_type: str,
        resource_id: str,
        perm_bits: int,
        granted_by: str | None,
        group_roles: list[str] | None,
        role_id: str | None = None,
        inherited_from: str | None = None,
    ) -> AclEntry | None:
        """Create or replace the entry for a (principal, resource) tuple.

        ``perm_bits``, ``group_roles``, ``principal_model`` and the grant audit
        fields are always written. ``role_id`` and ``inherited_from`` are only
        overwritten when given, so an existing value survives a grant that
        omits them.
        """
        now = datetime.now(UTC)
        values: dict[str, Any] = {
            "principal_type": str(principal_type),
            "principal_id": principal_id,
            "principal_key": principal_id or "",
            "principal_model": principal_model,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "perm_bits": int(perm_bits),
            "granted_by": granted_by,
            "granted_at": now,
            "group_roles": group_roles,
            "role_id": role_id,
            "inherited_from": inherited_from,
            "created_at": now,
            "updated_at": now,
        }
        update_values: dict[str, Any] = {
            "perm_bits": int(perm_bits),
            "principal_model": principal_model,
            "granted_by": granted_by,
            "granted_at": now,
            "group_roles": group_roles,
            "updated_at": now,
        }
        if role_id is not None:
            update_values["role_id"] = role_id
        if inherited_from is not None:
            update_values["inherited_from"] = inherited_from

        async with translate_store_errors("acl.upsert"):
            return await self.upsert_one(
                session,
                values,
                conflict_columns=ACL_UNIQUE_COLUMNS,
                update_values=update_values,
            )

    async def delete_entry(
        self,
        session: AsyncSession,
        principal_type: PrincipalType | str,
        principal_key: str,
        resource_type: str,
        resource_id: str,
    ) -> int:
        """Delete the entry for a tuple. Returns the number of rows removed (0 or 1)."""
        stmt = delete(AclEntry).where(
            _tuple_condition(principal_type, principal_key, resource_type, resource_id)
        )

        async with translate_store_errors("acl.delete_entry"):
            result = await session.execute(stmt)

        deleted = result.rowcount or 0
        self._log_delete(deleted, "db.delete_entry", resource_type=resource_type)
        return deleted

    async def apply_bit_delta(
        self,
        session: AsyncSession,
        principal_type: PrincipalType | str,
        principal_key: str,
        resource_type: str,
        resource_id: str,
        *,
        add_bits: int = 0,
        remove_bits: int = 0,
    ) -> AclEntry | None:
        """Set ``perm_bits = (perm_bits | add_bits) & ~remove_bits`` in one UPDATE.

        The arithmetic runs in the database against the current row, so
        concurrent deltas on the same entry compose instead of overwriting
        each other.

        Returns:
            The updated entry, or None when no entry exists for the tuple
        """
        new_bits = AclEntry.perm_bits.bitwise_or(int(add_bits)).bitwise_and(~int(remove_bits))
        stmt = (
            update(AclEntry)
            .where(_tuple_condition(principal_type, principal_key, resource_type, resource_id))
            .values(perm_bits=new_bits, updated_at=datetime.now(UTC))
            .returning(AclEntry)
            .execution_options(synchronize_session="fetch")
        )

        async with translate_store_errors("acl.apply_bit_delta"):
            result = await session.execute(
                stmt,
                execution_options={"populate_existing": True},
            )
            entry = result.scalars().one_or_none()

        self._lazy.debug(
            lambda: f"db.apply_bit_delta({principal_type}:{principal_key!r}, {resource_type}:"
            f"{resource_id}, +{add_bits}/-{remove_bits}) -> "
            f"{entry.perm_bits if entry is not None else 'no entry'}"
        )
        return entry

    async def delete_by_resource(
        self,
        session: AsyncSession,
        resource_type: str,
        resource_id: str,
    ) -> int:
        """Delete every entry on a resource. Returns rows removed."""
        stmt = delete(AclEntry).where(
            AclEntry.resource_type == resource_type,
            AclEntry.resource_id == resource_id,
        )

        async with translate_store_errors("acl.delete_by_resource"):
            result = await session.execute(stmt)

        deleted = result.rowcount or 0
        self._log_delete(
            deleted,
            "db.delete_by_resource",
            resource_type=resource_type,
            resource_id=resource_id,
        )
        return deleted

    async def delete_by_principal(
        self,
        session: AsyncSession,
        principal_type: PrincipalType | str,
        principal_id: str | None,
    ) -> int:
        """Delete every entry granted to a principal. Returns rows removed."""
        stmt = delete(AclEntry).where(_principal_condition(principal_type, principal_id))

        async with translate_store_errors("acl.delete_by_principal"):
            result = await session.execute(stmt)

        deleted = result.rowcount or 0
        self._log_delete(
            deleted,
            "db.delete_by_principal",
            principal_type=str(principal_type),
            principal_id=principal_id,
        )
        return deleted


# Factory function for dependency injection
_acl_entry_repository: AclEntryRepository | None = None


def get_acl_entry_repository() -> AclEntryRepository:
    """Get the shared AclEntryRepository instance.

    The repository holds no state besides its loggers, so one instance
    serves every session.
    """
    global _acl_entry_repository
    if _acl_entry_repository is None:
        _acl_entry_repository = AclEntryRepository()
    return _acl_entry_repository
