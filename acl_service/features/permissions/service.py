"""Service layer for the permissions feature.

``PermissionService`` evaluates, lists, grants, revokes and modifies
bitmask permissions. Every public method takes an optional ``session``:

- given: the operation joins the caller's transaction and never commits,
  so several grants can be made all-or-nothing;
- omitted: the service opens a session from its factory and commits
  mutations before returning.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from acl_service.core.database.exceptions import translate_store_errors
from acl_service.core.exceptions import PermissionDeniedError, ValidationException
from acl_service.core.services import BaseService
from acl_service.core.settings import get_acl_settings
from acl_service.features.permissions.bits import (
    ALL_GROUP_ROLES,
    PRINCIPAL_MODELS,
    PrincipalType,
)
from acl_service.features.permissions.filters import any_entry_matches, filter_entries
from acl_service.features.permissions.repository import (
    AclEntryRepository,
    get_acl_entry_repository,
)
from acl_service.features.permissions.schemas import (
    parse_principals,
    principal_from,
    validate_group_roles,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Mapping

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from acl_service.core.settings import AclSettings
    from acl_service.features.permissions.bits import GroupRole
    from acl_service.features.permissions.models import AclEntry
    from acl_service.features.permissions.schemas import Principal

    PrincipalInput = Iterable[Principal | Mapping[str, Any]]


def _non_negative(name: str, value: int | None) -> int:
    bits = int(value or 0)
    if bits < 0:
        raise ValidationException(
            detail=f"{name} must be a non-negative integer",
            extra={name: bits},
        )
    return bits


class PermissionService(BaseService):
    """Permission evaluation and ACL mutation.

    Stateless apart from the injected session factory, repository and
    settings; safe to share between concurrent tasks.

    Example:
        service = PermissionService(session_factory)
        await service.grant("user", "u1", "agent", "a1", PermissionBits.VIEW, "admin")
        await service.has_permission(
            [{"principal_type": "user", "principal_id": "u1"}],
            "agent", "a1", PermissionBits.VIEW,
        )  # True
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repo: AclEntryRepository | None = None,
        settings: AclSettings | None = None,
    ) -> None:
        """Initialize the permission service.

        Args:
            session_factory: Factory for sessions opened by the service itself
            repo: ACL entry repository (optional, uses default if not provided)
            settings: Engine settings (optional, loaded from environment if not provided)
        """
        super().__init__()
        self._session_factory = session_factory
        self._repo = repo or get_acl_entry_repository()
        self._settings = settings or get_acl_settings()

    # ──────────────────────────────────────────────────────────────
    # Session handling
    # ──────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def _read_session(self, session: AsyncSession | None) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self._session_factory() as own:
            yield own

    @asynccontextmanager
    async def _write_session(
        self,
        session: AsyncSession | None,
        operation: str,
    ) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        # Covers the commit issued when the transaction block exits
        async with translate_store_errors(operation):
            async with self._session_factory() as own, own.begin():
                yield own

    def _principals(self, principals: PrincipalInput) -> list[Principal]:
        parsed = parse_principals(principals)
        limit = self._settings.max_principals
        if len(parsed) > limit:
            raise ValidationException(
                detail=f"Too many principals: {len(parsed)} exceeds the limit of {limit}",
                extra={"principal_count": len(parsed), "max_principals": limit},
            )
        return parsed

    def _log_decision(self, operation: str, outcome: Any, **context: Any) -> None:
        if self._settings.log_decisions:
            self._lazy.debug(
                lambda: f"{operation}({', '.join(f'{k}={v!r}' for k, v in context.items())})"
                f" -> {outcome!r}"
            )

    # ──────────────────────────────────────────────────────────────
    # Evaluation
    # ──────────────────────────────────────────────────────────────

    async def has_permission(
        self,
        principals: PrincipalInput,
        resource_type: str,
        resource_id: str,
        bit: int,
        *,
        skip_group_role_check: bool = False,
        session: AsyncSession | None = None,
    ) -> bool:
        """Check whether any principal holds every bit of ``bit`` on a resource.

        Args:
            principals: Caller principals (objects or mappings)
            resource_type: Resource type
            resource_id: Resource identifier
            bit: Required permission bit(s); all must be set on one entry
            skip_group_role_check: Treat group-scoped entries as matching
            session: Caller's session; a fresh one is opened when omitted

        Returns:
            True if at least one entry grants the bits after group-role
            filtering. An empty principal list is always False.

        Raises:
            InvalidPrincipalError: If a principal is malformed
            StoreUnavailableError: If the ACL store cannot be reached
        """
        parsed = self._principals(principals)
        required = _non_negative("bit", bit)

        async with self._read_session(session) as db:
            candidates = await self._repo.find_candidates(
                db,
                parsed,
                resource_type,
                resource_id,
                required_bits=required,
            )

        allowed = any_entry_matches(
            candidates,
            parsed,
            skip_group_role_check=skip_group_role_check,
        )
        self._log_decision(
            "acl.has_permission",
            allowed,
            resource=f"{resource_type}:{resource_id}",
            bit=required,
            principals=len(parsed),
        )
        return allowed

    async def find_entries_by_principals_and_resource(
        self,
        principals: PrincipalInput,
        resource_type: str,
        resource_id: str,
        *,
        skip_group_role_check: bool = False,
        session: AsyncSession | None = None,
    ) -> list[AclEntry]:
        """Entries of any principal on one resource, after group-role filtering."""
        parsed = self._principals(principals)
        async with self._read_session(session) as db:
            return await self._repo.find_by_principals_and_resource(
                db,
                parsed,
                resource_type,
                resource_id,
                skip_group_role_check=skip_group_role_check,
            )

    async def get_effective_permissions(
        self,
        principals: PrincipalInput,
        resource_type: str,
        resource_id: str,
        *,
        session: AsyncSession | None = None,
    ) -> int:
        """Union of the bits granted to the principals on a resource.

        The OR runs over exactly the entries returned by
        find_entries_by_principals_and_resource, so group-scoped entries the
        caller's group role does not cover contribute nothing.

        Returns:
            Combined mask; 0 when nothing matches
        """
        entries = await self.find_entries_by_principals_and_resource(
            principals,
            resource_type,
            resource_id,
            session=session,
        )
        effective = 0
        for entry in entries:
            effective |= entry.perm_bits

        self._log_decision(
            "acl.get_effective_permissions",
            effective,
            resource=f"{resource_type}:{resource_id}",
            entries=len(entries),
        )
        return effective

    async def require_permission(
        self,
        principals: PrincipalInput,
        resource_type: str,
        resource_id: str,
        bit: int,
        *,
        skip_group_role_check: bool = False,
        session: AsyncSession | None = None,
    ) -> None:
        """Raise PermissionDeniedError unless has_permission is True.

        Raises:
            PermissionDeniedError: If no entry grants ``bit``
        """
        allowed = await self.has_permission(
            principals,
            resource_type,
            resource_id,
            bit,
            skip_group_role_check=skip_group_role_check,
            session=session,
        )
        if not allowed:
            self.logger.info(
                "Permission denied",
                extra={
                    "resource_type": resource_type,
                    "resource_id": resource_id,
                    "bit": int(bit),
                    "operation": "acl.require_permission",
                },
            )
            raise PermissionDeniedError(resource_type, resource_id, bit)

    async def find_accessible_resources(
        self,
        principals: PrincipalInput,
        resource_type: str,
        required_bit: int,
        *,
        skip_group_role_check: bool = False,
        session: AsyncSession | None = None,
    ) -> list[str]:
        """Ids of resources of a type on which the principals hold ``required_bit``.

        Returns:
            Distinct resource ids in ascending order
        """
        parsed = self._principals(principals)
        required = _non_negative("required_bit", required_bit)

        async with self._read_session(session) as db:
            candidates = await self._repo.find_candidates(
                db,
                parsed,
                resource_type,
                required_bits=required,
            )

        matching = filter_entries(
            candidates,
            parsed,
            skip_group_role_check=skip_group_role_check,
        )
        resource_ids = sorted({entry.resource_id for entry in matching})

        self._lazy.debug(
            lambda: f"acl.find_accessible_resources({resource_type}, bit={required}) -> "
            f"{len(resource_ids)} resources from {len(candidates)} candidates"
        )
        return resource_ids

    # ──────────────────────────────────────────────────────────────
    # Mutation
    # ──────────────────────────────────────────────────────────────

    async def grant(
        self,
        principal_type: PrincipalType | str,
        principal_id: str | None,
        resource_type: str,
        resource_id: str,
        perm_bits: int,
        granted_by: str | None,
        *,
        role_id: str | None = None,
        group_roles: Iterable[GroupRole | str] | None = None,
        inherited_from: str | None = None,
        session: AsyncSession | None = None,
    ) -> AclEntry | None:
        """Create or replace the entry for a (principal, resource) pair.

        ``perm_bits`` replaces the stored mask; use modify_permission_bits to
        add or remove individual bits. Group grants without ``group_roles``
        cover every member role. ``group_roles`` is ignored for other
        principal types and any stored value is cleared.

        Args:
            principal_type: Principal kind
            principal_id: Principal identifier (None for public)
            resource_type: Resource type
            resource_id: Resource identifier
            perm_bits: New permission mask
            granted_by: Actor recorded on the entry
            role_id: Access-role template id; kept as-is when omitted
            group_roles: Member roles a group grant is restricted to
            inherited_from: Source the grant was inherited from; kept when omitted
            session: Caller's session; a fresh committed one when omitted

        Returns:
            The stored entry, or None if the store returned none

        Raises:
            InvalidPrincipalError: If the principal is malformed
            ValidationException: If perm_bits is negative or a group role is unknown
            StoreUnavailableError: If the ACL store cannot be reached
        """
        principal = principal_from(principal_type, principal_id)
        bits = _non_negative("perm_bits", perm_bits)
        ptype = PrincipalType(principal.principal_type)

        stored_roles: list[str] | None = None
        if ptype == PrincipalType.GROUP:
            stored_roles = validate_group_roles(group_roles) or [r.value for r in ALL_GROUP_ROLES]

        async with self._write_session(session, "acl.grant") as db:
            entry = await self._repo.upsert(
                db,
                principal_type=ptype.value,
                principal_id=principal.key or None,
                principal_model=PRINCIPAL_MODELS[ptype].value if ptype in PRINCIPAL_MODELS else None,
                resource_type=resource_type,
                resource_id=resource_id,
                perm_bits=bits,
                granted_by=granted_by,
                group_roles=stored_roles,
                role_id=role_id,
                inherited_from=inherited_from,
            )

        self.logger.info(
            "Access granted",
            extra={
                "principal_type": ptype.value,
                "principal_id": principal.key or None,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "perm_bits": bits,
                "group_roles": stored_roles,
                "granted_by": granted_by,
                "operation": "acl.grant",
            },
        )
        return entry

    async def revoke(
        self,
        principal_type: PrincipalType | str,
        principal_id: str | None,
        resource_type: str,
        resource_id: str,
        *,
        session: AsyncSession | None = None,
    ) -> bool:
        """Delete the entry for a (principal, resource) pair.

        Revoking an entry that does not exist is not an error.

        Returns:
            True if an entry was removed
        """
        principal = principal_from(principal_type, principal_id)

        async with self._write_session(session, "acl.revoke") as db:
            deleted = await self._repo.delete_entry(
                db,
                principal.principal_type,
                principal.key,
                resource_type,
                resource_id,
            )

        self.logger.info(
            "Access revoked" if deleted else "Revoke found no entry",
            extra={
                "principal_type": principal.principal_type,
                "principal_id": principal.key or None,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "deleted": deleted,
                "operation": "acl.revoke",
            },
        )
        return deleted > 0

    async def modify_permission_bits(
        self,
        principal_type: PrincipalType | str,
        principal_id: str | None,
        resource_type: str,
        resource_id: str,
        *,
        add_bits: int | None = None,
        remove_bits: int | None = None,
        session: AsyncSession | None = None,
    ) -> AclEntry | None:
        """Add and/or remove bits on an existing entry in one atomic update.

        The stored mask becomes ``(perm_bits | add_bits) & ~remove_bits``,
        so a bit named in both ends up cleared. A missing entry is a no-op;
        nothing is created.

        Returns:
            The updated entry; the unchanged current entry when neither
            ``add_bits`` nor ``remove_bits`` is given; None if no entry exists

        Raises:
            InvalidPrincipalError: If the principal is malformed
            ValidationException: If a mask is negative
            StoreUnavailableError: If the ACL store cannot be reached
        """
        principal = principal_from(principal_type, principal_id)
        add = _non_negative("add_bits", add_bits)
        remove = _non_negative("remove_bits", remove_bits)

        if not add and not remove:
            async with self._read_session(session) as db:
                return await self._repo.find_entry(
                    db,
                    principal.principal_type,
                    principal.key,
                    resource_type,
                    resource_id,
                )

        async with self._write_session(session, "acl.modify_permission_bits") as db:
            entry = await self._repo.apply_bit_delta(
                db,
                principal.principal_type,
                principal.key,
                resource_type,
                resource_id,
                add_bits=add,
                remove_bits=remove,
            )

        self.logger.info(
            "Permission bits modified" if entry is not None else "Modify found no entry",
            extra={
                "principal_type": principal.principal_type,
                "principal_id": principal.key or None,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "add_bits": add,
                "remove_bits": remove,
                "perm_bits": entry.perm_bits if entry is not None else None,
                "operation": "acl.modify_permission_bits",
            },
        )
        return entry

    async def revoke_all_for_resource(
        self,
        resource_type: str,
        resource_id: str,
        *,
        session: AsyncSession | None = None,
    ) -> int:
        """Delete every entry on a resource, e.g. when the resource is deleted.

        Returns:
            Number of entries removed
        """
        async with self._write_session(session, "acl.revoke_all_for_resource") as db:
            deleted = await self._repo.delete_by_resource(db, resource_type, resource_id)

        self.logger.info(
            "Resource entries revoked",
            extra={
                "resource_type": resource_type,
                "resource_id": resource_id,
                "deleted": deleted,
                "operation": "acl.revoke_all_for_resource",
            },
        )
        return deleted

    async def revoke_all_for_principal(
        self,
        principal_type: PrincipalType | str,
        principal_id: str | None,
        *,
        session: AsyncSession | None = None,
    ) -> int:
        """Delete every entry granted to a principal, e.g. when a group is deleted.

        Returns:
            Number of entries removed
        """
        principal = principal_from(principal_type, principal_id)

        async with self._write_session(session, "acl.revoke_all_for_principal") as db:
            deleted = await self._repo.delete_by_principal(
                db,
                principal.principal_type,
                principal.key or None,
            )

        self.logger.info(
            "Principal entries revoked",
            extra={
                "principal_type": principal.principal_type,
                "principal_id": principal.key or None,
                "deleted": deleted,
                "operation": "acl.revoke_all_for_principal",
            },
        )
        return deleted
