"""Group-role filtering of candidate ACL entries.

Pure functions over entries and principals; no store access. A group entry
with a non-empty ``group_roles`` list only applies to callers whose role in
that group (taken from their group principal) is in the list.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol, TypeVar

from acl_service.features.permissions.bits import GroupRole, PrincipalType


class GroupScopedEntry(Protocol):
    """Fields of an ACL entry the filter reads."""

    principal_type: str
    principal_id: str | None
    group_roles: list[str] | None


class _PrincipalLike(Protocol):
    principal_type: str


def build_principal_role_map(principals: Iterable[_PrincipalLike]) -> dict[str, GroupRole]:
    """Map group id to the caller's role in that group.

    Only group principals carrying a ``group_role`` contribute. When the same
    group appears twice, the first declared role wins.
    """
    roles: dict[str, GroupRole] = {}
    for principal in principals:
        if principal.principal_type != PrincipalType.GROUP:
            continue
        role = getattr(principal, "group_role", None)
        if role is not None:
            roles.setdefault(principal.principal_id, GroupRole(role))  # type: ignore[attr-defined]
    return roles


def entry_matches_group_role(
    entry: GroupScopedEntry,
    role_map: Mapping[str, GroupRole],
    *,
    skip_group_role_check: bool = False,
) -> bool:
    """Decide whether one candidate entry survives group-role filtering."""
    if entry.principal_type != PrincipalType.GROUP or not entry.group_roles:
        return True
    if skip_group_role_check:
        return True

    caller_role = role_map.get(entry.principal_id or "")
    if caller_role is None:
        return False
    return caller_role.value in entry.group_roles


E = TypeVar("E", bound=GroupScopedEntry)


def filter_entries(
    entries: Iterable[E],
    principals: Iterable[_PrincipalLike],
    *,
    skip_group_role_check: bool = False,
) -> list[E]:
    """Keep the entries that pass group-role filtering, in their original order."""
    role_map = build_principal_role_map(principals)
    return [
        entry
        for entry in entries
        if entry_matches_group_role(entry, role_map, skip_group_role_check=skip_group_role_check)
    ]


def any_entry_matches(
    entries: Sequence[GroupScopedEntry],
    principals: Iterable[_PrincipalLike],
    *,
    skip_group_role_check: bool = False,
) -> bool:
    """Existential form of filter_entries; stops at the first matching entry."""
    role_map = build_principal_role_map(principals)
    return any(
        entry_matches_group_role(entry, role_map, skip_group_role_check=skip_group_role_check)
        for entry in entries
    )
