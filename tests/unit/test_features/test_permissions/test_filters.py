"""Unit tests for group-role filtering (no database)."""

from __future__ import annotations

from dataclasses import dataclass, field

from acl_service.features.permissions import GroupRole, parse_principals
from acl_service.features.permissions.filters import (
    any_entry_matches,
    build_principal_role_map,
    entry_matches_group_role,
    filter_entries,
)


@dataclass
class FakeEntry:
    principal_type: str
    principal_id: str | None
    group_roles: list[str] | None = None
    resource_id: str = "a1"
    tags: list[str] = field(default_factory=list)


def group(principal_id: str, role: str | None = None) -> dict:
    raw = {"principal_type": "group", "principal_id": principal_id}
    if role is not None:
        raw["group_role"] = role
    return raw


def test_role_map_only_includes_groups_with_roles():
    principals = parse_principals(
        [
            {"principal_type": "user", "principal_id": "u1"},
            group("g1", "owner"),
            group("g2"),
        ]
    )

    assert build_principal_role_map(principals) == {"g1": GroupRole.OWNER}


def test_role_map_first_declared_role_wins():
    principals = parse_principals([group("g1", "viewer"), group("g1", "owner")])

    assert build_principal_role_map(principals) == {"g1": GroupRole.VIEWER}


def test_non_group_entries_always_match():
    for principal_type in ("user", "public", "role"):
        entry = FakeEntry(principal_type, "x", group_roles=["owner"])
        assert entry_matches_group_role(entry, {})


def test_unrestricted_group_entries_match():
    assert entry_matches_group_role(FakeEntry("group", "g1", None), {})
    assert entry_matches_group_role(FakeEntry("group", "g1", []), {})


def test_restricted_entry_needs_covered_role():
    entry = FakeEntry("group", "g1", ["owner"])

    assert entry_matches_group_role(entry, {"g1": GroupRole.OWNER})
    assert not entry_matches_group_role(entry, {"g1": GroupRole.VIEWER})


def test_restricted_entry_without_caller_role_is_dropped():
    entry = FakeEntry("group", "g1", ["owner", "editor"])

    assert not entry_matches_group_role(entry, {})
    assert not entry_matches_group_role(entry, {"g2": GroupRole.OWNER})


def test_skip_flag_keeps_restricted_entries():
    entry = FakeEntry("group", "g1", ["owner"])

    assert entry_matches_group_role(entry, {}, skip_group_role_check=True)


def test_filter_entries_preserves_order():
    entries = [
        FakeEntry("user", "u1", resource_id="a"),
        FakeEntry("group", "g1", ["owner"], resource_id="b"),
        FakeEntry("group", "g1", ["viewer"], resource_id="c"),
        FakeEntry("public", None, resource_id="d"),
    ]
    principals = parse_principals([{"principal_type": "user", "principal_id": "u1"}, group("g1", "viewer")])

    kept = filter_entries(entries, principals)

    assert [e.resource_id for e in kept] == ["a", "c", "d"]


def test_any_entry_matches():
    principals = parse_principals([group("g1", "viewer")])

    assert not any_entry_matches([FakeEntry("group", "g1", ["owner"])], principals)
    assert any_entry_matches(
        [FakeEntry("group", "g1", ["owner"]), FakeEntry("group", "g1", None)],
        principals,
    )
    assert not any_entry_matches([], principals)


def test_all_roles_entry_needs_a_caller_role():
    entry = FakeEntry("group", "g1", ["owner", "editor", "viewer"])

    assert entry_matches_group_role(entry, {"g1": GroupRole.VIEWER})
    assert not entry_matches_group_role(entry, {})
