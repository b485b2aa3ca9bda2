"""Tests for AclEntryRepository against a SQLite ACL store."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from acl_service.core.exceptions import StoreUnavailableError
from acl_service.features.permissions import (
    AclEntry,
    AclEntryRepository,
    PermissionBits,
    get_acl_entry_repository,
    parse_principals,
)
from acl_service.infra.database import create_session_factory


async def _grant(repo, session, principal_type, principal_id, resource_id, bits, **kwargs):
    defaults = {
        "principal_model": None,
        "resource_type": "agent",
        "granted_by": "admin",
        "group_roles": None,
    }
    defaults.update(kwargs)
    return await repo.upsert(
        session,
        principal_type=principal_type,
        principal_id=principal_id,
        resource_id=resource_id,
        perm_bits=bits,
        **defaults,
    )


@pytest.mark.unit
class TestUpsert:
    """Tests for the atomic grant upsert."""

    async def test_inserts_new_entry(self, db_session, acl_repo):
        entry = await _grant(acl_repo, db_session, "user", "u1", "a1", 3, principal_model="User")

        assert entry is not None
        assert entry.id is not None
        assert entry.perm_bits == 3
        assert entry.principal_key == "u1"
        assert entry.principal_model == "User"
        assert entry.granted_by == "admin"
        assert entry.granted_at is not None

    async def test_second_upsert_replaces_bits_in_place(self, db_session, acl_repo):
        first = await _grant(acl_repo, db_session, "user", "u1", "a1", 1)
        second = await _grant(acl_repo, db_session, "user", "u1", "a1", 6, granted_by="owner")

        assert second.id == first.id
        assert second.perm_bits == 6
        assert second.granted_by == "owner"
        assert len(await acl_repo.find_by_resource(db_session, "agent", "a1")) == 1

    async def test_public_entries_are_unique(self, db_session, acl_repo):
        first = await _grant(acl_repo, db_session, "public", None, "a1", 1)
        second = await _grant(acl_repo, db_session, "public", None, "a1", 3)

        assert second.id == first.id
        assert second.principal_id is None
        assert second.principal_key == ""
        assert second.perm_bits == 3

    async def test_role_id_kept_when_omitted(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1, role_id="viewer")
        entry = await _grant(acl_repo, db_session, "user", "u1", "a1", 3)

        assert entry.role_id == "viewer"

    async def test_role_id_overwritten_when_given(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1, role_id="viewer")
        entry = await _grant(acl_repo, db_session, "user", "u1", "a1", 3, role_id="editor")

        assert entry.role_id == "editor"

    async def test_group_roles_round_trip(self, db_session, acl_repo):
        entry = await _grant(acl_repo, db_session, "group", "g1", "a1", 1, group_roles=["owner"])

        assert entry.group_roles == ["owner"]
        assert entry.is_group_scoped

    async def test_has_bits_checks_every_bit(self, db_session, acl_repo):
        entry = await _grant(acl_repo, db_session, "role", "ADMIN", "a1", 15)

        assert entry.has_bits(PermissionBits.VIEW | PermissionBits.SHARE)
        assert not AclEntry(perm_bits=1).has_bits(3)


@pytest.mark.unit
class TestQueries:
    """Tests for the principal and resource lookups."""

    async def test_find_by_principal_filters_resource_type(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)
        await _grant(acl_repo, db_session, "user", "u1", "p1", 1, resource_type="project")
        await _grant(acl_repo, db_session, "user", "u2", "a2", 1)

        everything = await acl_repo.find_by_principal(db_session, "user", "u1")
        agents = await acl_repo.find_by_principal(db_session, "user", "u1", resource_type="agent")

        assert [e.resource_id for e in everything] == ["a1", "p1"]
        assert [e.resource_id for e in agents] == ["a1"]

    async def test_find_by_principal_public_ignores_id(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "public", None, "a1", 1)

        found = await acl_repo.find_by_principal(db_session, "public", "whatever")

        assert len(found) == 1

    async def test_find_entry_missing(self, db_session, acl_repo):
        assert await acl_repo.find_entry(db_session, "user", "u1", "agent", "a1") is None

    async def test_candidates_with_no_principals(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "public", None, "a1", 1)

        assert await acl_repo.find_candidates(db_session, [], "agent") == []

    async def test_candidates_match_any_principal(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)
        await _grant(acl_repo, db_session, "group", "g1", "a2", 1)
        await _grant(acl_repo, db_session, "public", None, "a3", 1)
        await _grant(acl_repo, db_session, "user", "u2", "a4", 1)
        principals = parse_principals(
            [
                {"principal_type": "user", "principal_id": "u1"},
                {"principal_type": "group", "principal_id": "g1"},
                {"principal_type": "public"},
            ]
        )

        found = await acl_repo.find_candidates(db_session, principals, "agent")

        assert [e.resource_id for e in found] == ["a1", "a2", "a3"]

    async def test_candidates_for_a_long_principal_list(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u0", "a1", 1)
        await _grant(acl_repo, db_session, "user", "u999", "a2", 1)
        await _grant(acl_repo, db_session, "group", "g1", "a3", 1)
        await _grant(acl_repo, db_session, "public", None, "a4", 1)
        principals = parse_principals(
            [{"principal_type": "user", "principal_id": f"u{i}"} for i in range(1000)]
            + [
                {"principal_type": "user", "principal_id": "u0"},
                {"principal_type": "group", "principal_id": "g1"},
                {"principal_type": "public"},
                {"principal_type": "public"},
            ]
        )

        found = await acl_repo.find_candidates(db_session, principals, "agent")

        assert [e.resource_id for e in found] == ["a1", "a2", "a3", "a4"]

    async def test_candidates_require_every_bit(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)
        await _grant(acl_repo, db_session, "user", "u1", "a2", 3)
        await _grant(acl_repo, db_session, "user", "u1", "a3", 2)
        principals = parse_principals([{"principal_type": "user", "principal_id": "u1"}])

        found = await acl_repo.find_candidates(db_session, principals, "agent", required_bits=3)

        assert [e.resource_id for e in found] == ["a2"]

    async def test_by_principals_and_resource_applies_group_roles(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "group", "g1", "a1", 4, group_roles=["owner"])
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)
        viewer = parse_principals(
            [
                {"principal_type": "user", "principal_id": "u1"},
                {"principal_type": "group", "principal_id": "g1", "group_role": "viewer"},
            ]
        )

        filtered = await acl_repo.find_by_principals_and_resource(db_session, viewer, "agent", "a1")
        unfiltered = await acl_repo.find_by_principals_and_resource(
            db_session, viewer, "agent", "a1", skip_group_role_check=True
        )

        assert [e.principal_type for e in filtered] == ["user"]
        assert len(unfiltered) == 2


@pytest.mark.unit
class TestMutations:
    """Tests for bit deltas and deletes."""

    async def test_apply_bit_delta(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 5)

        entry = await acl_repo.apply_bit_delta(
            db_session, "user", "u1", "agent", "a1", add_bits=2, remove_bits=1
        )

        assert entry.perm_bits == 6

    async def test_apply_bit_delta_remove_wins(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)

        entry = await acl_repo.apply_bit_delta(
            db_session, "user", "u1", "agent", "a1", add_bits=2, remove_bits=2
        )

        assert entry.perm_bits == 1

    async def test_apply_bit_delta_missing_entry(self, db_session, acl_repo):
        entry = await acl_repo.apply_bit_delta(db_session, "user", "u1", "agent", "a1", add_bits=1)

        assert entry is None
        assert await acl_repo.find_entry(db_session, "user", "u1", "agent", "a1") is None

    async def test_delete_entry(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)

        assert await acl_repo.delete_entry(db_session, "user", "u1", "agent", "a1") == 1
        assert await acl_repo.delete_entry(db_session, "user", "u1", "agent", "a1") == 0

    async def test_delete_by_resource(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "user", "u1", "a1", 1)
        await _grant(acl_repo, db_session, "public", None, "a1", 1)
        await _grant(acl_repo, db_session, "user", "u1", "a2", 1)

        assert await acl_repo.delete_by_resource(db_session, "agent", "a1") == 2
        assert await acl_repo.find_by_resource(db_session, "agent", "a1") == []
        assert len(await acl_repo.find_by_resource(db_session, "agent", "a2")) == 1

    async def test_delete_by_principal(self, db_session, acl_repo):
        await _grant(acl_repo, db_session, "group", "g1", "a1", 1)
        await _grant(acl_repo, db_session, "group", "g1", "p1", 1, resource_type="project")
        await _grant(acl_repo, db_session, "group", "g2", "a1", 1)

        assert await acl_repo.delete_by_principal(db_session, "group", "g1") == 2
        assert await acl_repo.find_by_principal(db_session, "group", "g1") == []
        assert len(await acl_repo.find_by_principal(db_session, "group", "g2")) == 1

    async def test_bulk_delete_logs_warning(self, db_session, acl_repo, caplog):
        for index in range(11):
            await _grant(acl_repo, db_session, "user", f"u{index}", "a1", 1)

        with caplog.at_level("WARNING", logger="repository.AclEntry"):
            deleted = await acl_repo.delete_by_resource(db_session, "agent", "a1")

        assert deleted == 11
        assert any(r.getMessage() == "Bulk delete executed" for r in caplog.records)


async def test_unreachable_store_raises_store_unavailable(tmp_path, acl_repo):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'acl.db'}")
    factory = create_session_factory(engine)
    try:
        async with factory() as session:
            with pytest.raises(StoreUnavailableError) as exc_info:
                await acl_repo.find_by_resource(session, "agent", "a1")
    finally:
        await engine.dispose()

    assert exc_info.value.status_code == 503
    assert exc_info.value.extra["operation"] == "acl.find_by_resource"


def test_repository_factory_returns_singleton():
    repo = get_acl_entry_repository()

    assert isinstance(repo, AclEntryRepository)
    assert get_acl_entry_repository() is repo
