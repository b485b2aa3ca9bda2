"""Unit tests for principal schemas and permission vocabularies."""

from __future__ import annotations

import pytest

from acl_service.core.exceptions import InvalidPrincipalError, ValidationException
from acl_service.features.permissions import (
    ALL_GROUP_ROLES,
    AccessRoleBits,
    GroupPrincipal,
    GroupRole,
    PermissionBits,
    PublicPrincipal,
    ResourceType,
    RolePrincipal,
    UserPrincipal,
    parse_principals,
    principal_from,
)
from acl_service.features.permissions.schemas import validate_group_roles


class TestParsePrincipals:
    """Tests for parse_principals."""

    def test_parses_each_variant_in_order(self):
        principals = parse_principals(
            [
                {"principal_type": "user", "principal_id": "u1"},
                {"principal_type": "group", "principal_id": "g1", "group_role": "viewer"},
                {"principal_type": "public"},
                {"principal_type": "role", "principal_id": "ADMIN"},
            ]
        )

        assert [type(p) for p in principals] == [
            UserPrincipal,
            GroupPrincipal,
            PublicPrincipal,
            RolePrincipal,
        ]
        assert principals[1].group_role is GroupRole.VIEWER

    def test_accepts_principal_objects(self):
        user = UserPrincipal(principal_id="u1")

        assert parse_principals([user]) == [user]

    def test_group_role_is_optional(self):
        (group,) = parse_principals([{"principal_type": "group", "principal_id": "g1"}])

        assert group.group_role is None

    def test_public_principal_drops_identifier(self):
        (public,) = parse_principals([{"principal_type": "public", "principal_id": "ignored"}])

        assert isinstance(public, PublicPrincipal)
        assert public.key == ""
        assert not hasattr(public, "principal_id")

    def test_empty_list_is_valid(self):
        assert parse_principals([]) == []

    @pytest.mark.parametrize("principal_type", ["user", "group", "role"])
    def test_missing_identifier_is_rejected(self, principal_type):
        with pytest.raises(InvalidPrincipalError) as exc_info:
            parse_principals([{"principal_type": principal_type}])

        assert exc_info.value.status_code == 422
        assert exc_info.value.extra["principal_type"] == principal_type

    def test_empty_identifier_is_rejected(self):
        with pytest.raises(InvalidPrincipalError):
            parse_principals([{"principal_type": "user", "principal_id": ""}])

    def test_unknown_type_is_rejected(self):
        with pytest.raises(InvalidPrincipalError):
            parse_principals([{"principal_type": "robot", "principal_id": "r1"}])

    def test_unknown_group_role_is_rejected(self):
        with pytest.raises(InvalidPrincipalError):
            parse_principals([{"principal_type": "group", "principal_id": "g1", "group_role": "admin"}])

    def test_error_points_at_offending_principal(self):
        with pytest.raises(InvalidPrincipalError) as exc_info:
            parse_principals(
                [
                    {"principal_type": "user", "principal_id": "u1"},
                    {"principal_type": "group"},
                ]
            )

        assert exc_info.value.detail.startswith("1.")
        assert exc_info.value.extra["principal_type"] == "group"


class TestPrincipalFrom:
    """Tests for principal_from."""

    def test_builds_user(self):
        principal = principal_from("user", "u1")

        assert principal == UserPrincipal(principal_id="u1")
        assert principal.key == "u1"

    def test_public_without_identifier(self):
        assert isinstance(principal_from("public"), PublicPrincipal)

    def test_missing_identifier(self):
        with pytest.raises(InvalidPrincipalError):
            principal_from("group", None)


class TestValidateGroupRoles:
    """Tests for validate_group_roles."""

    def test_none_and_empty_mean_unrestricted(self):
        assert validate_group_roles(None) is None
        assert validate_group_roles([]) is None

    def test_normalizes_order_and_duplicates(self):
        assert validate_group_roles(["viewer", GroupRole.OWNER, "viewer"]) == ["owner", "viewer"]

    def test_unknown_role(self):
        with pytest.raises(ValidationException) as exc_info:
            validate_group_roles(["owner", "admin"])

        assert exc_info.value.extra["group_role"] == "admin"


class TestBits:
    """Tests for the permission bit vocabulary."""

    def test_standard_bits(self):
        assert PermissionBits.VIEW == 1
        assert PermissionBits.EDIT == 2
        assert PermissionBits.DELETE == 4
        assert PermissionBits.SHARE == 8

    def test_access_role_templates(self):
        assert AccessRoleBits.for_role("viewer") == 1
        assert AccessRoleBits.for_role("EDITOR") == 3
        assert AccessRoleBits.for_role("owner") == 15

        with pytest.raises(KeyError):
            AccessRoleBits.for_role("admin")

    def test_all_group_roles(self):
        assert set(ALL_GROUP_ROLES) == {"owner", "editor", "viewer"}

    def test_resource_types_are_plain_strings(self):
        assert ResourceType.AGENT == "agent"
        assert ResourceType("prompt_group") is ResourceType.PROMPT_GROUP
