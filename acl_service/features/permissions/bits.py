"""Permission vocabularies: principal kinds, group roles and bit values."""

from __future__ import annotations

from enum import IntFlag, StrEnum


class PrincipalType(StrEnum):
    """Kind of grantee an ACL entry is keyed on."""

    USER = "user"
    GROUP = "group"
    PUBLIC = "public"
    ROLE = "role"


class PrincipalModel(StrEnum):
    """Entity model a principal id refers to. Public has none."""

    USER = "User"
    GROUP = "Group"
    ROLE = "Role"


PRINCIPAL_MODELS: dict[PrincipalType, PrincipalModel] = {
    PrincipalType.USER: PrincipalModel.USER,
    PrincipalType.GROUP: PrincipalModel.GROUP,
    PrincipalType.ROLE: PrincipalModel.ROLE,
}


class GroupRole(StrEnum):
    """Role of a member inside a group."""

    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


# A group grant restricted to every role is the same as an unrestricted one
ALL_GROUP_ROLES: tuple[GroupRole, ...] = (GroupRole.OWNER, GroupRole.EDITOR, GroupRole.VIEWER)


class ResourceType(StrEnum):
    """Resource types known to the engine. Any string is accepted at the API."""

    AGENT = "agent"
    PROJECT = "project"
    FILE = "file"
    PROMPT_GROUP = "prompt_group"


class PermissionBits(IntFlag):
    """Standard permission bits. The engine treats masks as opaque ints."""

    VIEW = 1
    EDIT = 2
    DELETE = 4
    SHARE = 8


class AccessRoleBits:
    """Bit combinations for the predefined access-role templates."""

    VIEWER = PermissionBits.VIEW
    EDITOR = PermissionBits.VIEW | PermissionBits.EDIT
    OWNER = PermissionBits.VIEW | PermissionBits.EDIT | PermissionBits.DELETE | PermissionBits.SHARE

    @classmethod
    def for_role(cls, role: str) -> PermissionBits:
        """Bits of a template by name (``viewer``, ``editor``, ``owner``).

        Raises:
            KeyError: If the template name is unknown.
        """
        templates = {"viewer": cls.VIEWER, "editor": cls.EDITOR, "owner": cls.OWNER}
        return templates[role.lower()]
