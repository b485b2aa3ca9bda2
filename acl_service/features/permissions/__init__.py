"""Bitmask ACL permissions: principals, entries, evaluation and mutation."""

from acl_service.features.permissions.bits import (
    ALL_GROUP_ROLES,
    AccessRoleBits,
    GroupRole,
    PermissionBits,
    PrincipalModel,
    PrincipalType,
    ResourceType,
)
from acl_service.features.permissions.models import AclEntry
from acl_service.features.permissions.repository import (
    AclEntryRepository,
    get_acl_entry_repository,
)
from acl_service.features.permissions.schemas import (
    GroupPrincipal,
    Principal,
    PublicPrincipal,
    RolePrincipal,
    UserPrincipal,
    parse_principals,
    principal_from,
)
from acl_service.features.permissions.service import PermissionService

__all__ = [
    "ALL_GROUP_ROLES",
    "AccessRoleBits",
    "AclEntry",
    "AclEntryRepository",
    "GroupPrincipal",
    "GroupRole",
    "PermissionBits",
    "PermissionService",
    "Principal",
    "PrincipalModel",
    "PrincipalType",
    "PublicPrincipal",
    "ResourceType",
    "RolePrincipal",
    "UserPrincipal",
    "get_acl_entry_repository",
    "parse_principals",
    "principal_from",
]
