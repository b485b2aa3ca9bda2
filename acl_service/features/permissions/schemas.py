"""Pydantic schemas for principals.

A principal is one grantee identity of the caller. Callers assemble the
full list (the user, each group with the caller's role in it, the public
principal, any predefined roles) and pass it to every evaluation:

    principals = parse_principals([
        {"principal_type": "user", "principal_id": "u1"},
        {"principal_type": "group", "principal_id": "g1", "group_role": "viewer"},
        {"principal_type": "public"},
    ])
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from acl_service.core.exceptions import InvalidPrincipalError, ValidationException
from acl_service.features.permissions.bits import GroupRole, PrincipalType


class PrincipalBase(BaseModel):
    """Shared configuration for principal variants."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def key(self) -> str:
        """Identifier used in the uniqueness tuple; empty for public."""
        return getattr(self, "principal_id", "")


class UserPrincipal(PrincipalBase):
    principal_type: Literal["user"] = "user"
    principal_id: str = Field(..., min_length=1)


class GroupPrincipal(PrincipalBase):
    """Group membership, optionally with the caller's role inside the group."""

    principal_type: Literal["group"] = "group"
    principal_id: str = Field(..., min_length=1)
    group_role: GroupRole | None = None


class PublicPrincipal(PrincipalBase):
    """Everyone. Carries no identifier; any supplied id is dropped."""

    principal_type: Literal["public"] = "public"


class RolePrincipal(PrincipalBase):
    """Predefined role, identified by its role key (e.g. ``ADMIN``)."""

    principal_type: Literal["role"] = "role"
    principal_id: str = Field(..., min_length=1)


Principal = Annotated[
    UserPrincipal | GroupPrincipal | PublicPrincipal | RolePrincipal,
    Field(discriminator="principal_type"),
]

_principal_adapter: TypeAdapter[Principal] = TypeAdapter(Principal)
_principal_list_adapter: TypeAdapter[list[Principal]] = TypeAdapter(list[Principal])


def _invalid_principal(exc: PydanticValidationError, raw: Any = None) -> InvalidPrincipalError:
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid principal")
    if location:
        detail = f"{location}: {detail}"
    principal_type = raw.get("principal_type") if isinstance(raw, Mapping) else None
    return InvalidPrincipalError(
        detail=detail,
        principal_type=str(principal_type) if principal_type is not None else None,
        extra={"errors": errors},
    )


def parse_principals(raw: Iterable[Principal | Mapping[str, Any]]) -> list[Principal]:
    """Validate a principal list.

    Accepts principal objects and plain mappings. Order is preserved.

    Raises:
        InvalidPrincipalError: If any principal has an unknown type, lacks a
            required identifier or names an unknown group role.
    """
    items = list(raw)
    try:
        return _principal_list_adapter.validate_python(items)
    except PydanticValidationError as exc:
        offending = None
        errors = exc.errors(include_url=False)
        if errors and errors[0]["loc"] and isinstance(errors[0]["loc"][0], int):
            offending = items[errors[0]["loc"][0]]
        raise _invalid_principal(exc, offending) from exc


def principal_from(
    principal_type: PrincipalType | str,
    principal_id: str | None = None,
    group_role: GroupRole | str | None = None,
) -> Principal:
    """Build one principal from the flat ``(type, id)`` pair of the mutation API.

    Raises:
        InvalidPrincipalError: Same conditions as parse_principals.
    """
    raw: dict[str, Any] = {"principal_type": str(principal_type)}
    if principal_id is not None:
        raw["principal_id"] = principal_id
    if group_role is not None:
        raw["group_role"] = group_role
    try:
        return _principal_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        raise _invalid_principal(exc, raw) from exc


def validate_group_roles(roles: Iterable[GroupRole | str] | None) -> list[str] | None:
    """Normalize a group-role restriction to de-duplicated role labels.

    Returns None when ``roles`` is None or empty, meaning unrestricted.

    Raises:
        ValidationException: If a label is not a known group role.
    """
    if roles is None:
        return None
    labels: set[str] = set()
    for role in roles:
        try:
            labels.add(GroupRole(role).value)
        except ValueError:
            raise ValidationException(
                detail=f"Unknown group role: {role!r}",
                extra={"group_role": str(role), "allowed": [r.value for r in GroupRole]},
            ) from None
    # Keep the declared order of GroupRole for stable storage
    return [r.value for r in GroupRole if r.value in labels] or None
