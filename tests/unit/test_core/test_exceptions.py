"""Tests for core exceptions."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from acl_service.core import exceptions as exc
from acl_service.core.database.exceptions import (
    RepositoryError,
    is_store_unavailable,
    translate_store_errors,
)


def test_app_exception_defaults_title() -> None:
    error = exc.AppException(status_code=400, detail="bad")
    assert error.title == "Bad Request"
    assert error.extra == {}


def test_validation_exception_fields() -> None:
    error = exc.ValidationException(detail="perm_bits must be non-negative", extra={"perm_bits": -1})
    assert error.status_code == 422
    assert error.type == "validation-error"
    assert error.extra["perm_bits"] == -1


def test_invalid_principal_is_validation_error() -> None:
    error = exc.InvalidPrincipalError("principal_id is required", principal_type="group")
    assert isinstance(error, exc.ValidationException)
    assert error.status_code == 422
    assert error.type == "invalid-principal"
    assert error.extra == {"principal_type": "group"}


def test_store_unavailable_records_operation() -> None:
    error = exc.StoreUnavailableError(operation="acl.grant")
    assert isinstance(error, exc.ServiceUnavailableException)
    assert error.status_code == 503
    assert error.extra == {"service": "acl-store", "operation": "acl.grant"}


def test_insufficient_permissions_builds_detail() -> None:
    error = exc.InsufficientPermissionsError(required_permission="agent:a1:2")
    assert "agent:a1:2" in error.detail
    assert error.extra["required_permission"] == "agent:a1:2"


def test_permission_denied_carries_resource() -> None:
    error = exc.PermissionDeniedError("agent", "a1", 2)
    assert isinstance(error, exc.ForbiddenException)
    assert error.status_code == 403
    assert error.extra["resource_id"] == "a1"
    assert error.extra["bit"] == 2
    assert error.extra["required_permission"] == "agent:a1:2"


def test_repository_error_message_includes_details() -> None:
    error = RepositoryError("Upsert is not supported for this dialect", details={"dialect": "mysql"})
    assert str(error) == "Upsert is not supported for this dialect (dialect='mysql')"
    assert str(RepositoryError("plain")) == "plain"


def test_is_store_unavailable_distinguishes_errors() -> None:
    operational = OperationalError("SELECT 1", {}, Exception("connection refused"))
    integrity = IntegrityError("INSERT", {}, Exception("unique"))
    assert is_store_unavailable(operational)
    assert is_store_unavailable(ConnectionResetError())
    assert not is_store_unavailable(integrity)
    assert not is_store_unavailable(ValueError())


async def test_translate_store_errors_wraps_connectivity_failures() -> None:
    with pytest.raises(exc.StoreUnavailableError) as exc_info:
        async with translate_store_errors("acl.find_by_resource"):
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

    assert exc_info.value.extra["operation"] == "acl.find_by_resource"
    assert isinstance(exc_info.value.__cause__, OperationalError)


async def test_translate_store_errors_passes_other_errors_through() -> None:
    with pytest.raises(ValueError):
        async with translate_store_errors("acl.grant"):
            raise ValueError("bug")
