"""Custom exception classes for the permission engine."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    All custom exceptions should inherit from this class. The fields follow
    RFC 7807 Problem Details so a transport layer can render them directly.

    Attributes:
        status_code: HTTP-style status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
            raise AppException(
            status_code=422,
            detail="principal_id is required for user principals",
            type="invalid-principal",
            extra={"principal_type": "user"}
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP-style status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for a status code."""
        titles = {
            400: "Bad Request",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            422: "Unprocessable Entity",
            500: "Internal Server Error",
            503: "Service Unavailable",
            504: "Gateway Timeout",
        }
        return titles.get(status_code, "Error")


class ValidationException(AppException):
    """Exception raised for validation errors.

    Example:
            raise ValidationException(
            detail="perm_bits must be a non-negative integer",
            extra={"perm_bits": -1}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=422,
            detail=detail,
            type=type,
            title="Validation Error",
            instance=instance,
            extra=extra,
        )


class ForbiddenException(AppException):
    """Exception raised for authorization failures."""

    def __init__(
        self,
        detail: str,
        type: str = "forbidden",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=403,
            detail=detail,
            type=type,
            title="Forbidden",
            instance=instance,
            extra=extra,
        )


class ServiceUnavailableException(AppException):
    """Exception raised when a backing service is temporarily unavailable.

    Example:
            raise ServiceUnavailableException(
            detail="Database is temporarily unavailable",
            type="service-unavailable",
            extra={"service": "postgresql"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "service-unavailable",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize service unavailable exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=503,
            detail=detail,
            type=type,
            title="Service Unavailable",
            instance=instance,
            extra=extra,
        )


# ============================================================================
# Permission Engine Exceptions
# ============================================================================


class InvalidPrincipalError(ValidationException):
    """Raised when a principal is malformed.

    Covers a missing identifier for a type that requires one, an unknown
    principal type, or an unknown group role. Callers should not retry.

    Example:
        raise InvalidPrincipalError("principal_id is required", principal_type="group")
    """

    def __init__(
        self,
        detail: str = "Invalid principal",
        principal_type: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid principal exception."""
        final_extra: dict[str, Any] = {}
        if principal_type:
            final_extra["principal_type"] = principal_type
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=detail,
            type="invalid-principal",
            instance=instance,
            extra=final_extra or None,
        )


class StoreUnavailableError(ServiceUnavailableException):
    """Raised when the ACL store cannot be reached or times out.

    The engine performs no retries of its own; retry policy belongs to the
    storage client or the caller.

    Example:
        raise StoreUnavailableError(operation="acl.grant")
    """

    def __init__(
        self,
        detail: str = "ACL store is unavailable",
        operation: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize store unavailable exception."""
        final_extra: dict[str, Any] = {"service": "acl-store"}
        if operation:
            final_extra["operation"] = operation
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=detail,
            type="store-unavailable",
            instance=instance,
            extra=final_extra,
        )


class InsufficientPermissionsError(ForbiddenException):
    """Exception raised when a principal set lacks a required permission.

    Example:
        raise InsufficientPermissionsError("agent:abc:2")
    """

    def __init__(
        self,
        required_permission: str | None = None,
        detail: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize insufficient permissions exception."""
        if detail is None:
            detail = "Insufficient permissions"
            if required_permission:
                detail = f"Missing required permission: {required_permission}"
        final_extra: dict[str, Any] = {}
        if required_permission:
            final_extra["required_permission"] = required_permission
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=detail,
            type="insufficient-permissions",
            instance=instance,
            extra=final_extra or None,
        )


class PermissionDeniedError(InsufficientPermissionsError):
    """Raised by the gating helper when no entry grants the required bit."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        bit: int,
        instance: str | None = None,
    ) -> None:
        """Initialize permission denied exception.

        Args:
            resource_type: Type of the guarded resource.
            resource_id: Identifier of the guarded resource.
            bit: The permission bit that was required.
            instance: URI reference identifying this specific occurrence.
        """
        super().__init__(
            required_permission=f"{resource_type}:{resource_id}:{int(bit)}",
            instance=instance,
            extra={
                "resource_type": resource_type,
                "resource_id": resource_id,
                "bit": int(bit),
            },
        )


__all__ = [
    "AppException",
    "ForbiddenException",
    "InsufficientPermissionsError",
    "InvalidPrincipalError",
    "PermissionDeniedError",
    "ServiceUnavailableException",
    "StoreUnavailableError",
    "ValidationException",
]
