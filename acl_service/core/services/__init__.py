"""Service layer base classes."""

from acl_service.core.services.base import BaseService

__all__ = ["BaseService"]
