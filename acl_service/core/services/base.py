"""Base service class for business logic."""

from __future__ import annotations

import logging

from acl_service.infra.logging import get_lazy_logger


class BaseService:
    """Base class for service classes.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Both are named ``service.<ClassName>``.
    """

    def __init__(self) -> None:
        name = f"service.{self.__class__.__name__}"
        self.logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)
