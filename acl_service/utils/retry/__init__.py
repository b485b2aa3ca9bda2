"""Async retry helpers used for store connectivity probes."""

from __future__ import annotations

from acl_service.utils.retry.decorator import retry
from acl_service.utils.retry.exceptions import RetryError, RetryStatistics
from acl_service.utils.retry.strategies import RetryStrategy

__all__ = ["RetryError", "RetryStatistics", "RetryStrategy", "retry"]
