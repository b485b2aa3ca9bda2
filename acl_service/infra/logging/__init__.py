"""Logging infrastructure.

Structured logging on the standard library:
- JSONL format for log aggregation
- Automatic context injection (actor_id, operation, ...)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug messages

Basic usage:
    import logging
    from acl_service.infra.logging import get_lazy_logger, set_log_context

    logger = logging.getLogger(__name__)
    set_log_context(actor_id="u-42")
    logger.info("Granting access")  # includes actor_id

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Entries: {dump(entries)}")  # only runs if DEBUG enabled
"""

from acl_service.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from acl_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    remove_from_log_context,
    set_log_context,
)
from acl_service.infra.logging.formatters import JSONFormatter
from acl_service.infra.logging.lazy import (
    LazyLoggerAdapter,
    LazyString,
    get_lazy_logger,
    lazy,
)

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "LazyString",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "lazy",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
