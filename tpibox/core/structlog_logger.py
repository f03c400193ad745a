"""Event-style loggers backed by the stdlib handlers from ``setup_logging``."""

from typing import Any

import structlog


def get_struct_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module.

    Events are snake_case names with keyword fields, e.g.
    ``logger.error("flash_error", node=2, phase="flash")``.
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def get_struct_logger_with_context(
    name: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Return a logger with ``context`` bound to every event it emits.

    Used for one provisioning run, so each event carries the node and cache
    location without repeating them.
    """
    return structlog.get_logger(name).bind(**context)  # type: ignore[no-any-return]
