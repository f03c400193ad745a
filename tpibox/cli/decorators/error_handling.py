"""Error handling decorators for CLI commands."""

import logging
import sys
import traceback
from collections.abc import Callable
from functools import wraps
from typing import Any

import typer

from tpibox.core.errors import (
    CacheError,
    ConfigError,
    FlashError,
    FormatError,
    ImageIOError,
    IntegrityError,
    NetworkError,
    TpiboxError,
)
from tpibox.core.structlog_logger import get_struct_logger


__all__ = ["handle_errors", "print_stack_trace_if_verbose"]

logger = get_struct_logger(__name__)

# Most specific first
_ERROR_EVENTS: list[tuple[type[TpiboxError], str]] = [
    (ConfigError, "configuration_error"),
    (IntegrityError, "integrity_error"),
    (FormatError, "format_error"),
    (NetworkError, "network_error"),
    (ImageIOError, "image_io_error"),
    (CacheError, "cache_error"),
    (FlashError, "flash_error"),
]


def _event_for(error: TpiboxError) -> str:
    for error_type, event in _ERROR_EVENTS:
        if isinstance(error, error_type):
            return event
    return "tpibox_error"


def _report(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle common exceptions in CLI commands.

    Known errors are logged as an event, reported on stderr and turned into
    exit code 1.

    Args:
        func: The function to decorate

    Returns:
        Decorated function with error handling
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TpiboxError as e:
            logger.error(_event_for(e), error=str(e), node=e.node, phase=e.phase)
            _report(str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except FileNotFoundError as e:
            logger.error("file_not_found", error=str(e))
            _report(str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except Exception as e:
            exc_info = logger.isEnabledFor(logging.DEBUG)
            logger.error("unexpected_error", error=str(e), exc_info=exc_info)
            _report(f"unexpected error: {e}")
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e

    return wrapper


def print_stack_trace_if_verbose() -> None:
    """Print stack trace if verbose/debug mode is enabled."""
    if any(arg in sys.argv for arg in ["-v", "-vv", "--verbose", "--debug"]):
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
