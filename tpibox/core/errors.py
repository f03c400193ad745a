"""Exception hierarchy for tpibox.

Every error raised out of the provisioning pipeline derives from
``TpiboxError``. Errors raised during ``provision`` carry the node number
and the phase that failed, so callers can tell a bad image from a bad
device or a bad network without inspecting internals.
"""

from typing import Any


class TpiboxError(Exception):
    """Base exception for all tpibox errors."""

    def __init__(
        self,
        message: str,
        node: int | None = None,
        phase: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.node = node
        self.phase = phase
        self.context = context or {}

    def with_context(self, node: int | None = None, phase: str | None = None) -> "TpiboxError":
        """Attach node and phase information if not already set."""
        if self.node is None:
            self.node = node
        if self.phase is None:
            self.phase = phase
        return self

    def __str__(self) -> str:
        if self.node is not None and self.phase:
            return f"node {self.node}: {self.phase} failed: {self.message}"
        if self.phase:
            return f"{self.phase} failed: {self.message}"
        return self.message


class ConfigError(TpiboxError):
    """Invalid configuration or arguments."""


class NetworkError(TpiboxError):
    """Transport-level failure. Safe to retry at the caller's discretion."""


class BMCError(NetworkError):
    """The BMC answered with a non-success HTTP status or a malformed body."""

    def __init__(self, message: str, status_code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ProvisionTimeoutError(NetworkError):
    """The caller-supplied deadline expired."""


class FormatError(TpiboxError):
    """Unsupported or corrupt compression container."""


class IntegrityError(TpiboxError):
    """Content hash did not match the expected hash."""

    def __init__(self, message: str, expected: str = "", actual: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


class ImageIOError(TpiboxError):
    """Local disk failure while writing or reading an image."""


class CacheError(TpiboxError):
    """Content store backend I/O failure."""


class RemoteCommandError(TpiboxError):
    """A command executed on the BMC over SSH exited non-zero."""

    def __init__(self, message: str, exit_status: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.exit_status = exit_status


class FlashError(TpiboxError):
    """The BMC failed to write the image to the node."""


__all__ = [
    "BMCError",
    "CacheError",
    "ConfigError",
    "FlashError",
    "FormatError",
    "ImageIOError",
    "IntegrityError",
    "NetworkError",
    "ProvisionTimeoutError",
    "RemoteCommandError",
    "TpiboxError",
]
