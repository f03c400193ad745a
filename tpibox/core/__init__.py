"""Core infrastructure: errors, logging and deadlines."""

from tpibox.core.deadline import Deadline
from tpibox.core.errors import (
    BMCError,
    CacheError,
    ConfigError,
    FlashError,
    FormatError,
    ImageIOError,
    IntegrityError,
    NetworkError,
    ProvisionTimeoutError,
    RemoteCommandError,
    TpiboxError,
)


__all__ = [
    "BMCError",
    "CacheError",
    "ConfigError",
    "Deadline",
    "FlashError",
    "FormatError",
    "ImageIOError",
    "IntegrityError",
    "NetworkError",
    "ProvisionTimeoutError",
    "RemoteCommandError",
    "TpiboxError",
]
