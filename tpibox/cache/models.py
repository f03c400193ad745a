"""Content store models."""

from enum import Enum

from pydantic import Field

from tpibox.core.errors import ConfigError
from tpibox.models.base import TpiboxBaseModel


IMAGE_SUFFIX = ".img"


class CacheLocation(str, Enum):
    """Which content store backend takes part in an operation."""

    LOCAL = "local"
    BMC = "bmc"
    NONE = "none"

    @classmethod
    def parse(cls, value: "str | CacheLocation") -> "CacheLocation":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(location.value for location in cls)
            raise ConfigError(
                f"Unknown cache location {value!r}, expected one of: {valid}"
            ) from None


class CacheEntry(TpiboxBaseModel):
    """A stored image as seen in a backend listing."""

    content_hash: str
    path: str
    size: int = Field(default=0, ge=0)


def entry_name(content_hash: str) -> str:
    """File name of the entry for ``content_hash``; the name is the whole index."""
    return f"{content_hash}{IMAGE_SUFFIX}"
