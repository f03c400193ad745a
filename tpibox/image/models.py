"""Image source and fetch result models."""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import ConfigDict, Field, field_validator

from tpibox.models.base import TpiboxBaseModel


SHA256_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def normalize_hash(value: str) -> str:
    """Lowercase and validate a hex-encoded SHA-256 digest."""
    normalized = value.strip().lower()
    if not SHA256_PATTERN.match(normalized):
        raise ValueError("SHA-256 must be 64 hexadecimal characters")
    return normalized


class CompressionKind(str, Enum):
    """Compression containers the fetcher can unpack."""

    NONE = "none"
    XZ = "xz"
    GZ = "gz"
    ZIP = "zip"


class _ImageSourceBase(TpiboxBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    expected_hash: str | None = Field(
        default=None, description="Expected SHA-256 of the decompressed image"
    )

    @field_validator("expected_hash", mode="before")
    @classmethod
    def validate_expected_hash(cls, v: str | None) -> str | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return normalize_hash(v)


class RemoteImageSource(_ImageSourceBase):
    """Image downloaded from an HTTP(S) URL."""

    kind: Literal["remote"] = "remote"
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("Image URL must use http or https")
        return v


class LocalImageSource(_ImageSourceBase):
    """Image already present on the local filesystem."""

    kind: Literal["local"] = "local"
    path: Path


ImageSource = RemoteImageSource | LocalImageSource


@dataclass(frozen=True)
class FetchResult:
    """A fully decompressed image on local disk and its content hash.

    Whoever holds the result owns ``path``: either it is handed to a content
    store or the holder deletes it. ``owned`` is False when ``path`` is the
    caller's own file (an uncompressed local source), which is never deleted.
    """

    path: Path
    content_hash: str
    owned: bool = True
