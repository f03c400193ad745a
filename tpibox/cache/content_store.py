"""Content store protocol and shared backend behaviour."""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable

from tpibox.cache.models import IMAGE_SUFFIX, CacheEntry, CacheLocation
from tpibox.core.deadline import Deadline
from tpibox.core.errors import ConfigError
from tpibox.image.models import normalize_hash


ENTRY_PATTERN = re.compile(r"^([0-9a-f]{64})" + re.escape(IMAGE_SUFFIX) + r"$")


@runtime_checkable
class ContentStore(Protocol):
    """Content-addressed image store keyed by SHA-256.

    Backends share one key space and the ``<hash>.img`` naming scheme, so the
    orchestrator can use any of them interchangeably.
    """

    location: CacheLocation
    transfer_count: int

    def lookup(self, content_hash: str) -> str | None:
        """Return the stored path for ``content_hash``, or None on a miss.

        A backend whose storage does not exist yet reports a miss.

        Raises:
            CacheError: Any other backend I/O failure
        """
        ...

    def put(
        self, local_path: Path, content_hash: str, deadline: Deadline | None = None
    ) -> str:
        """Store ``local_path`` under ``content_hash`` and return the stored path.

        Idempotent: an existing entry is returned without transferring bytes.

        Raises:
            CacheError: Backend I/O failure
        """
        ...

    def clear(self) -> int:
        """Remove every entry. Returns the number of entries removed."""
        ...

    def list_entries(self) -> list[CacheEntry]:
        """Entries currently stored, sorted by hash."""
        ...


class BaseContentStore(ABC):
    """Common behaviour for content store backends."""

    location: CacheLocation

    def __init__(self) -> None:
        self.transfer_count = 0

    @staticmethod
    def _normalize(content_hash: str) -> str:
        try:
            return normalize_hash(content_hash)
        except ValueError as e:
            raise ConfigError(f"Invalid content hash {content_hash!r}: {e}") from e

    @staticmethod
    def parse_entry_name(name: str) -> str | None:
        """Hash encoded in an entry file name, or None for anything else."""
        match = ENTRY_PATTERN.match(name)
        return match.group(1) if match else None

    @abstractmethod
    def lookup(self, content_hash: str) -> str | None: ...

    @abstractmethod
    def put(
        self, local_path: Path, content_hash: str, deadline: Deadline | None = None
    ) -> str: ...

    @abstractmethod
    def clear(self) -> int: ...

    @abstractmethod
    def list_entries(self) -> list[CacheEntry]: ...
