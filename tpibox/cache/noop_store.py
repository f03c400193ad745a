"""Content store used when caching is disabled."""

from pathlib import Path

from tpibox.cache.content_store import BaseContentStore
from tpibox.cache.models import CacheEntry, CacheLocation
from tpibox.core.deadline import Deadline


class NoOpContentStore(BaseContentStore):
    """Never hits, never stores. ``put`` hands the input path back."""

    location = CacheLocation.NONE

    def lookup(self, content_hash: str) -> str | None:
        return None

    def put(
        self, local_path: Path, content_hash: str, deadline: Deadline | None = None
    ) -> str:
        return str(local_path)

    def clear(self) -> int:
        return 0

    def list_entries(self) -> list[CacheEntry]:
        return []
