"""Local filesystem content store."""

import logging
import os
import uuid
from pathlib import Path

from tpibox.cache.content_store import BaseContentStore
from tpibox.cache.models import CacheEntry, CacheLocation, entry_name
from tpibox.core.deadline import Deadline
from tpibox.core.errors import CacheError
from tpibox.image.hashing import copy_stream
from tpibox.utils.xdg import get_image_cache_dir


logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".partial"


class LocalContentStore(BaseContentStore):
    """Images stored as ``<hash>.img`` files in a per-user cache directory.

    Entries are copied to a ``.partial`` name in the same directory and then
    renamed, so a reader never sees a half-written ``<hash>.img``.
    """

    location = CacheLocation.LOCAL

    def __init__(self, root: Path | None = None):
        super().__init__()
        self.root = root or get_image_cache_dir()

    def _entry_path(self, content_hash: str) -> Path:
        return self.root / entry_name(content_hash)

    def lookup(self, content_hash: str) -> str | None:
        path = self._entry_path(self._normalize(content_hash))
        try:
            if path.is_file():
                logger.debug("Local cache hit: %s", path)
                return str(path)
        except OSError as e:
            raise CacheError(f"Cannot read local cache {self.root}: {e}") from e
        return None

    def put(
        self, local_path: Path, content_hash: str, deadline: Deadline | None = None
    ) -> str:
        content_hash = self._normalize(content_hash)
        existing = self.lookup(content_hash)
        if existing is not None:
            logger.debug("Image %s already in local cache", content_hash)
            return existing

        final_path = self._entry_path(content_hash)
        partial_path = self.root / f"{final_path.name}.{uuid.uuid4().hex}{PARTIAL_SUFFIX}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with local_path.open("rb") as src, partial_path.open("wb") as dst:
                copy_stream(src, dst, deadline, "cache")
            os.replace(partial_path, final_path)
        except OSError as e:
            partial_path.unlink(missing_ok=True)
            raise CacheError(f"Cannot store {local_path} in local cache: {e}") from e
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

        self.transfer_count += 1
        logger.info("Stored image %s in local cache", content_hash)
        return str(final_path)

    def clear(self) -> int:
        removed = 0
        try:
            if not self.root.is_dir():
                return 0
            for path in self.root.iterdir():
                if self.parse_entry_name(path.name):
                    path.unlink()
                    removed += 1
                elif path.name.endswith(PARTIAL_SUFFIX):
                    path.unlink()
        except OSError as e:
            raise CacheError(f"Cannot clear local cache {self.root}: {e}") from e
        logger.info("Removed %d image(s) from local cache %s", removed, self.root)
        return removed

    def list_entries(self) -> list[CacheEntry]:
        entries = []
        try:
            if not self.root.is_dir():
                return []
            for path in self.root.iterdir():
                content_hash = self.parse_entry_name(path.name)
                if content_hash and path.is_file():
                    entries.append(
                        CacheEntry(
                            content_hash=content_hash,
                            path=str(path),
                            size=path.stat().st_size,
                        )
                    )
        except OSError as e:
            raise CacheError(f"Cannot list local cache {self.root}: {e}") from e
        return sorted(entries, key=lambda entry: entry.content_hash)
