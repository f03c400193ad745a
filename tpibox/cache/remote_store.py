"""Content store on the BMC filesystem, reached through the remote transport."""

import logging
import posixpath
import uuid
from pathlib import Path

from tpibox.bmc.protocols import RemoteTransportProtocol
from tpibox.bmc.ssh_transport import quote
from tpibox.cache.content_store import BaseContentStore
from tpibox.cache.models import CacheEntry, CacheLocation, entry_name
from tpibox.config.models import DEFAULT_REMOTE_CACHE_DIR
from tpibox.core.deadline import Deadline
from tpibox.core.errors import (
    CacheError,
    NetworkError,
    ProvisionTimeoutError,
    RemoteCommandError,
)


logger = logging.getLogger(__name__)


class RemoteContentStore(BaseContentStore):
    """Images stored as ``<hash>.img`` in a fixed directory on the BMC.

    Only three transport primitives are used: list a directory, upload a
    file, run a command (``mkdir -p``, ``mv -f``, ``rm``). Uploads land on a
    ``.partial-<id>`` name and are moved into place afterwards.
    """

    location = CacheLocation.BMC

    def __init__(
        self,
        transport: RemoteTransportProtocol,
        root: str = DEFAULT_REMOTE_CACHE_DIR,
    ):
        super().__init__()
        self.transport = transport
        self.root = root.rstrip("/") or "/"

    def _entry_path(self, content_hash: str) -> str:
        return posixpath.join(self.root, entry_name(content_hash))

    def _run(self, command: str, action: str) -> str:
        try:
            return self.transport.exec_command(command)
        except ProvisionTimeoutError:
            raise
        except (NetworkError, RemoteCommandError, OSError) as e:
            raise CacheError(f"Cannot {action} on the BMC: {e}") from e

    def ensure_root(self) -> None:
        """Create the remote cache directory if it does not exist."""
        self._run(f"mkdir -p {quote(self.root)}", f"create {self.root}")

    def _list(self):
        """Directory listing, or an empty list when the root does not exist yet."""
        try:
            return self.transport.list_dir(self.root)
        except FileNotFoundError:
            return []
        except ProvisionTimeoutError:
            raise
        except (NetworkError, OSError) as e:
            raise CacheError(f"Cannot list {self.root} on the BMC: {e}") from e

    def lookup(self, content_hash: str) -> str | None:
        name = entry_name(self._normalize(content_hash))
        for info in self._list():
            if info.name == name and not info.is_dir:
                path = posixpath.join(self.root, name)
                logger.debug("BMC cache hit: %s", path)
                return path
        return None

    def put(
        self, local_path: Path, content_hash: str, deadline: Deadline | None = None
    ) -> str:
        content_hash = self._normalize(content_hash)
        deadline = deadline or Deadline.never()

        self.ensure_root()
        existing = self.lookup(content_hash)
        if existing is not None:
            logger.debug("Image %s already on the BMC", content_hash)
            return existing

        final_path = self._entry_path(content_hash)
        partial_path = f"{final_path}.partial-{uuid.uuid4().hex}"
        deadline.check("cache")
        try:
            self.transport.upload_file(local_path, partial_path, deadline=deadline)
            deadline.check("cache")
            self._run(
                f"mv -f {quote(partial_path)} {quote(final_path)}",
                f"finalise {final_path}",
            )
        except ProvisionTimeoutError:
            self._discard(partial_path)
            raise
        except (NetworkError, OSError) as e:
            self._discard(partial_path)
            raise CacheError(f"Cannot upload {local_path} to the BMC: {e}") from e
        except BaseException:
            self._discard(partial_path)
            raise

        self.transfer_count += 1
        logger.info("Stored image %s on the BMC at %s", content_hash, final_path)
        return final_path

    def _discard(self, remote_path: str) -> None:
        try:
            self.transport.exec_command(f"rm -f {quote(remote_path)}")
        except (NetworkError, RemoteCommandError, OSError) as e:
            logger.warning("Could not remove partial upload %s: %s", remote_path, e)

    def clear(self) -> int:
        removed = len(self.list_entries())
        self._run(f"rm -rf {quote(self.root)}", f"remove {self.root}")
        logger.info("Removed %d image(s) from BMC cache %s", removed, self.root)
        return removed

    def list_entries(self) -> list[CacheEntry]:
        entries = []
        for info in self._list():
            content_hash = self.parse_entry_name(info.name)
            if content_hash and not info.is_dir:
                entries.append(
                    CacheEntry(
                        content_hash=content_hash,
                        path=posixpath.join(self.root, info.name),
                        size=info.size,
                    )
                )
        return sorted(entries, key=lambda entry: entry.content_hash)
