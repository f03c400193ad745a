"""Content-addressed image cache.

Images are keyed by the SHA-256 of their decompressed bytes and stored as
``<hash>.img`` either in a local per-user directory or on the BMC.
"""

from tpibox.bmc.protocols import RemoteTransportProtocol
from tpibox.cache.content_store import BaseContentStore, ContentStore
from tpibox.cache.local_store import LocalContentStore
from tpibox.cache.models import CacheEntry, CacheLocation
from tpibox.cache.noop_store import NoOpContentStore
from tpibox.cache.remote_store import RemoteContentStore
from tpibox.config.models import UserConfigData
from tpibox.core.errors import ConfigError


def create_content_store(
    location: CacheLocation | str,
    config: UserConfigData | None = None,
    transport: RemoteTransportProtocol | None = None,
) -> ContentStore:
    """Create the content store backend for a cache location.

    Args:
        location: Which backend to create
        config: User configuration providing the cache roots (defaults if None)
        transport: Remote transport, required for the BMC backend

    Returns:
        Configured content store

    Raises:
        ConfigError: Unknown location, or BMC location without a transport
    """
    location = CacheLocation.parse(location)
    config = config or UserConfigData()
    if location is CacheLocation.LOCAL:
        return LocalContentStore(root=config.cache_path)
    if location is CacheLocation.BMC:
        if transport is None:
            raise ConfigError("The BMC cache needs a remote transport")
        return RemoteContentStore(transport=transport, root=config.bmc.remote_cache_dir)
    return NoOpContentStore()


__all__ = [
    "BaseContentStore",
    "CacheEntry",
    "CacheLocation",
    "ContentStore",
    "LocalContentStore",
    "NoOpContentStore",
    "RemoteContentStore",
    "create_content_store",
]
