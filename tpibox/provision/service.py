"""Flash orchestration: resolve an image once, then flash it exactly once."""

import logging
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from tpibox.bmc.client import create_bmc_client, validate_node
from tpibox.bmc.protocols import BMCClientProtocol, RemoteTransportProtocol
from tpibox.bmc.ssh_transport import create_ssh_transport
from tpibox.cache import ContentStore, create_content_store
from tpibox.cache.models import CacheLocation
from tpibox.config.models import UserConfigData
from tpibox.core.deadline import Deadline
from tpibox.core.errors import CacheError, ImageIOError, TpiboxError
from tpibox.core.structlog_logger import get_struct_logger_with_context
from tpibox.image.fetcher import ImageFetcher, create_image_fetcher
from tpibox.image.models import ImageSource, RemoteImageSource
from tpibox.provision.models import FlashJob, ProvisionResult


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3 * 60 * 60


@dataclass
class ProvisionContext:
    """Collaborators for provisioning, passed explicitly to the orchestrator.

    Content stores are created on first use per location and kept, so repeated
    runs through one context share backend state.
    """

    bmc: BMCClientProtocol
    fetcher: ImageFetcher
    config: UserConfigData = field(default_factory=UserConfigData)
    transport: RemoteTransportProtocol | None = None
    stores: dict[CacheLocation, ContentStore] = field(default_factory=dict)

    def store_for(self, location: CacheLocation | str) -> ContentStore:
        location = CacheLocation.parse(location)
        if location not in self.stores:
            self.stores[location] = create_content_store(
                location, config=self.config, transport=self.transport
            )
        return self.stores[location]

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()


def create_provision_context(config: UserConfigData) -> ProvisionContext:
    """Build a context talking to the configured BMC."""
    return ProvisionContext(
        bmc=create_bmc_client(config.bmc),
        fetcher=create_image_fetcher(),
        config=config,
        transport=create_ssh_transport(config.bmc),
    )


def describe_source(source: ImageSource) -> str:
    if isinstance(source, RemoteImageSource):
        return source.url
    return str(source.path)


@contextmanager
def _phase(node: int, phase: str) -> Iterator[None]:
    """Tag errors escaping the block with the node and, if unset, the phase."""
    try:
        yield
    except TpiboxError as e:
        raise e.with_context(node=node, phase=phase)
    except OSError as e:
        raise ImageIOError(str(e), node=node, phase=phase) from e


class FlashOrchestrator:
    """Provisions one node with an image.

    The content hash is looked up in the selected cache before anything is
    fetched; a miss fetches, verifies and stores the image. The flash is then
    dispatched from the BMC's own copy when there is one, otherwise from a
    local file which the BMC client uploads.
    """

    def __init__(self, context: ProvisionContext):
        self.context = context

    def provision(
        self,
        node: int,
        source: ImageSource,
        cache_location: CacheLocation | str = CacheLocation.NONE,
        skip_verification: bool = False,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> ProvisionResult:
        """Fetch (or reuse) the image for ``source`` and flash it to ``node``.

        Args:
            node: Target node, 1..4
            source: Remote URL or local path, with optional expected hash
            cache_location: Backend used for lookup and store
            skip_verification: Trust a supplied hash for local files and ask
                the BMC to skip its CRC check
            timeout: Seconds for the whole run, None for no limit

        Returns:
            ProvisionResult with the content hash of the flashed image

        Raises:
            ConfigError: Invalid node or cache location
            NetworkError: Download or BMC transport failure
            ProvisionTimeoutError: ``timeout`` expired
            FormatError: Unsupported or corrupt compression
            IntegrityError: Content hash mismatch
            ImageIOError: Local disk failure
            FlashError: The BMC failed to write the image
        """
        validate_node(node)
        location = CacheLocation.parse(cache_location)
        deadline = Deadline(timeout)
        log = get_struct_logger_with_context(__name__, node=node, cache=location.value)
        log.info("provision_started", source=describe_source(source))

        with _phase(node, "cache"):
            store = self.context.store_for(location)

        with tempfile.TemporaryDirectory(prefix="tpibox-provision-") as workspace:
            job, cache_hit = self._resolve(
                node, source, store, skip_verification, Path(workspace), deadline
            )
            self._dispatch(job, skip_verification, deadline)

        log.info("provision_finished", content_hash=job.content_hash, cache_hit=cache_hit)
        result = ProvisionResult(
            success=True,
            node=node,
            content_hash=job.content_hash,
            cache_hit=cache_hit,
            cache_location=location,
            image_path=job.resolved_path,
            on_bmc=job.on_bmc,
            flashed_at=datetime.now(),
        )
        result.add_message(f"Flashed node {node} with image {job.content_hash}")
        return result

    def _resolve(
        self,
        node: int,
        source: ImageSource,
        store: ContentStore,
        skip_verification: bool,
        workspace: Path,
        deadline: Deadline,
    ) -> tuple[FlashJob, bool]:
        """Find or produce the image to flash.

        Returns:
            The flash job and whether the image came from the cache
        """
        location = store.location
        expected_hash = source.expected_hash

        lookup_first = expected_hash is not None and (
            isinstance(source, RemoteImageSource) or location is CacheLocation.BMC
        )
        if lookup_first and location is not CacheLocation.NONE:
            with _phase(node, "lookup"):
                cached_path = self._lookup(store, expected_hash)
            if cached_path is not None:
                logger.info(
                    "Node %d: image %s found in %s cache",
                    node,
                    expected_hash,
                    location.value,
                )
                return (
                    FlashJob(
                        node=node,
                        resolved_path=cached_path,
                        content_hash=expected_hash,
                        cache_location=location,
                        on_bmc=location is CacheLocation.BMC,
                    ),
                    True,
                )

        with _phase(node, "download"):
            deadline.check("download")
            fetched = self.context.fetcher.fetch(
                source,
                destination_dir=workspace,
                deadline=deadline,
                verify=not skip_verification,
            )

        resolved_path = str(fetched.path)
        on_bmc = False
        if location is not CacheLocation.NONE:
            with _phase(node, "cache"):
                stored_path = self._store(store, fetched.path, fetched.content_hash, deadline)
            if stored_path is not None:
                resolved_path = stored_path
                on_bmc = location is CacheLocation.BMC

        return (
            FlashJob(
                node=node,
                resolved_path=resolved_path,
                content_hash=fetched.content_hash,
                cache_location=location,
                on_bmc=on_bmc,
            ),
            False,
        )

    @staticmethod
    def _lookup(store: ContentStore, content_hash: str) -> str | None:
        try:
            return store.lookup(content_hash)
        except CacheError as e:
            exc_info = logger.isEnabledFor(logging.DEBUG)
            logger.warning("Cache lookup failed, fetching instead: %s", e, exc_info=exc_info)
            return None

    @staticmethod
    def _store(
        store: ContentStore, path: Path, content_hash: str, deadline: Deadline
    ) -> str | None:
        try:
            return store.put(path, content_hash, deadline)
        except CacheError as e:
            exc_info = logger.isEnabledFor(logging.DEBUG)
            logger.warning("Caching image %s failed: %s", content_hash, e, exc_info=exc_info)
            return None

    def _dispatch(self, job: FlashJob, skip_verification: bool, deadline: Deadline) -> None:
        bmc = self.context.bmc
        with _phase(job.node, "flash"):
            deadline.check("flash")
            if job.on_bmc:
                logger.info("Node %d: flashing from BMC copy %s", job.node, job.resolved_path)
                bmc.flash_from_remote_path(job.node, job.resolved_path, deadline=deadline)
            else:
                logger.info("Node %d: uploading and flashing %s", job.node, job.resolved_path)
                bmc.flash_from_local_file(
                    job.node,
                    Path(job.resolved_path),
                    job.content_hash,
                    skip_crc=skip_verification,
                    deadline=deadline,
                )


def create_flash_orchestrator(context: ProvisionContext) -> FlashOrchestrator:
    """Create a FlashOrchestrator over an explicit context."""
    return FlashOrchestrator(context)
