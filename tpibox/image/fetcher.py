"""Image fetcher: download, decompress and hash OS images."""

import logging
import tempfile
from pathlib import Path
from urllib.parse import unquote, urlsplit

import requests

from tpibox.core.deadline import Deadline
from tpibox.core.errors import ImageIOError, IntegrityError, NetworkError
from tpibox.image.compression import decompress, decompressed_path, detect_compression
from tpibox.image.hashing import CHUNK_SIZE, hash_file
from tpibox.image.models import (
    CompressionKind,
    FetchResult,
    ImageSource,
    LocalImageSource,
    RemoteImageSource,
)


logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "download.img"
CONNECT_TIMEOUT = 30.0
READ_TIMEOUT = 300.0


def filename_from_url(url: str) -> str:
    """Last path segment of a URL, or a default name when there is none."""
    name = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    return name or DEFAULT_FILENAME


class ImageFetcher:
    """Turns an image source into a verified, decompressed local file.

    Remote sources are streamed to disk with ``requests``; compressed images
    are unpacked into a new file and the compressed download removed. The
    SHA-256 is always taken over the final decompressed bytes.
    """

    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests.Session()
        self.download_count = 0

    def fetch(
        self,
        source: ImageSource,
        destination_dir: Path | None = None,
        deadline: Deadline | None = None,
        verify: bool = True,
    ) -> FetchResult:
        """Fetch an image and return its decompressed path and content hash.

        Args:
            source: Remote URL or local path, with optional expected hash
            destination_dir: Directory for created files (temporary if None)
            deadline: Cancels the fetch when it expires
            verify: Compare against ``source.expected_hash`` when present.
                Only local sources may skip it; remote images are always hashed.

        Raises:
            NetworkError: Transport failure or non-2xx status
            FormatError: Unsupported or corrupt compression container
            ImageIOError: Disk failure
            IntegrityError: Computed hash differs from the expected one
        """
        deadline = deadline or Deadline.never()
        if destination_dir is None:
            destination_dir = Path(tempfile.mkdtemp(prefix="tpibox-download-"))

        if isinstance(source, RemoteImageSource):
            return self._fetch_remote(source, destination_dir, deadline)
        return self._fetch_local(source, destination_dir, deadline, verify)

    def _fetch_remote(
        self, source: RemoteImageSource, destination_dir: Path, deadline: Deadline
    ) -> FetchResult:
        download_path = destination_dir / filename_from_url(source.url)
        content_type = self._download(source.url, download_path, deadline)

        compression = detect_compression(source.url, content_type)
        final_path = download_path
        if compression is not CompressionKind.NONE:
            try:
                final_path = decompress(download_path, compression, deadline)
            finally:
                download_path.unlink(missing_ok=True)

        return self._finalize(final_path, source.expected_hash, deadline, owned=True)

    def _fetch_local(
        self,
        source: LocalImageSource,
        destination_dir: Path,
        deadline: Deadline,
        verify: bool,
    ) -> FetchResult:
        path = source.path.expanduser()
        if not path.is_file():
            raise ImageIOError(f"image file not found: {path}", phase="download")

        compression = detect_compression(str(path))
        if compression is not CompressionKind.NONE:
            # Unpack into the workspace; the user's file is never touched
            output = destination_dir / decompressed_path(path, compression).name
            final_path = decompress(path, compression, deadline, output=output)
            return self._finalize(final_path, source.expected_hash, deadline, owned=True)

        if source.expected_hash and not verify:
            logger.debug("Trusting supplied hash for %s", path)
            return FetchResult(path=path, content_hash=source.expected_hash, owned=False)

        return self._finalize(path, source.expected_hash, deadline, owned=False)

    def _download(self, url: str, path: Path, deadline: Deadline) -> str:
        """Stream ``url`` into ``path``. Returns the response content type."""
        logger.info("Downloading image from %s", url)
        self.download_count += 1
        timeout = (
            deadline.request_timeout(CONNECT_TIMEOUT),
            deadline.request_timeout(READ_TIMEOUT),
        )

        try:
            response = self.session.get(url, stream=True, timeout=timeout)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"failed to download {url}: {e}", phase="download") from e

        try:
            with response:
                if not 200 <= response.status_code < 300:
                    raise NetworkError(
                        f"download of {url} failed with status {response.status_code}",
                        phase="download",
                    )
                content_type = response.headers.get("Content-Type", "")
                written = 0
                with path.open("wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        deadline.check("download")
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
        except requests.exceptions.RequestException as e:
            path.unlink(missing_ok=True)
            raise NetworkError(f"download of {url} interrupted: {e}", phase="download") from e
        except OSError as e:
            path.unlink(missing_ok=True)
            raise ImageIOError(f"failed to save download to {path}: {e}", phase="download") from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.debug("Downloaded %d bytes to %s (content-type %r)", written, path, content_type)
        return content_type

    def _finalize(
        self,
        path: Path,
        expected_hash: str | None,
        deadline: Deadline,
        owned: bool,
    ) -> FetchResult:
        """Hash the final image and verify it against the expected hash."""
        try:
            content_hash = hash_file(path, deadline)
        except OSError as e:
            if owned:
                path.unlink(missing_ok=True)
            raise ImageIOError(f"failed to hash {path}: {e}", phase="verify") from e
        except BaseException:
            if owned:
                path.unlink(missing_ok=True)
            raise

        if expected_hash and content_hash != expected_hash:
            if owned:
                path.unlink(missing_ok=True)
            raise IntegrityError(
                f"SHA256 mismatch: expected {expected_hash}, got {content_hash}",
                expected=expected_hash,
                actual=content_hash,
                phase="verify",
            )

        logger.debug("Image %s has SHA256 %s", path, content_hash)
        return FetchResult(path=path, content_hash=content_hash, owned=owned)


def create_image_fetcher(session: requests.Session | None = None) -> ImageFetcher:
    """Create an ImageFetcher instance.

    Args:
        session: Optional requests session to reuse

    Returns:
        Configured ImageFetcher
    """
    return ImageFetcher(session=session)
