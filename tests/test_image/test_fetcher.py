"""Tests for the image fetcher."""

import gzip
import hashlib
import lzma
from unittest.mock import Mock

import pytest
import requests
from conftest import IMAGE_BYTES, IMAGE_HASH, FakeResponse, FakeSession, write_compressed
from pydantic import ValidationError

from tpibox.core.deadline import Deadline
from tpibox.core.errors import (
    FormatError,
    ImageIOError,
    IntegrityError,
    NetworkError,
    ProvisionTimeoutError,
)
from tpibox.image.fetcher import ImageFetcher, filename_from_url
from tpibox.image.hashing import hash_file
from tpibox.image.models import LocalImageSource, RemoteImageSource


URL = "https://images.example.com/ubuntu-22.04.img.xz"


@pytest.fixture
def destination(tmp_path):
    path = tmp_path / "workspace"
    path.mkdir()
    return path


def make_fetcher(url: str, body: bytes, **response_kwargs) -> tuple[ImageFetcher, FakeSession]:
    session = FakeSession({url: FakeResponse(body, **response_kwargs)})
    return ImageFetcher(session=session), session


class TestImageSourceModels:
    def test_expected_hash_is_normalised(self):
        source = RemoteImageSource(url=URL, expected_hash=IMAGE_HASH.upper())
        assert source.expected_hash == IMAGE_HASH

    def test_blank_hash_becomes_none(self):
        assert LocalImageSource(path="/tmp/os.img", expected_hash="  ").expected_hash is None

    def test_invalid_hash_is_rejected(self):
        with pytest.raises(ValidationError):
            RemoteImageSource(url=URL, expected_hash="abc123")

    def test_url_scheme_is_checked(self):
        with pytest.raises(ValidationError):
            RemoteImageSource(url="ftp://example.com/os.img")

    def test_sources_are_immutable(self):
        source = RemoteImageSource(url=URL)
        with pytest.raises(ValidationError):
            source.url = "https://other.example.com/os.img"


class TestFilenameFromUrl:
    def test_last_segment(self):
        assert filename_from_url(URL) == "ubuntu-22.04.img.xz"

    def test_query_is_dropped_and_quoting_undone(self):
        assert filename_from_url("https://x.io/a/my%20os.img?sig=1") == "my os.img"

    def test_default_name(self):
        assert filename_from_url("https://x.io/") == "download.img"


class TestHashFile:
    def test_matches_hashlib(self, raw_image):
        assert hash_file(raw_image) == hashlib.sha256(IMAGE_BYTES).hexdigest()


class TestRemoteFetch:
    def test_xz_download_is_decompressed_and_hashed(self, destination):
        fetcher, session = make_fetcher(URL, lzma.compress(IMAGE_BYTES))

        result = fetcher.fetch(
            RemoteImageSource(url=URL, expected_hash=IMAGE_HASH), destination
        )

        assert result.content_hash == IMAGE_HASH
        assert result.path == destination / "ubuntu-22.04.img"
        assert result.path.read_bytes() == IMAGE_BYTES
        assert result.owned is True
        # Compressed download removed once decompressed
        assert sorted(p.name for p in destination.iterdir()) == ["ubuntu-22.04.img"]
        assert session.requests == [URL]
        assert fetcher.download_count == 1

    def test_content_type_used_when_url_has_no_suffix(self, destination):
        url = "https://images.example.com/download"
        fetcher, _ = make_fetcher(
            url,
            gzip.compress(IMAGE_BYTES),
            headers={"Content-Type": "application/gzip"},
        )

        result = fetcher.fetch(RemoteImageSource(url=url), destination)

        assert result.path == destination / "download.decompressed"
        assert result.content_hash == IMAGE_HASH

    def test_uncompressed_download(self, destination):
        url = "https://images.example.com/os.img"
        fetcher, _ = make_fetcher(url, IMAGE_BYTES)

        result = fetcher.fetch(RemoteImageSource(url=url), destination)

        assert result.path == destination / "os.img"
        assert result.content_hash == IMAGE_HASH

    def test_hash_mismatch_deletes_output(self, destination):
        fetcher, _ = make_fetcher(URL, lzma.compress(IMAGE_BYTES))
        wrong = "0" * 64

        with pytest.raises(IntegrityError) as exc_info:
            fetcher.fetch(RemoteImageSource(url=URL, expected_hash=wrong), destination)

        assert exc_info.value.expected == wrong
        assert exc_info.value.actual == IMAGE_HASH
        assert exc_info.value.phase == "verify"
        assert list(destination.iterdir()) == []

    def test_non_2xx_is_network_error(self, destination):
        fetcher, _ = make_fetcher(URL, b"not found", status_code=404)

        with pytest.raises(NetworkError, match="404"):
            fetcher.fetch(RemoteImageSource(url=URL), destination)
        assert list(destination.iterdir()) == []

    def test_transport_failure_is_network_error(self, destination):
        session = Mock(spec=requests.Session)
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        fetcher = ImageFetcher(session=session)

        with pytest.raises(NetworkError) as exc_info:
            fetcher.fetch(RemoteImageSource(url=URL), destination)
        assert exc_info.value.phase == "download"

    def test_corrupt_download_is_format_error(self, destination):
        fetcher, _ = make_fetcher(URL, b"garbage" * 100)

        with pytest.raises(FormatError):
            fetcher.fetch(RemoteImageSource(url=URL), destination)
        assert list(destination.iterdir()) == []

    def test_expired_deadline_cancels_download(self, destination):
        fetcher, _ = make_fetcher(URL, lzma.compress(IMAGE_BYTES))

        with pytest.raises(ProvisionTimeoutError):
            fetcher.fetch(RemoteImageSource(url=URL), destination, deadline=Deadline(0.0))
        assert list(destination.iterdir()) == []


class TestLocalFetch:
    def test_hash_is_computed_in_place(self, raw_image, destination):
        fetcher = ImageFetcher(session=Mock(spec=requests.Session))

        result = fetcher.fetch(LocalImageSource(path=raw_image), destination)

        assert result.path == raw_image
        assert result.content_hash == IMAGE_HASH
        assert result.owned is False
        fetcher.session.get.assert_not_called()

    def test_mismatch_never_deletes_user_file(self, raw_image, destination):
        fetcher = ImageFetcher(session=Mock(spec=requests.Session))

        with pytest.raises(IntegrityError):
            fetcher.fetch(
                LocalImageSource(path=raw_image, expected_hash="f" * 64), destination
            )
        assert raw_image.read_bytes() == IMAGE_BYTES

    def test_supplied_hash_trusted_without_verification(self, raw_image, destination):
        fetcher = ImageFetcher(session=Mock(spec=requests.Session))
        claimed = "a" * 64

        result = fetcher.fetch(
            LocalImageSource(path=raw_image, expected_hash=claimed),
            destination,
            verify=False,
        )

        assert result.content_hash == claimed

    def test_compressed_local_file_unpacks_into_destination(self, tmp_path, destination):
        source_file = write_compressed(tmp_path / "os.img.xz", IMAGE_BYTES, "xz")
        fetcher = ImageFetcher(session=Mock(spec=requests.Session))

        result = fetcher.fetch(LocalImageSource(path=source_file), destination)

        assert result.path == destination / "os.img"
        assert result.owned is True
        assert result.content_hash == IMAGE_HASH
        assert source_file.exists()

    def test_missing_file(self, tmp_path, destination):
        fetcher = ImageFetcher(session=Mock(spec=requests.Session))

        with pytest.raises(ImageIOError):
            fetcher.fetch(LocalImageSource(path=tmp_path / "missing.img"), destination)
