"""Image acquisition: sources, compression handling, hashing and fetching."""

from tpibox.image.compression import decompress, detect_compression
from tpibox.image.fetcher import ImageFetcher, create_image_fetcher
from tpibox.image.hashing import hash_file
from tpibox.image.models import (
    CompressionKind,
    FetchResult,
    ImageSource,
    LocalImageSource,
    RemoteImageSource,
    normalize_hash,
)


__all__ = [
    "CompressionKind",
    "FetchResult",
    "ImageFetcher",
    "ImageSource",
    "LocalImageSource",
    "RemoteImageSource",
    "create_image_fetcher",
    "decompress",
    "detect_compression",
    "hash_file",
    "normalize_hash",
]
