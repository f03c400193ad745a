"""Compression detection and single-file decompression."""

import gzip
import logging
import lzma
import zipfile
import zlib
from pathlib import Path
from urllib.parse import urlsplit

from tpibox.core.deadline import Deadline
from tpibox.core.errors import FormatError, ImageIOError
from tpibox.image.hashing import copy_stream
from tpibox.image.models import CompressionKind


logger = logging.getLogger(__name__)

# Checked in order; ".gzip" must not be shadowed by ".zip"
SUFFIXES: list[tuple[str, CompressionKind]] = [
    (".xz", CompressionKind.XZ),
    (".gzip", CompressionKind.GZ),
    (".gz", CompressionKind.GZ),
    (".zip", CompressionKind.ZIP),
]

# Content-type fallbacks, for servers that rename files
CONTENT_TYPE_TOKENS: list[tuple[str, CompressionKind]] = [
    ("xz", CompressionKind.XZ),
    ("gzip", CompressionKind.GZ),
    ("zip", CompressionKind.ZIP),
]


def _source_name(source: str) -> str:
    """Path portion of a URL (query and fragment removed) or a plain path."""
    if "://" in source:
        return urlsplit(source).path
    return source


def detect_compression(source: str, content_type: str | None = None) -> CompressionKind:
    """Detect the compression container of an image.

    The path or URL suffix wins; the transport content type is consulted only
    when the suffix is inconclusive. Falls back to no compression.
    """
    name = _source_name(source).lower()
    for suffix, kind in SUFFIXES:
        if name.endswith(suffix):
            return kind

    content_type = (content_type or "").lower()
    for token, kind in CONTENT_TYPE_TOKENS:
        if token in content_type:
            return kind

    return CompressionKind.NONE


def decompressed_path(path: Path, kind: CompressionKind) -> Path:
    """Output path for a decompressed file: suffix stripped, or ``.decompressed`` added."""
    name = path.name
    lower = name.lower()
    for suffix, suffix_kind in SUFFIXES:
        if suffix_kind is kind and lower.endswith(suffix) and len(name) > len(suffix):
            return path.with_name(name[: -len(suffix)])
    return path.with_name(name + ".decompressed")


def _single_zip_member(archive: zipfile.ZipFile, path: Path) -> zipfile.ZipInfo:
    members = [info for info in archive.infolist() if not info.is_dir()]
    if not members:
        raise FormatError(f"zip archive is empty: {path.name}", phase="decompress")
    if len(members) > 1:
        names = ", ".join(info.filename for info in members[:5])
        raise FormatError(
            f"zip archive {path.name} holds {len(members)} files ({names}); "
            "only single-image archives are supported",
            phase="decompress",
        )
    return members[0]


def decompress(
    path: Path,
    kind: CompressionKind,
    deadline: Deadline | None = None,
    output: Path | None = None,
) -> Path:
    """Decompress ``path`` into a new file, next to it unless ``output`` is given.

    The compressed original is left in place; the caller removes it once the
    new file exists. On failure the partial output is removed.

    Returns:
        Path of the decompressed image

    Raises:
        FormatError: Unsupported or corrupt container
        ImageIOError: Disk failure while writing the output
    """
    if kind is CompressionKind.NONE:
        raise FormatError("nothing to decompress", phase="decompress")

    output = output or decompressed_path(path, kind)
    logger.debug("Decompressing %s (%s) to %s", path, kind.value, output)

    try:
        if kind is CompressionKind.XZ:
            with lzma.open(path, "rb") as src, output.open("wb") as dst:
                copy_stream(src, dst, deadline, "decompress")
        elif kind is CompressionKind.GZ:
            with gzip.open(path, "rb") as src, output.open("wb") as dst:
                copy_stream(src, dst, deadline, "decompress")
        elif kind is CompressionKind.ZIP:
            with zipfile.ZipFile(path) as archive:
                member = _single_zip_member(archive, path)
                with archive.open(member) as src, output.open("wb") as dst:
                    copy_stream(src, dst, deadline, "decompress")
        else:
            raise FormatError(f"unsupported compression: {kind}", phase="decompress")
    except (
        lzma.LZMAError,
        gzip.BadGzipFile,
        zipfile.BadZipFile,
        zlib.error,
        EOFError,
    ) as e:
        output.unlink(missing_ok=True)
        raise FormatError(
            f"corrupt {kind.value} container {path.name}: {e}", phase="decompress"
        ) from e
    except OSError as e:
        output.unlink(missing_ok=True)
        raise ImageIOError(
            f"failed to decompress {path.name}: {e}", phase="decompress"
        ) from e
    except BaseException:
        output.unlink(missing_ok=True)
        raise

    return output
