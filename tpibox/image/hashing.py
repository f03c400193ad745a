"""Streaming SHA-256 helpers."""

import hashlib
from pathlib import Path
from typing import BinaryIO

from tpibox.core.deadline import Deadline


CHUNK_SIZE = 1024 * 1024


def copy_stream(
    src: BinaryIO,
    dst: BinaryIO,
    deadline: Deadline | None = None,
    phase: str | None = None,
) -> int:
    """Copy ``src`` to ``dst`` in fixed-size chunks, honouring the deadline.

    Returns:
        Number of bytes copied
    """
    total = 0
    while True:
        if deadline is not None:
            deadline.check(phase)
        chunk = src.read(CHUNK_SIZE)
        if not chunk:
            return total
        dst.write(chunk)
        total += len(chunk)


def hash_file(path: Path, deadline: Deadline | None = None) -> str:
    """Compute the lowercase hex SHA-256 of a file without loading it whole."""
    digest = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            if deadline is not None:
                deadline.check("verify")
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()
