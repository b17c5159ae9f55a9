"""Ready-made piece sources.

The uploaders accept any iterable of bytes; these helpers cover the common
cases of uploading an in-memory buffer or a file on disk.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

DEFAULT_PIECE_SIZE = 64 * 1024


def _check_piece_size(piece_size: int) -> None:
    if piece_size < 1:
        raise ValueError(f"piece_size must be >= 1, got {piece_size}")


def bytes_source(data: bytes, piece_size: int = DEFAULT_PIECE_SIZE) -> Iterator[bytes]:
    """Yield *data* in slices of at most *piece_size* bytes."""
    _check_piece_size(piece_size)
    view = memoryview(data)
    for start in range(0, len(view), piece_size):
        yield bytes(view[start : start + piece_size])


def file_source(
    path: str | os.PathLike[str],
    piece_size: int = DEFAULT_PIECE_SIZE,
) -> Iterator[bytes]:
    """Yield the contents of the file at *path* in reads of *piece_size*.

    The file is opened lazily on first iteration and closed when the
    generator finishes or is garbage collected.
    """
    _check_piece_size(piece_size)
    with open(path, "rb") as fh:
        while piece := fh.read(piece_size):
            yield piece


async def async_file_source(
    path: str | os.PathLike[str],
    piece_size: int = DEFAULT_PIECE_SIZE,
) -> AsyncIterator[bytes]:
    """Async variant of :func:`file_source`; reads run in a worker thread."""
    _check_piece_size(piece_size)
    fh = await asyncio.to_thread(open, path, "rb")
    try:
        while piece := await asyncio.to_thread(fh.read, piece_size):
            yield piece
    finally:
        await asyncio.to_thread(fh.close)


def file_length(path: str | os.PathLike[str]) -> int:
    """Return the size in bytes of the file at *path*."""
    return Path(path).stat().st_size
