"""Tests for the ready-made piece sources."""

import pytest

from tusify.sources import async_file_source, bytes_source, file_length, file_source


def test_bytes_source_slices():
    assert list(bytes_source(b"abcdefg", piece_size=3)) == [b"abc", b"def", b"g"]


def test_bytes_source_empty():
    assert list(bytes_source(b"")) == []


def test_file_source(tmp_path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"0123456789")
    assert list(file_source(path, piece_size=4)) == [b"0123", b"4567", b"89"]
    assert file_length(path) == 10


def test_file_source_is_lazy(tmp_path):
    gen = file_source(tmp_path / "missing.bin")
    with pytest.raises(FileNotFoundError):
        next(gen)


@pytest.mark.parametrize("size", [0, -1])
def test_invalid_piece_size(size):
    with pytest.raises(ValueError, match="piece_size"):
        list(bytes_source(b"x", piece_size=size))


@pytest.mark.asyncio
async def test_async_file_source(tmp_path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"abcdefgh")
    pieces = [piece async for piece in async_file_source(path, piece_size=3)]
    assert pieces == [b"abc", b"def", b"gh"]
