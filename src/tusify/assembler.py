"""Coalesce arbitrarily-sized byte pieces into fixed-size upload chunks.

A piece source yields ``bytes`` of any length (including zero) with no
relation to the protocol's chunk size.  :class:`ChunkAssembler` pulls
pieces lazily and emits chunks of exactly ``chunk_size`` bytes, except for
a final shorter one.  The unconsumed tail of a piece is carried over to the
next chunk in an :class:`~tusify.models.AssemblerState` owned by the
assembler, so no byte is lost or duplicated.

Accepted sources:

* sync -- any iterable of bytes, or a zero-argument callable returning
  ``bytes`` or ``None`` at the end.
* async -- additionally any async iterable, or a callable returning an
  awaitable.

Exceptions raised by the source propagate unchanged.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Iterator
from typing import Any, Union

from tusify.models import AssemblerState

PieceSource = Union[Iterable[bytes], Callable[[], Union[bytes, None]]]
AsyncPieceSource = Union[AsyncIterable[bytes], PieceSource, Callable[[], Any]]


def _fill(state: AssemblerState, buffer: bytearray, chunk_size: int) -> bool:
    """Copy from the held piece into *buffer*; return ``True`` once full.

    A fully consumed piece is released so the next call fetches a new one.
    """
    if state.piece is not None:
        need = chunk_size - len(buffer)
        end = min(state.piece_offset + need, len(state.piece))
        buffer += state.piece[state.piece_offset:end]
        state.piece_offset = end
        if state.remaining == 0:
            state.piece = None
            state.piece_offset = 0
    return len(buffer) >= chunk_size


def _discard(state: AssemblerState, count: int) -> int:
    """Drop up to *count* bytes of the held piece; return how many."""
    take = min(count, state.remaining)
    state.piece_offset += take
    if state.remaining == 0:
        state.piece = None
        state.piece_offset = 0
    return take


def _hold(state: AssemblerState, piece: bytes | bytearray | memoryview) -> None:
    state.piece = piece if isinstance(piece, bytes) else bytes(piece)
    state.piece_offset = 0


def _check_chunk_size(chunk_size: int) -> None:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")


class ChunkAssembler:
    """Turn a synchronous piece source into chunks of ``chunk_size`` bytes.

    Parameters
    ----------
    source:
        Iterable of byte pieces, a callable returning the next piece or
        ``None``, or a single bytes-like object.
    chunk_size:
        Maximum (and, except for the last chunk, exact) chunk length.
    """

    def __init__(self, source: PieceSource | bytes, chunk_size: int) -> None:
        _check_chunk_size(chunk_size)
        self.chunk_size = chunk_size
        self.state = AssemblerState()
        self._next_piece: Callable[[], bytes | None] | None = None
        self._iterator: Iterator[bytes] | None = None
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._iterator = iter((bytes(source),))
        elif callable(source) and not isinstance(source, Iterable):
            self._next_piece = source
        else:
            self._iterator = iter(source)

    def _pull(self) -> bytes | None:
        if self._next_piece is not None:
            return self._next_piece()
        assert self._iterator is not None
        return next(self._iterator, None)

    def next_chunk(self) -> bytes | None:
        """Return the next chunk, or ``None`` once every byte was emitted.

        Once ``None`` has been returned the source is never consulted again.
        """
        state = self.state
        if state.exhausted and state.piece is None:
            return None

        buffer = bytearray()
        while not _fill(state, buffer, self.chunk_size):
            piece = self._pull()
            if piece is None:
                state.exhausted = True
                return bytes(buffer) if buffer else None
            _hold(state, piece)
        return bytes(buffer)

    def skip(self, count: int) -> int:
        """Discard the next *count* bytes of the stream.

        Returns the number of bytes discarded, which is smaller than
        *count* only when the source ran out first.
        """
        state = self.state
        skipped = 0
        while skipped < count:
            if state.piece is None:
                if state.exhausted:
                    break
                piece = self._pull()
                if piece is None:
                    state.exhausted = True
                    break
                _hold(state, piece)
            skipped += _discard(state, count - skipped)
        return skipped

    def __iter__(self) -> Iterator[bytes]:
        while (chunk := self.next_chunk()) is not None:
            yield chunk


class AsyncChunkAssembler:
    """Asynchronous counterpart of :class:`ChunkAssembler`.

    Every piece fetch may suspend; the chunking rules are identical.
    """

    def __init__(self, source: AsyncPieceSource | bytes, chunk_size: int) -> None:
        _check_chunk_size(chunk_size)
        self.chunk_size = chunk_size
        self.state = AssemblerState()
        self._aiterator: AsyncIterator[bytes] | None = None
        self._next_piece: Callable[[], Any] | None = None
        self._iterator: Iterator[bytes] | None = None
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._iterator = iter((bytes(source),))
        elif isinstance(source, AsyncIterable):
            self._aiterator = source.__aiter__()
        elif callable(source) and not isinstance(source, Iterable):
            self._next_piece = source
        else:
            self._iterator = iter(source)

    async def _pull(self) -> bytes | None:
        if self._aiterator is not None:
            try:
                return await self._aiterator.__anext__()
            except StopAsyncIteration:
                return None
        if self._next_piece is not None:
            result = self._next_piece()
            if inspect.isawaitable(result):
                result = await result
            return result
        assert self._iterator is not None
        return next(self._iterator, None)

    async def next_chunk(self) -> bytes | None:
        """Return the next chunk, or ``None`` once every byte was emitted."""
        state = self.state
        if state.exhausted and state.piece is None:
            return None

        buffer = bytearray()
        while not _fill(state, buffer, self.chunk_size):
            piece = await self._pull()
            if piece is None:
                state.exhausted = True
                return bytes(buffer) if buffer else None
            _hold(state, piece)
        return bytes(buffer)

    async def skip(self, count: int) -> int:
        """Discard the next *count* bytes; see :meth:`ChunkAssembler.skip`."""
        state = self.state
        skipped = 0
        while skipped < count:
            if state.piece is None:
                if state.exhausted:
                    break
                piece = await self._pull()
                if piece is None:
                    state.exhausted = True
                    break
                _hold(state, piece)
            skipped += _discard(state, count - skipped)
        return skipped

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[bytes]:
        while (chunk := await self.next_chunk()) is not None:
            yield chunk
