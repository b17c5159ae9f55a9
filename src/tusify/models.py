"""Public data models for the tusify client.

This module contains the session, assembler and transport value types plus
the event and result types returned to callers.  All types are plain
dataclasses; the only behaviour they carry is the bookkeeping needed to keep
their invariants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import httpx

from tusify.errors import TusifyProtocolError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class UploadState(str, Enum):
    """Lifecycle states of one upload session."""

    CREATED = "created"
    """Initial state; the upload resource has not been created yet."""

    DETERMINING_OFFSET = "determining_offset"
    """The server is being asked how many bytes it already holds."""

    TRANSFERRING = "transferring"
    """Chunks are being PATCHed to the upload URL."""

    COMPLETED = "completed"
    """Every byte has been acknowledged by the server."""

    FAILED = "failed"
    """A step raised; the session cannot continue."""


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

@dataclass
class UploadSession:
    """In-memory state of one upload, owned by a single uploader.

    Attributes
    ----------
    endpoint:
        The creation URL.
    total_length:
        Total number of bytes that will be uploaded.  Fixed at construction.
    offset:
        Bytes the server has acknowledged so far.  Never decreases.
    upload_url:
        Absolute URL of the upload resource, bound once by :meth:`bind_url`.
    upload_id:
        Identifier from the ``stream-media-id`` creation header, if any.
    headers:
        Caller-supplied headers added to every request.
    metadata:
        Key/value pairs encoded into ``Upload-Metadata``.
    """

    endpoint: str
    total_length: int
    offset: int = 0
    upload_url: str | None = None
    upload_id: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.total_length < 0:
            raise ValueError(f"total_length must be >= 0, got {self.total_length}")

    def bind_url(self, url: str) -> None:
        """Set the upload URL.  A bound URL can never be replaced."""
        if self.upload_url is not None and self.upload_url != url:
            raise TusifyProtocolError(
                message=f"upload URL already bound to {self.upload_url}",
                context={"url": self.upload_url, "requested_url": url},
            )
        self.upload_url = url

    def advance(self, new_offset: int) -> None:
        """Move the offset forward, keeping ``offset <= new <= total_length``."""
        if new_offset < self.offset or new_offset > self.total_length:
            raise TusifyProtocolError(
                message=(
                    f"offset {new_offset} outside of [{self.offset}, {self.total_length}]"
                ),
                context={
                    "offset": self.offset,
                    "requested_offset": new_offset,
                    "total_length": self.total_length,
                },
            )
        self.offset = new_offset


@dataclass
class AssemblerState:
    """Carry-over state of a chunk assembler between calls.

    Attributes
    ----------
    piece:
        The piece currently being consumed, or ``None``.
    piece_offset:
        Number of bytes of *piece* already copied into chunks.
    exhausted:
        ``True`` once the source has signalled its end.
    """

    piece: bytes | None = None
    piece_offset: int = 0
    exhausted: bool = False

    @property
    def remaining(self) -> int:
        """Unconsumed bytes left in the held piece."""
        if self.piece is None:
            return 0
        return len(self.piece) - self.piece_offset


# ---------------------------------------------------------------------------
# Transport / results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransportResponse:
    """Status and headers of one protocol request.

    ``headers`` is an :class:`httpx.Headers` so look-ups are
    case-insensitive regardless of what the transport returned.
    """

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            object.__setattr__(self, "headers", httpx.Headers(self.headers))

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after every acknowledged chunk.

    Attributes
    ----------
    offset:
        Server-acknowledged offset after the transfer.
    total_length:
        Total length of the upload.
    chunk_size:
        Number of bytes in the transfer that produced this event.
    """

    offset: int
    total_length: int
    chunk_size: int

    @property
    def fraction(self) -> float:
        """Progress as a value in ``[0, 1]``."""
        if self.total_length == 0:
            return 1.0
        return self.offset / self.total_length


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a finished upload."""

    upload_id: str | None
    upload_url: str
    offset: int
    chunks_sent: int
