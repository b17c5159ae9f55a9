"""tusify: resumable uploads over the tus protocol.

Public re-exports
-----------------

* **Uploaders:** :class:`TusUploader`, :class:`AsyncTusUploader`
* **Configuration:** :class:`TusifyConfig`
* **Chunking:** :class:`ChunkAssembler`, :class:`AsyncChunkAssembler` and
  the piece-source helpers
* **Errors:** Every :class:`TusifyError` subclass and :class:`ErrorCode`
* **Models:** Session, event and result dataclasses

Usage::

    from tusify import TusifyConfig, TusUploader, bytes_source

    config = TusifyConfig(endpoint="https://tus.example.com/files/")
    data = b"..."
    with TusUploader(config, bytes_source(data), len(data)) as uploader:
        result = uploader.upload()
"""

from __future__ import annotations

__version__ = "0.1.0"

# ── Uploaders ──────────────────────────────────────────────────────────
from tusify.assembler import AsyncChunkAssembler, ChunkAssembler
from tusify.async_uploader import AsyncTusUploader

# ── Configuration ───────────────────────────────────────────────────────
from tusify.config import DEFAULT_CHUNK_SIZE, TUS_VERSION, TusifyConfig

# ── Errors ──────────────────────────────────────────────────────────────
from tusify.errors import (
    ErrorCode,
    TusifyError,
    TusifyMalformedOffsetError,
    TusifyNetworkError,
    TusifyOffsetMismatchError,
    TusifyProtocolError,
    TusifyStateError,
)

# ── Models ──────────────────────────────────────────────────────────────
from tusify.models import (
    AssemblerState,
    ProgressEvent,
    TransportResponse,
    UploadResult,
    UploadSession,
    UploadState,
)
from tusify.protocol import (
    AsyncTransport,
    AsyncTusTransport,
    Transport,
    TusTransport,
    decode_metadata,
    encode_metadata,
    parse_offset,
    reconcile_offset,
    resolve_upload_url,
)
from tusify.sources import async_file_source, bytes_source, file_source
from tusify.uploader import TusUploader

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Uploaders
    "TusUploader",
    "AsyncTusUploader",
    # Configuration
    "TusifyConfig",
    "DEFAULT_CHUNK_SIZE",
    "TUS_VERSION",
    # Chunking
    "ChunkAssembler",
    "AsyncChunkAssembler",
    "bytes_source",
    "file_source",
    "async_file_source",
    # Protocol helpers and transports
    "encode_metadata",
    "decode_metadata",
    "parse_offset",
    "reconcile_offset",
    "resolve_upload_url",
    "Transport",
    "AsyncTransport",
    "TusTransport",
    "AsyncTusTransport",
    # Errors
    "TusifyError",
    "ErrorCode",
    "TusifyProtocolError",
    "TusifyMalformedOffsetError",
    "TusifyOffsetMismatchError",
    "TusifyNetworkError",
    "TusifyStateError",
    # Models
    "UploadState",
    "UploadSession",
    "AssemblerState",
    "TransportResponse",
    "ProgressEvent",
    "UploadResult",
]
