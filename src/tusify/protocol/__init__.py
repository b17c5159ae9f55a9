"""tusify.protocol -- tus wire-level helpers and HTTP transports.

This sub-package provides:

* :mod:`.metadata` -- ``Upload-Metadata`` encoding and decoding.
* :mod:`.offset` -- ``Upload-Offset`` parsing and reconciliation.
* :mod:`.urls` -- resolution of the creation ``Location``.
* :mod:`.transport` -- transport protocols and httpx implementations.
"""

from __future__ import annotations

from .metadata import decode_metadata, encode_metadata
from .offset import parse_offset, reconcile_offset
from .transport import AsyncTransport, AsyncTusTransport, Transport, TusTransport
from .urls import resolve_upload_url

__all__ = [
    "AsyncTransport",
    "AsyncTusTransport",
    "Transport",
    "TusTransport",
    "decode_metadata",
    "encode_metadata",
    "parse_offset",
    "reconcile_offset",
    "resolve_upload_url",
]
