"""Client configuration for tusify.

:class:`TusifyConfig` is a plain dataclass that captures every tuneable knob
exposed by the client.  Instances are passed to both :class:`TusUploader`
and :class:`AsyncTusUploader`, and to the HTTP transports they build.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

TUS_VERSION = "1.0.0"
"""Version of the tus protocol spoken by the client."""

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024
"""Default maximum payload of a single PATCH request (5 MiB)."""

# Header names whose values are masked in ``repr`` output.
_SENSITIVE_HEADERS: frozenset[str] = frozenset({
    "authorization",
    "cookie",
    "proxy-authorization",
    "x-api-key",
})


@dataclass
class TusifyConfig:
    """Complete configuration for a tusify uploader.

    Every parameter has a sensible default so that the only *required*
    value is ``endpoint``.

    Parameters
    ----------
    endpoint:
        Creation URL of the tus server.  **Required.**  Must be an absolute
        ``http`` or ``https`` URL.
    chunk_size:
        Maximum number of bytes sent in one ``PATCH`` request.
    tus_version:
        Value of the ``Tus-Resumable`` header sent with every request.
    headers:
        Extra headers added to every request (e.g. ``Authorization``).
        Values are masked in ``repr``.
    send_metadata:
        Send the encoded metadata mapping as ``Upload-Metadata`` when
        creating the upload.  Nothing is sent for an empty mapping.
    accept_404_on_create:
        Treat a ``404`` reply to the creation request as success.  Some
        backends answer the creation ``POST`` this way while still
        returning a usable ``Location``.
    timeout_seconds:
        HTTP request timeout in seconds.
    metrics:
        Optional :class:`~tusify.observability.MetricsHook` backend.
    debug_dump_payload:
        Write the (redacted) request and response headers of every call to
        *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    endpoint: str = ""

    chunk_size: int = DEFAULT_CHUNK_SIZE

    tus_version: str = TUS_VERSION

    headers: dict[str, str] = field(default_factory=dict)

    # ── Protocol quirks ─────────────────────────────────────────────────
    send_metadata: bool = True

    accept_404_on_create: bool = True

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        parsed = urlsplit(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"endpoint must be an absolute http(s) URL, got {self.endpoint!r}"
            )
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def __repr__(self) -> str:
        """Mask credential headers to prevent accidental leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "headers":
                masked = {
                    k: ("****" if k.lower() in _SENSITIVE_HEADERS else v)
                    for k, v in val.items()
                }
                parts.append(f"headers={masked!r}")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"TusifyConfig({', '.join(parts)})"
