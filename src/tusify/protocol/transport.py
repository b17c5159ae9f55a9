"""Sync and async HTTP transports for the tus protocol.

The uploaders talk to the server through three operations only:

* ``create(url, headers)`` -- ``POST`` to the creation endpoint.
* ``query_offset(url, headers)`` -- ``HEAD`` on the upload URL.
* ``send_chunk(url, headers, body)`` -- ``PATCH`` one chunk.

Each returns a :class:`~tusify.models.TransportResponse`.  Status codes are
*not* interpreted here; the uploader decides what counts as success.  The
transports never retry: a timeout or connection failure is raised as
:class:`TusifyNetworkError` straight away.

Any object satisfying :class:`Transport` (or :class:`AsyncTransport`) can
be handed to an uploader in place of the httpx-backed implementations.
"""

from __future__ import annotations

import json as _json
import sys
import time
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import httpx

from tusify.config import TusifyConfig
from tusify.errors import TusifyNetworkError
from tusify.models import TransportResponse
from tusify.observability import NoopMetricsHook, get_logger, log_fields
from tusify.utils.redact import redact

log = get_logger("tusify.transport")


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------

@runtime_checkable
class Transport(Protocol):
    """Blocking transport used by :class:`~tusify.uploader.TusUploader`."""

    def create(self, url: str, headers: Mapping[str, str]) -> TransportResponse: ...

    def query_offset(self, url: str, headers: Mapping[str, str]) -> TransportResponse: ...

    def send_chunk(
        self, url: str, headers: Mapping[str, str], body: bytes,
    ) -> TransportResponse: ...


@runtime_checkable
class AsyncTransport(Protocol):
    """Coroutine transport used by :class:`~tusify.async_uploader.AsyncTusUploader`."""

    async def create(self, url: str, headers: Mapping[str, str]) -> TransportResponse: ...

    async def query_offset(self, url: str, headers: Mapping[str, str]) -> TransportResponse: ...

    async def send_chunk(
        self, url: str, headers: Mapping[str, str], body: bytes,
    ) -> TransportResponse: ...


# ---------------------------------------------------------------------------
# Shared request helpers (used by both sync and async transports)
# ---------------------------------------------------------------------------

def _network_error(method: str, url: str, exc: Exception) -> TusifyNetworkError:
    """Log a transport failure and wrap it in :class:`TusifyNetworkError`."""
    log.warning(
        "Request network error",
        extra=log_fields(op="request", method=method, url=url, error=str(exc)),
    )
    return TusifyNetworkError(
        message=f"Network error on {method} {url}: {exc}",
        context={"method": method, "url": url},
        cause=exc,
    )


def _dump_exchange(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes | None,
    response: httpx.Response,
) -> None:
    """Write a redacted dump of one request/response pair to stderr."""
    dump: dict[str, Any] = {
        "method": method,
        "url": url,
        "request_headers": redact(headers),
        "response_status": response.status_code,
        "response_headers": redact(response.headers),
    }
    if body is not None:
        dump["request_body"] = redact({"body": body})["body"]
    print(_json.dumps(dump, indent=2, default=str), file=sys.stderr)


def _finish(
    config: TusifyConfig,
    metrics: Any,
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes | None,
    response: httpx.Response,
    elapsed_ms: float,
) -> TransportResponse:
    """Record metrics, optionally dump, and convert an httpx response."""
    tags = {"method": method, "status": str(response.status_code)}
    metrics.increment("tusify.requests_total", tags=tags)
    metrics.timing("tusify.request_duration_ms", elapsed_ms, tags=tags)
    if config.debug_dump_payload:
        _dump_exchange(method, url, headers, body, response)
    return TransportResponse(status_code=response.status_code, headers=response.headers)


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class TusTransport:
    """Synchronous tus transport backed by :class:`httpx.Client`.

    Parameters
    ----------
    config:
        A :class:`TusifyConfig` controlling timeouts, metrics and debug dumps.
    client:
        Optional pre-built client (e.g. one using ``httpx.MockTransport``).
        A client passed in is not closed by :meth:`close`.
    """

    def __init__(self, config: TusifyConfig, client: httpx.Client | None = None) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(config.timeout_seconds))

    def _request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        t0 = time.monotonic()
        try:
            response = self._client.request(method, url, headers=headers, content=body)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            self._metrics.increment(
                "tusify.requests_total", tags={"method": method, "status": "error"},
            )
            raise _network_error(method, url, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000
        return _finish(
            self._config, self._metrics, method, url, headers, body, response, elapsed_ms,
        )

    # -- public API --------------------------------------------------------

    def create(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        """``POST`` to the creation endpoint."""
        return self._request("POST", url, headers)

    def query_offset(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        """``HEAD`` the upload URL."""
        return self._request("HEAD", url, headers)

    def send_chunk(
        self, url: str, headers: Mapping[str, str], body: bytes,
    ) -> TransportResponse:
        """``PATCH`` one chunk to the upload URL."""
        return self._request("PATCH", url, headers, body)

    def close(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> TusTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncTusTransport:
    """Asynchronous tus transport backed by :class:`httpx.AsyncClient`.

    Mirrors :class:`TusTransport`; every operation is a coroutine.
    """

    def __init__(
        self, config: TusifyConfig, client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    async def _request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        t0 = time.monotonic()
        try:
            response = await self._client.request(
                method, url, headers=headers, content=body,
            )
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            self._metrics.increment(
                "tusify.requests_total", tags={"method": method, "status": "error"},
            )
            raise _network_error(method, url, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000
        return _finish(
            self._config, self._metrics, method, url, headers, body, response, elapsed_ms,
        )

    async def create(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        return await self._request("POST", url, headers)

    async def query_offset(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        return await self._request("HEAD", url, headers)

    async def send_chunk(
        self, url: str, headers: Mapping[str, str], body: bytes,
    ) -> TransportResponse:
        return await self._request("PATCH", url, headers, body)

    async def close(self) -> None:
        """Close the underlying async HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncTusTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
