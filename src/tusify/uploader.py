"""Synchronous tus upload orchestrator.

:class:`TusUploader` drives one upload session through its lifecycle::

    CREATED -> DETERMINING_OFFSET -> TRANSFERRING -> COMPLETED

1. ``POST`` the creation endpoint and resolve the returned ``Location``.
2. ``HEAD`` the upload URL to learn how many bytes the server holds.
3. Repeatedly assemble a chunk, ``PATCH`` it, and check that the server's
   ``Upload-Offset`` equals the local offset plus the chunk length.
4. Report completion with the identifier captured at creation.

Only one chunk is ever in flight.  Any failure moves the session to
``FAILED`` and propagates; nothing is retried.

Usage::

    from tusify import TusifyConfig, TusUploader

    config = TusifyConfig(endpoint="https://tus.example.com/files/")
    with TusUploader.from_file(config, "video.mp4") as uploader:
        result = uploader.upload(on_progress=lambda p: print(f"{p:.0%}"))
    print(result.upload_url)
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator, Mapping
from pathlib import Path
from typing import Any

import httpx

from tusify.assembler import ChunkAssembler, PieceSource
from tusify.config import TusifyConfig
from tusify.errors import ErrorCode, TusifyError, TusifyProtocolError
from tusify.models import (
    ProgressEvent,
    TransportResponse,
    UploadResult,
    UploadSession,
    UploadState,
)
from tusify.observability import NoopMetricsHook, get_logger, log_fields
from tusify.protocol.metadata import encode_metadata
from tusify.protocol.offset import parse_offset, reconcile_offset
from tusify.protocol.transport import Transport, TusTransport
from tusify.protocol.urls import resolve_upload_url
from tusify.sources import DEFAULT_PIECE_SIZE, file_length, file_source
from tusify.state import UploadStateMachine

log = get_logger("tusify.uploader")

OFFSET_CONTENT_TYPE = "application/offset+octet-stream"


# ---------------------------------------------------------------------------
# Shared step helpers (used by both sync and async uploaders)
# ---------------------------------------------------------------------------

def _base_headers(config: TusifyConfig, session: UploadSession) -> httpx.Headers:
    # Protocol headers replace caller headers of any case.
    headers = httpx.Headers(session.headers)
    headers["Tus-Resumable"] = config.tus_version
    return headers


def _creation_headers(config: TusifyConfig, session: UploadSession) -> httpx.Headers:
    headers = _base_headers(config, session)
    headers["Upload-Length"] = str(session.total_length)
    if config.send_metadata:
        encoded = encode_metadata(session.metadata)
        if encoded:
            headers["Upload-Metadata"] = encoded
    return headers


def _chunk_headers(config: TusifyConfig, session: UploadSession) -> httpx.Headers:
    headers = _base_headers(config, session)
    headers["Upload-Offset"] = str(session.offset)
    headers["Content-Type"] = OFFSET_CONTENT_TYPE
    return headers


def _apply_creation(
    config: TusifyConfig, session: UploadSession, response: TransportResponse,
) -> None:
    """Validate the creation reply and bind the upload URL to *session*."""
    status = response.status_code
    # Some backends answer a successful creation with 404.
    tolerated = config.accept_404_on_create and status == 404
    if not response.is_success and not tolerated:
        raise TusifyProtocolError(
            message=f"unexpected status during creation ({status})",
            context={"operation": "create", "status_code": status, "url": session.endpoint},
        )

    location = response.headers.get("location", "")
    if not location:
        raise TusifyProtocolError(
            message="missing location",
            context={"operation": "create", "status_code": status, "url": session.endpoint},
        )

    session.upload_id = response.headers.get("stream-media-id")
    session.bind_url(resolve_upload_url(location, session.endpoint))


def _apply_offset(session: UploadSession, response: TransportResponse) -> int:
    """Validate the offset-query reply and return the server offset."""
    status = response.status_code
    if not response.is_success:
        raise TusifyProtocolError(
            message=f"unexpected status while resuming upload ({status})",
            context={"operation": "query_offset", "status_code": status, "url": session.upload_url},
        )
    offset = parse_offset(response.headers.get("upload-offset"))
    session.advance(offset)
    return offset


def _check_chunk(session: UploadSession, chunk: bytes) -> int:
    """Return the offset the server must report after *chunk*."""
    expected = session.offset + len(chunk)
    if expected > session.total_length:
        raise TusifyProtocolError(
            message=(
                f"source produced more bytes than the declared upload length "
                f"({session.total_length})"
            ),
            context={"offset": session.offset, "chunk_size": len(chunk),
                     "total_length": session.total_length},
        )
    return expected


def _apply_chunk(
    session: UploadSession, response: TransportResponse, chunk: bytes, expected: int,
) -> ProgressEvent:
    """Validate a ``PATCH`` reply and advance the session offset."""
    status = response.status_code
    if not response.is_success:
        raise TusifyProtocolError(
            message=f"unexpected status while uploading chunk ({status})",
            context={"operation": "send_chunk", "status_code": status,
                     "url": session.upload_url, "offset": session.offset},
        )
    reconcile_offset(response.headers.get("upload-offset"), expected)
    session.advance(expected)
    return ProgressEvent(
        offset=session.offset,
        total_length=session.total_length,
        chunk_size=len(chunk),
    )


def _check_skipped(session: UploadSession, skipped: int) -> None:
    if skipped < session.offset:
        raise TusifyProtocolError(
            message=(
                f"source ended after {skipped} bytes, before the server offset "
                f"({session.offset})"
            ),
            context={"offset": session.offset, "skipped": skipped},
        )


def _build_session(
    config: TusifyConfig,
    total_length: int,
    metadata: Mapping[str, str] | None,
    headers: Mapping[str, str] | None,
) -> UploadSession:
    merged = httpx.Headers(config.headers)
    merged.update(headers or {})
    return UploadSession(
        endpoint=config.endpoint,
        total_length=total_length,
        headers=dict(merged.items()),
        metadata=dict(metadata or {}),
    )


def _log_completion(session: UploadSession, chunks_sent: int) -> None:
    if session.offset != session.total_length:
        log.warning(
            "source ended before the declared upload length",
            extra=log_fields(op="upload", offset=session.offset,
                             total_length=session.total_length),
        )
    log.info(
        "upload complete",
        extra=log_fields(
            op="upload", upload_url=session.upload_url, upload_id=session.upload_id,
            offset=session.offset, chunks=chunks_sent,
        ),
    )


def _log_failure(metrics: Any, op: str, session: UploadSession, exc: BaseException) -> None:
    code = exc.code if isinstance(exc, TusifyError) else type(exc).__name__
    if isinstance(code, ErrorCode):
        code = code.value
    metrics.increment("tusify.upload_failure_total", tags={"code": code})
    log.warning(
        "upload failed",
        extra=log_fields(
            op=op, endpoint=session.endpoint, upload_url=session.upload_url,
            offset=session.offset, error=str(exc), code=code,
        ),
    )


# ---------------------------------------------------------------------------
# Sync uploader
# ---------------------------------------------------------------------------

class TusUploader:
    """Upload one stream of bytes to a tus server.

    Parameters
    ----------
    config:
        Endpoint, chunk size and protocol options.
    source:
        Piece source: an iterable of bytes, or a callable returning the next
        piece or ``None``.
    total_length:
        Exact number of bytes *source* will produce.
    metadata:
        Key/value pairs for ``Upload-Metadata``.
    headers:
        Extra headers for this upload, merged over ``config.headers``.
    transport:
        Any :class:`~tusify.protocol.transport.Transport`.  Defaults to a
        :class:`TusTransport` owned (and closed) by the uploader.
    """

    def __init__(
        self,
        config: TusifyConfig,
        source: PieceSource,
        total_length: int,
        *,
        metadata: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._owns_transport = transport is None
        self._transport: Transport = transport if transport is not None else TusTransport(config)
        self.session = _build_session(config, total_length, metadata, headers)
        self.assembler = ChunkAssembler(source, config.chunk_size)
        self.state = UploadStateMachine(config.endpoint)
        self.chunks_sent = 0

    @classmethod
    def from_file(
        cls,
        config: TusifyConfig,
        path: str | os.PathLike[str],
        *,
        piece_size: int = DEFAULT_PIECE_SIZE,
        metadata: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        transport: Transport | None = None,
    ) -> TusUploader:
        """Build an uploader for a file on disk.

        When *metadata* is omitted, ``{"filename": <basename>}`` is used.
        """
        if metadata is None:
            metadata = {"filename": Path(path).name}
        return cls(
            config,
            file_source(path, piece_size),
            file_length(path),
            metadata=metadata,
            headers=headers,
            transport=transport,
        )

    # -- properties --------------------------------------------------------

    @property
    def upload_url(self) -> str | None:
        return self.session.upload_url

    @property
    def offset(self) -> int:
        return self.session.offset

    @property
    def result(self) -> UploadResult:
        """Summary of the session; only meaningful once completed."""
        self.state.require(UploadState.COMPLETED)
        return UploadResult(
            upload_id=self.session.upload_id,
            upload_url=self.session.upload_url or "",
            offset=self.session.offset,
            chunks_sent=self.chunks_sent,
        )

    # -- steps -------------------------------------------------------------

    def create(self) -> str:
        """Create the upload resource and return its absolute URL."""
        self.state.require(UploadState.CREATED)
        try:
            response = self._transport.create(
                self.session.endpoint, _creation_headers(self._config, self.session),
            )
            _apply_creation(self._config, self.session, response)
        except Exception as exc:
            self._fail("create", exc)
            raise
        self.state.transition(UploadState.DETERMINING_OFFSET)
        log.info(
            "upload created",
            extra=log_fields(
                op="create", upload_url=self.session.upload_url,
                upload_id=self.session.upload_id, total_length=self.session.total_length,
            ),
        )
        return self.session.upload_url or ""

    def determine_offset(self) -> int:
        """Ask the server how many bytes of the upload it already holds.

        The custom headers are sent along with ``Tus-Resumable`` so that
        authenticated endpoints accept the ``HEAD``.
        """
        self.state.require(UploadState.DETERMINING_OFFSET)
        try:
            response = self._transport.query_offset(
                self.session.upload_url or "", _base_headers(self._config, self.session),
            )
            offset = _apply_offset(self.session, response)
        except Exception as exc:
            self._fail("query_offset", exc)
            raise
        self.state.transition(UploadState.TRANSFERRING)
        log.info(
            "offset determined",
            extra=log_fields(op="query_offset", upload_url=self.session.upload_url, offset=offset),
        )
        return offset

    def transfer(self) -> Iterator[ProgressEvent]:
        """Send the remaining chunks, yielding one event per acknowledged chunk.

        Bytes the server already holds are skipped in the source first.
        """
        self.state.require(UploadState.TRANSFERRING)
        session = self.session
        try:
            if session.offset:
                _check_skipped(session, self.assembler.skip(session.offset))
            while (chunk := self.assembler.next_chunk()) is not None:
                expected = _check_chunk(session, chunk)
                response = self._transport.send_chunk(
                    session.upload_url or "", _chunk_headers(self._config, session), chunk,
                )
                event = _apply_chunk(session, response, chunk, expected)
                self._record_chunk(event)
                yield event
        except Exception as exc:
            self._fail("send_chunk", exc)
            raise
        self._complete()

    # -- full flows --------------------------------------------------------

    def iter_upload(self) -> Generator[ProgressEvent, None, None]:
        """Create, determine the offset, and transfer, yielding progress."""
        self.create()
        self.determine_offset()
        yield from self.transfer()

    def iter_resume(self, upload_url: str) -> Generator[ProgressEvent, None, None]:
        """Continue an existing upload at *upload_url*, yielding progress.

        *source* must produce the upload from its first byte; whatever the
        server already holds is skipped.
        """
        self.state.require(UploadState.CREATED)
        self.session.bind_url(upload_url)
        self.state.transition(UploadState.DETERMINING_OFFSET)
        self.determine_offset()
        yield from self.transfer()

    def upload(
        self,
        on_progress: Callable[[float], Any] | None = None,
        on_complete: Callable[[str | None], Any] | None = None,
    ) -> UploadResult:
        """Run the whole upload.

        Parameters
        ----------
        on_progress:
            Called with ``offset / total_length`` after every chunk.
        on_complete:
            Called once with the server-assigned identifier (may be ``None``).
        """
        return self._drive(self.iter_upload(), on_progress, on_complete)

    def resume(
        self,
        upload_url: str,
        on_progress: Callable[[float], Any] | None = None,
        on_complete: Callable[[str | None], Any] | None = None,
    ) -> UploadResult:
        """Resume the upload at *upload_url*; see :meth:`upload`."""
        return self._drive(self.iter_resume(upload_url), on_progress, on_complete)

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Close the transport if the uploader created it."""
        if self._owns_transport and isinstance(self._transport, TusTransport):
            self._transport.close()

    def __enter__(self) -> TusUploader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _drive(
        self,
        events: Generator[ProgressEvent, None, None],
        on_progress: Callable[[float], Any] | None,
        on_complete: Callable[[str | None], Any] | None,
    ) -> UploadResult:
        for event in events:
            if on_progress is None:
                continue
            try:
                on_progress(event.fraction)
            except Exception as exc:
                events.close()
                self._fail("on_progress", exc)
                raise
        if on_complete is not None:
            on_complete(self.session.upload_id)
        return self.result

    def _record_chunk(self, event: ProgressEvent) -> None:
        self.chunks_sent += 1
        self._metrics.increment("tusify.chunks_sent_total")
        self._metrics.increment("tusify.bytes_sent_total", value=event.chunk_size)
        self._metrics.gauge("tusify.upload_progress", event.fraction)
        log.debug(
            "chunk sent",
            extra=log_fields(
                op="send_chunk", upload_url=self.session.upload_url,
                offset=event.offset, chunk_size=event.chunk_size,
            ),
        )

    def _complete(self) -> None:
        self.state.transition(UploadState.COMPLETED)
        self._metrics.increment("tusify.upload_success_total")
        _log_completion(self.session, self.chunks_sent)

    def _fail(self, op: str, exc: BaseException) -> None:
        self.state.fail()
        _log_failure(self._metrics, op, self.session, exc)
