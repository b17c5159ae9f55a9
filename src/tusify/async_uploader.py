"""Asynchronous tus upload orchestrator.

:class:`AsyncTusUploader` mirrors :class:`~tusify.uploader.TusUploader` but
every network step is awaited and the piece source may be an async
iterable.  Independent uploaders can run concurrently (e.g. under
``asyncio.gather``); each owns its own session and assembler state.

Usage::

    import asyncio
    from tusify import AsyncTusUploader, TusifyConfig

    async def main():
        config = TusifyConfig(endpoint="https://tus.example.com/files/")
        async with AsyncTusUploader.from_file(config, "video.mp4") as uploader:
            async for event in uploader.aiter_upload():
                print(f"{event.fraction:.0%}")

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Mapping
from pathlib import Path
from typing import Any

from tusify.assembler import AsyncChunkAssembler, AsyncPieceSource
from tusify.config import TusifyConfig
from tusify.models import ProgressEvent, UploadResult, UploadState
from tusify.observability import NoopMetricsHook, get_logger, log_fields
from tusify.protocol.transport import AsyncTransport, AsyncTusTransport
from tusify.sources import DEFAULT_PIECE_SIZE, async_file_source, file_length
from tusify.state import UploadStateMachine
from tusify.uploader import (
    _apply_chunk,
    _apply_creation,
    _apply_offset,
    _base_headers,
    _build_session,
    _check_chunk,
    _check_skipped,
    _chunk_headers,
    _creation_headers,
    _log_completion,
    _log_failure,
)

log = get_logger("tusify.uploader")


class AsyncTusUploader:
    """Upload one stream of bytes to a tus server (async).

    See :class:`~tusify.uploader.TusUploader` for parameter documentation.
    *source* may additionally be an async iterable of bytes or a callable
    returning an awaitable.
    """

    def __init__(
        self,
        config: TusifyConfig,
        source: AsyncPieceSource,
        total_length: int,
        *,
        metadata: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        transport: AsyncTransport | None = None,
    ) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._owns_transport = transport is None
        self._transport: AsyncTransport = (
            transport if transport is not None else AsyncTusTransport(config)
        )
        self.session = _build_session(config, total_length, metadata, headers)
        self.assembler = AsyncChunkAssembler(source, config.chunk_size)
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
        transport: AsyncTransport | None = None,
    ) -> AsyncTusUploader:
        """Build an uploader for a file on disk (reads run in a thread)."""
        if metadata is None:
            metadata = {"filename": Path(path).name}
        return cls(
            config,
            async_file_source(path, piece_size),
            file_length(path),
            metadata=metadata,
            headers=headers,
            transport=transport,
        )

    @property
    def upload_url(self) -> str | None:
        return self.session.upload_url

    @property
    def offset(self) -> int:
        return self.session.offset

    @property
    def result(self) -> UploadResult:
        self.state.require(UploadState.COMPLETED)
        return UploadResult(
            upload_id=self.session.upload_id,
            upload_url=self.session.upload_url or "",
            offset=self.session.offset,
            chunks_sent=self.chunks_sent,
        )

    # -- steps -------------------------------------------------------------

    async def create(self) -> str:
        """Create the upload resource and return its absolute URL."""
        self.state.require(UploadState.CREATED)
        try:
            response = await self._transport.create(
                self.session.endpoint, _creation_headers(self._config, self.session),
            )
            _apply_creation(self._config, self.session, response)
        except (Exception, asyncio.CancelledError) as exc:
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

    async def determine_offset(self) -> int:
        """Ask the server how many bytes of the upload it already holds.

        Custom headers travel with the ``HEAD`` as well; see
        :meth:`TusUploader.determine_offset`.
        """
        self.state.require(UploadState.DETERMINING_OFFSET)
        try:
            response = await self._transport.query_offset(
                self.session.upload_url or "", _base_headers(self._config, self.session),
            )
            offset = _apply_offset(self.session, response)
        except (Exception, asyncio.CancelledError) as exc:
            self._fail("query_offset", exc)
            raise
        self.state.transition(UploadState.TRANSFERRING)
        log.info(
            "offset determined",
            extra=log_fields(op="query_offset", upload_url=self.session.upload_url, offset=offset),
        )
        return offset

    async def transfer(self) -> AsyncIterator[ProgressEvent]:
        """Send the remaining chunks, yielding one event per acknowledged chunk."""
        self.state.require(UploadState.TRANSFERRING)
        session = self.session
        try:
            if session.offset:
                _check_skipped(session, await self.assembler.skip(session.offset))
            while (chunk := await self.assembler.next_chunk()) is not None:
                expected = _check_chunk(session, chunk)
                response = await self._transport.send_chunk(
                    session.upload_url or "", _chunk_headers(self._config, session), chunk,
                )
                event = _apply_chunk(session, response, chunk, expected)
                self._record_chunk(event)
                yield event
        except (Exception, asyncio.CancelledError) as exc:
            self._fail("send_chunk", exc)
            raise
        self._complete()

    # -- full flows --------------------------------------------------------

    async def aiter_upload(self) -> AsyncGenerator[ProgressEvent, None]:
        """Create, determine the offset, and transfer, yielding progress."""
        await self.create()
        await self.determine_offset()
        async for event in self.transfer():
            yield event

    async def aiter_resume(self, upload_url: str) -> AsyncGenerator[ProgressEvent, None]:
        """Continue an existing upload at *upload_url*, yielding progress."""
        self.state.require(UploadState.CREATED)
        self.session.bind_url(upload_url)
        self.state.transition(UploadState.DETERMINING_OFFSET)
        await self.determine_offset()
        async for event in self.transfer():
            yield event

    async def upload(
        self,
        on_progress: Callable[[float], Any] | None = None,
        on_complete: Callable[[str | None], Any] | None = None,
    ) -> UploadResult:
        """Run the whole upload; see :meth:`TusUploader.upload`."""
        return await self._drive(self.aiter_upload(), on_progress, on_complete)

    async def resume(
        self,
        upload_url: str,
        on_progress: Callable[[float], Any] | None = None,
        on_complete: Callable[[str | None], Any] | None = None,
    ) -> UploadResult:
        """Resume the upload at *upload_url*; see :meth:`TusUploader.upload`."""
        return await self._drive(self.aiter_resume(upload_url), on_progress, on_complete)

    # -- lifecycle ---------------------------------------------------------

    async def close(self) -> None:
        """Close the transport if the uploader created it."""
        if self._owns_transport and isinstance(self._transport, AsyncTusTransport):
            await self._transport.close()

    async def __aenter__(self) -> AsyncTusUploader:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -- internals ---------------------------------------------------------

    async def _drive(
        self,
        events: AsyncGenerator[ProgressEvent, None],
        on_progress: Callable[[float], Any] | None,
        on_complete: Callable[[str | None], Any] | None,
    ) -> UploadResult:
        async for event in events:
            if on_progress is None:
                continue
            try:
                on_progress(event.fraction)
            except Exception as exc:
                await events.aclose()
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
