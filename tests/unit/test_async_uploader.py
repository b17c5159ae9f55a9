"""Unit tests for AsyncTusUploader."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fakes import ENDPOINT, AsyncFakeTusServer

from tusify.async_uploader import AsyncTusUploader
from tusify.config import TusifyConfig
from tusify.errors import (
    TusifyNetworkError,
    TusifyOffsetMismatchError,
    TusifyProtocolError,
    TusifyStateError,
)
from tusify.models import TransportResponse, UploadState
from tusify.observability import CollectingMetricsHook
from tusify.protocol.transport import AsyncTusTransport

UPLOAD_URL = "https://tus.example.com:443/files/abc"


async def _agen(*pieces):
    for piece in pieces:
        yield piece


class _BlockingTransport:
    """Answers creation and offset queries, then hangs on the first PATCH."""

    def __init__(self) -> None:
        self.patch_started = asyncio.Event()

    async def create(self, url, headers):
        return TransportResponse(201, {"Location": "/files/abc"})

    async def query_offset(self, url, headers):
        return TransportResponse(200, {"Upload-Offset": "0"})

    async def send_chunk(self, url, headers, body):
        self.patch_started.set()
        await asyncio.Event().wait()


class TestAsyncUploadFlow:
    @pytest.mark.asyncio
    async def test_ten_bytes_in_chunks_of_four(self, config, async_server):
        progress: list[float] = []
        completed = MagicMock()
        uploader = AsyncTusUploader(
            config, _agen(b"abcdef", b"ghij"), 10, transport=async_server,
        )

        result = await uploader.upload(on_progress=progress.append, on_complete=completed)

        server = async_server.server
        assert [len(b) for _, b in server.patches] == [4, 4, 2]
        assert [h["Upload-Offset"] for h, _ in server.patches] == ["0", "4", "8"]
        assert progress == [0.4, 0.8, 1.0]
        completed.assert_called_once_with("media-1")
        assert result.offset == 10
        assert uploader.state.state == UploadState.COMPLETED

    @pytest.mark.asyncio
    async def test_aiter_upload_yields_events(self, config, async_server):
        uploader = AsyncTusUploader(config, [b"abcde"], 5, transport=async_server)
        events = [event async for event in uploader.aiter_upload()]
        assert [e.offset for e in events] == [4, 5]
        assert uploader.upload_url == UPLOAD_URL

    @pytest.mark.asyncio
    async def test_coroutine_piece_source(self, config, async_server):
        pieces = [b"ab", b"cd", b"e"]

        async def next_piece():
            return pieces.pop(0) if pieces else None

        await AsyncTusUploader(config, next_piece, 5, transport=async_server).upload()
        assert bytes(async_server.server.stored) == b"abcde"

    @pytest.mark.asyncio
    async def test_resume(self, config):
        transport = AsyncFakeTusServer(stored=b"abcdef")
        uploader = AsyncTusUploader(config, _agen(b"abcdefghij"), 10, transport=transport)
        result = await uploader.resume(UPLOAD_URL)
        server = transport.server
        assert [r[0] for r in server.requests] == ["HEAD", "PATCH"]
        assert server.patches[0][0]["Upload-Offset"] == "6"
        assert bytes(server.stored) == b"abcdefghij"
        assert result.chunks_sent == 1

    @pytest.mark.asyncio
    async def test_concurrent_uploads_are_independent(self, config):
        first = AsyncFakeTusServer(location="/files/one", upload_id="one")
        second = AsyncFakeTusServer(location="/files/two", upload_id="two")
        results = await asyncio.gather(
            AsyncTusUploader(config, _agen(b"0123456789"), 10, transport=first).upload(),
            AsyncTusUploader(config, _agen(b"abcdefg"), 7, transport=second).upload(),
        )
        assert [r.upload_id for r in results] == ["one", "two"]
        assert bytes(first.server.stored) == b"0123456789"
        assert bytes(second.server.stored) == b"abcdefg"

    @pytest.mark.asyncio
    async def test_from_file(self, config, async_server, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"x" * 9)
        uploader = AsyncTusUploader.from_file(config, path, piece_size=2, transport=async_server)
        result = await uploader.upload()
        assert result.offset == 9
        assert bytes(async_server.server.stored) == b"x" * 9


class TestAsyncUploadFailures:
    @pytest.mark.asyncio
    async def test_missing_location(self, config):
        transport = AsyncFakeTusServer(location=None)
        uploader = AsyncTusUploader(config, [b"x"], 1, transport=transport)
        with pytest.raises(TusifyProtocolError, match="missing location"):
            await uploader.upload()
        assert uploader.state.state == UploadState.FAILED

    @pytest.mark.asyncio
    async def test_offset_mismatch(self, config):
        transport = AsyncMock()
        transport.create.return_value = TransportResponse(201, {"Location": "/files/abc"})
        transport.query_offset.return_value = TransportResponse(200, {"Upload-Offset": "0"})
        transport.send_chunk.return_value = TransportResponse(204, {"Upload-Offset": "2"})
        uploader = AsyncTusUploader(config, [b"abcd"], 4, transport=transport)
        with pytest.raises(TusifyOffsetMismatchError):
            await uploader.upload()
        assert transport.send_chunk.await_count == 1
        assert uploader.offset == 0

    @pytest.mark.asyncio
    async def test_network_error(self, config):
        transport = AsyncMock()
        transport.create.side_effect = TusifyNetworkError("connection refused")
        uploader = AsyncTusUploader(config, [b"x"], 1, transport=transport)
        with pytest.raises(TusifyNetworkError):
            await uploader.upload()
        transport.query_offset.assert_not_awaited()
        assert uploader.state.state == UploadState.FAILED

    @pytest.mark.asyncio
    async def test_cancellation_marks_failed(self, config):
        transport = _BlockingTransport()
        uploader = AsyncTusUploader(config, [b"abcd"], 4, transport=transport)
        task = asyncio.create_task(uploader.upload())
        await transport.patch_started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert uploader.state.state == UploadState.FAILED

    @pytest.mark.asyncio
    async def test_raising_progress_callback_fails_session(self, async_server):
        metrics = CollectingMetricsHook()
        config = TusifyConfig(endpoint=ENDPOINT, chunk_size=4, metrics=metrics)
        uploader = AsyncTusUploader(config, _agen(b"abcdefghij"), 10, transport=async_server)

        def on_progress(fraction):
            raise RuntimeError("progress bar closed")

        with pytest.raises(RuntimeError, match="progress bar closed"):
            await uploader.upload(on_progress=on_progress)

        assert uploader.state.state == UploadState.FAILED
        assert len(async_server.server.patches) == 1
        assert metrics.counters["tusify.upload_failure_total"] == 1

    @pytest.mark.asyncio
    async def test_cannot_upload_twice(self, config, async_server):
        uploader = AsyncTusUploader(config, [b"x"], 1, transport=async_server)
        await uploader.upload()
        with pytest.raises(TusifyStateError):
            await uploader.upload()


class TestAsyncLifecycle:
    @pytest.mark.asyncio
    async def test_owned_transport_closed(self, config):
        async with AsyncTusUploader(config, [], 0) as uploader:
            assert isinstance(uploader._transport, AsyncTusTransport)
        assert uploader._transport._client.is_closed

    @pytest.mark.asyncio
    async def test_injected_transport_not_closed(self, config):
        transport = AsyncMock()
        async with AsyncTusUploader(config, [], 0, transport=transport):
            pass
        transport.close.assert_not_awaited()
