"""Tests for the session, transport and event dataclasses."""

import dataclasses

import httpx
import pytest

from tusify.errors import TusifyProtocolError
from tusify.models import (
    AssemblerState,
    ProgressEvent,
    TransportResponse,
    UploadSession,
    UploadState,
)


class TestUploadSession:
    def test_defaults(self):
        session = UploadSession(endpoint="https://h/files", total_length=10)
        assert session.offset == 0
        assert session.upload_url is None
        assert session.upload_id is None

    def test_negative_length_rejected(self):
        with pytest.raises(ValueError):
            UploadSession(endpoint="https://h/files", total_length=-1)

    def test_bind_url_once(self):
        session = UploadSession(endpoint="https://h/files", total_length=1)
        session.bind_url("https://h/files/a")
        session.bind_url("https://h/files/a")
        with pytest.raises(TusifyProtocolError) as exc_info:
            session.bind_url("https://h/files/b")
        assert exc_info.value.context["requested_url"] == "https://h/files/b"
        assert session.upload_url == "https://h/files/a"

    def test_advance_monotonic_and_bounded(self):
        session = UploadSession(endpoint="https://h/files", total_length=10)
        session.advance(4)
        session.advance(4)
        session.advance(10)
        assert session.offset == 10

    @pytest.mark.parametrize("bad", [3, 11])
    def test_advance_out_of_range(self, bad):
        session = UploadSession(endpoint="https://h/files", total_length=10, offset=4)
        with pytest.raises(TusifyProtocolError):
            session.advance(bad)
        assert session.offset == 4


class TestAssemblerState:
    def test_remaining(self):
        assert AssemblerState().remaining == 0
        assert AssemblerState(piece=b"abcdef", piece_offset=2).remaining == 4


class TestTransportResponse:
    def test_dict_headers_become_case_insensitive(self):
        resp = TransportResponse(201, {"Location": "/files/a"})
        assert isinstance(resp.headers, httpx.Headers)
        assert resp.headers["location"] == "/files/a"

    def test_default_headers_empty(self):
        assert TransportResponse(204).headers.get("upload-offset") is None

    @pytest.mark.parametrize(("status", "ok"), [(200, True), (204, True), (299, True),
                                                (199, False), (404, False), (500, False)])
    def test_is_success(self, status, ok):
        assert TransportResponse(status).is_success is ok

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            TransportResponse(200).status_code = 500


class TestProgressEvent:
    def test_fraction(self):
        assert ProgressEvent(offset=5, total_length=20, chunk_size=5).fraction == 0.25

    def test_zero_length_is_complete(self):
        assert ProgressEvent(offset=0, total_length=0, chunk_size=0).fraction == 1.0


def test_upload_state_values_are_strings():
    assert UploadState.TRANSFERRING == "transferring"
