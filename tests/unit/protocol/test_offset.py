"""Tests for protocol/offset.py."""

from __future__ import annotations

import pytest

from tusify.errors import (
    ErrorCode,
    TusifyMalformedOffsetError,
    TusifyOffsetMismatchError,
    TusifyProtocolError,
)
from tusify.protocol.offset import parse_offset, reconcile_offset


class TestParseOffset:
    def test_plain_integer(self):
        assert parse_offset("1234") == 1234

    def test_takes_first_comma_token(self):
        assert parse_offset("1234,5678") == 1234

    def test_zero(self):
        assert parse_offset("0") == 0

    def test_surrounding_whitespace_tolerated(self):
        assert parse_offset(" 42 , 43") == 42

    @pytest.mark.parametrize("raw", [None, ""])
    def test_absent_or_empty_fails(self, raw):
        with pytest.raises(TusifyMalformedOffsetError):
            parse_offset(raw)

    @pytest.mark.parametrize("raw", ["abc", "-1", "1.5", ",12", "12abc", "٣"])
    def test_non_numeric_fails(self, raw):
        with pytest.raises(TusifyMalformedOffsetError) as exc_info:
            parse_offset(raw)
        assert exc_info.value.context["raw"] == raw

    def test_malformed_is_a_protocol_error(self):
        with pytest.raises(TusifyProtocolError) as exc_info:
            parse_offset("abc")
        assert exc_info.value.code == ErrorCode.MALFORMED_OFFSET


class TestReconcileOffset:
    def test_matching_offset_returned(self):
        assert reconcile_offset("10", 10) == 10

    def test_mismatch_raises_with_context(self):
        with pytest.raises(TusifyOffsetMismatchError) as exc_info:
            reconcile_offset("9", 10)
        assert exc_info.value.context == {"expected": 10, "reported": 9}
        assert exc_info.value.code == ErrorCode.OFFSET_MISMATCH

    def test_malformed_wins_over_mismatch(self):
        with pytest.raises(TusifyMalformedOffsetError):
            reconcile_offset(None, 10)

    def test_multi_value_header_uses_first_token(self):
        assert reconcile_offset("8,10", 8) == 8
