"""Property-based tests for tusify using Hypothesis.

These tests check the chunking and offset invariants across randomly
generated piece sequences, chunk sizes and header values.
"""

from __future__ import annotations

import base64

from fakes import FakeTusServer
from hypothesis import given, settings
from hypothesis import strategies as st

from tusify.assembler import ChunkAssembler
from tusify.config import TusifyConfig
from tusify.protocol.metadata import decode_metadata, encode_metadata
from tusify.protocol.offset import parse_offset
from tusify.uploader import TusUploader

# ---------------------------------------------------------------------------
# Reusable strategies
# ---------------------------------------------------------------------------

_pieces_st = st.lists(st.binary(min_size=0, max_size=64), max_size=30)
_chunk_size_st = st.integers(min_value=1, max_value=50)

# Keys must not contain the separators used by the header format.
_meta_key_st = st.text(
    alphabet=st.characters(
        exclude_characters=", ", exclude_categories=("Cs", "Cc", "Zs", "Zl", "Zp"),
    ),
    min_size=1,
    max_size=12,
)


# ---------------------------------------------------------------------------
# ChunkAssembler
# ---------------------------------------------------------------------------

class TestAssemblerProperties:
    @given(pieces=_pieces_st, chunk_size=_chunk_size_st)
    def test_concatenation_round_trips(self, pieces, chunk_size):
        chunks = list(ChunkAssembler(pieces, chunk_size))
        assert b"".join(chunks) == b"".join(pieces)

    @given(pieces=_pieces_st, chunk_size=_chunk_size_st)
    def test_only_last_chunk_may_be_short(self, pieces, chunk_size):
        chunks = list(ChunkAssembler(pieces, chunk_size))
        assert all(len(c) == chunk_size for c in chunks[:-1])
        if chunks:
            assert 0 < len(chunks[-1]) <= chunk_size

    @given(pieces=_pieces_st, chunk_size=_chunk_size_st)
    def test_exhausted_stays_exhausted(self, pieces, chunk_size):
        assembler = ChunkAssembler(pieces, chunk_size)
        list(assembler)
        assert assembler.next_chunk() is None
        assert assembler.next_chunk() is None

    @given(pieces=_pieces_st, chunk_size=_chunk_size_st, data=st.data())
    def test_skip_then_chunks_is_suffix(self, pieces, chunk_size, data):
        total = b"".join(pieces)
        count = data.draw(st.integers(min_value=0, max_value=len(total) + 5))
        assembler = ChunkAssembler(pieces, chunk_size)
        skipped = assembler.skip(count)
        assert skipped == min(count, len(total))
        assert b"".join(assembler) == total[skipped:]


# ---------------------------------------------------------------------------
# Protocol helpers
# ---------------------------------------------------------------------------

class TestProtocolProperties:
    @given(value=st.integers(min_value=0, max_value=2**63), tail=st.text(max_size=10))
    def test_parse_offset_first_token(self, value, tail):
        assert parse_offset(f"{value},{tail}") == value

    @given(mapping=st.dictionaries(_meta_key_st, st.text(max_size=30), max_size=6))
    def test_metadata_decodes_back(self, mapping):
        assert decode_metadata(encode_metadata(mapping)) == mapping

    @given(mapping=st.dictionaries(_meta_key_st, st.text(max_size=30), min_size=1, max_size=6))
    def test_metadata_values_are_base64_utf8(self, mapping):
        for pair, (key, value) in zip(encode_metadata(mapping).split(","), mapping.items()):
            k, _, v = pair.partition(" ")
            assert k == key
            assert base64.b64decode(v).decode("utf-8") == value


# ---------------------------------------------------------------------------
# End to end against the fake server
# ---------------------------------------------------------------------------

class TestUploadProperties:
    @settings(max_examples=50)
    @given(pieces=_pieces_st, chunk_size=_chunk_size_st)
    def test_server_receives_exact_bytes(self, pieces, chunk_size):
        data = b"".join(pieces)
        server = FakeTusServer()
        config = TusifyConfig(endpoint="https://tus.example.com/files", chunk_size=chunk_size)
        uploader = TusUploader(config, pieces, len(data), transport=server)

        offsets = [event.offset for event in uploader.iter_upload()]

        assert bytes(server.stored) == data
        assert offsets == sorted(offsets)
        assert uploader.offset == len(data)
        assert len(server.patches) == -(-len(data) // chunk_size)
