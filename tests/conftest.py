"""Shared test fixtures for the tusify test suite."""

from __future__ import annotations

import pytest
from fakes import ENDPOINT, AsyncFakeTusServer, FakeTusServer

from tusify.config import TusifyConfig


@pytest.fixture
def config() -> TusifyConfig:
    """Test configuration with a tiny chunk size."""
    return TusifyConfig(endpoint=ENDPOINT, chunk_size=4)


@pytest.fixture
def server() -> FakeTusServer:
    return FakeTusServer()


@pytest.fixture
def async_server() -> AsyncFakeTusServer:
    return AsyncFakeTusServer()
