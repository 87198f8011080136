"""Pytest configuration and shared fixtures."""

import asyncio
import os
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing settings
os.environ["ENV"] = "development"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FORMAT"] = "text"

from redisfarm.store import RedisStore  # noqa: E402


class FakePubSub:
    """Stand-in for redis.asyncio PubSub.

    listen() yields the queued frames, then either ends (server closed the
    subscription) or blocks until the delivery task is cancelled.
    """

    def __init__(
        self,
        messages: list[dict[str, Any]] | None = None,
        hold_open: bool = False,
        error: Exception | None = None,
    ):
        self.messages = list(messages or [])
        self.hold_open = hold_open
        self.error = error
        self.channels: list[str] = []
        self.patterns: list[str] = []
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        self.channels.extend(channels)

    async def psubscribe(self, *patterns: str) -> None:
        self.patterns.extend(patterns)

    async def aclose(self) -> None:
        self.closed = True

    async def listen(self) -> AsyncIterator[dict[str, Any]]:
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error
        if self.hold_open:
            await asyncio.Event().wait()


def make_message(channel: str, data: str, pattern: str | None = None) -> dict[str, Any]:
    """Build a pub/sub frame as redis-py returns it."""
    return {
        "type": "pmessage" if pattern else "message",
        "pattern": pattern,
        "channel": channel,
        "data": data,
    }


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create mock Redis client."""
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.keys = AsyncMock(return_value=[])
    client.publish = AsyncMock(return_value=1)
    client.llen = AsyncMock(return_value=0)
    return client


@pytest.fixture
def mock_pubsub_redis() -> MagicMock:
    """Create mock Redis client for the pub/sub pool."""
    client = MagicMock()
    client.pubsub = MagicMock(return_value=FakePubSub(hold_open=True))
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def store(mock_redis: AsyncMock, mock_pubsub_redis: MagicMock) -> RedisStore:
    """RedisStore on db 3 wired to mock clients."""
    store = RedisStore("localhost:6379", 3)
    store._client = mock_redis
    store._pubsub_client = mock_pubsub_redis
    return store


@pytest.fixture
def fake_pubsub() -> type[FakePubSub]:
    """FakePubSub class for building subscription fixtures."""
    return FakePubSub


@pytest.fixture
def pubsub_message() -> Any:
    """Factory for redis-py pub/sub frames."""
    return make_message


@pytest.fixture
def sample_farm_settings() -> dict[str, Any]:
    """Sample store layout for testing."""
    return {
        "intraday": 3,
        "history": 4,
        "reference": 5,
    }


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
