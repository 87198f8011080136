"""Unit tests for the store registry."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from redisfarm.config import FarmSettings, RedisSettings, Settings
from redisfarm.farm import RedisFarm
from redisfarm.store import RedisStore, TransportError


class StubStore:
    """Minimal store exposing db and lifecycle for registry tests."""

    def __init__(self, db: int):
        self._db = db
        self.connect = AsyncMock()
        self.close = AsyncMock()
        self.ping = AsyncMock(return_value=True)

    @property
    def db(self) -> int:
        return self._db


class TestLookup:
    """Test code and db index resolution."""

    def test_add_resolves_by_code_and_db(self) -> None:
        """Test a store is reachable through both keys."""
        farm = RedisFarm()
        store_a = StubStore(3)

        farm.add("intraday", store_a)

        assert farm.by_code("intraday") is store_a
        assert farm.by_db(3) is store_a
        assert farm.by_db(4) is None

    def test_unknown_keys_return_none(self) -> None:
        """Test missing keys are a normal outcome, not an error."""
        farm = RedisFarm()

        assert farm.by_code("missing") is None
        assert farm.by_db(0) is None

    def test_code_and_db_lookups_agree(self) -> None:
        """Test by_code(code) is by_db(store.db) for every registration."""
        farm = RedisFarm()
        pairs = {"intraday": StubStore(3), "history": StubStore(4), "ref": StubStore(9)}

        for code, store in pairs.items():
            farm.add(code, store)

        for code, store in pairs.items():
            assert farm.by_code(code) is farm.by_db(store.db)

    def test_codes_returns_all_registered(self) -> None:
        """Test codes() holds every code passed to add()."""
        farm = RedisFarm()
        farm.add("intraday", StubStore(3))
        farm.add("history", StubStore(4))
        farm.add("intraday", StubStore(5))

        assert set(farm.codes()) == {"intraday", "history"}
        assert len(farm) == 2
        assert "history" in farm
        assert "unknown" not in farm

    def test_empty_registry(self) -> None:
        farm = RedisFarm()
        assert farm.codes() == []
        assert len(farm) == 0


class TestOverwrite:
    """Test last-write-wins on collisions."""

    def test_same_code_overwrites(self) -> None:
        """Test re-adding a code replaces the store."""
        farm = RedisFarm()
        first = StubStore(3)
        second = StubStore(4)

        farm.add("intraday", first)
        farm.add("intraday", second)

        assert farm.by_code("intraday") is second
        assert farm.by_db(4) is second
        # db index of the replaced store keeps its own mapping
        assert farm.by_db(3) is first

    def test_same_db_overwrites(self) -> None:
        """Test two codes sharing a db index resolve to the latest store."""
        farm = RedisFarm()
        first = StubStore(3)
        second = StubStore(3)

        farm.add("intraday", first)
        farm.add("intraday-copy", second)

        assert farm.by_db(3) is second
        assert farm.by_code("intraday") is first
        assert farm.by_code("intraday-copy") is second

    def test_same_store_under_two_codes(self) -> None:
        farm = RedisFarm()
        store = StubStore(3)

        farm.add("intraday", store)
        farm.add("today", store)

        assert farm.by_code("intraday") is farm.by_code("today") is store
        assert set(farm.codes()) == {"intraday", "today"}


class TestFromSettings:
    """Test building a farm from configuration."""

    def test_builds_unconnected_redis_stores(self, sample_farm_settings: dict[str, Any]) -> None:
        settings = Settings(
            redis=RedisSettings(host="redis.internal", port=6380, channel_prefix="EVT"),
            farm=FarmSettings(stores=sample_farm_settings),
        )

        farm = RedisFarm.from_settings(settings)

        assert set(farm.codes()) == set(sample_farm_settings)
        for code, db in sample_farm_settings.items():
            store = farm.by_code(code)
            assert isinstance(store, RedisStore)
            assert store.db == db
            assert store.connection == "redis.internal:6380"
            assert store.default_channel == f"EVT:{db}"
            assert store.is_connected is False
            assert farm.by_db(db) is store


class TestLifecycle:
    """Test connect_all/close_all/health_check."""

    async def test_connect_and_close_each_store_once(self) -> None:
        farm = RedisFarm()
        shared = StubStore(3)
        other = StubStore(4)
        farm.add("intraday", shared)
        farm.add("today", shared)
        farm.add("history", other)

        await farm.connect_all()
        await farm.close_all()

        shared.connect.assert_awaited_once()
        other.connect.assert_awaited_once()
        shared.close.assert_awaited_once()
        other.close.assert_awaited_once()

    async def test_health_check_all_healthy(self) -> None:
        farm = RedisFarm()
        farm.add("intraday", StubStore(3))
        farm.add("history", StubStore(4))

        health = await farm.health_check()

        assert health["status"] == "healthy"
        assert health["stores"]["intraday"] == {"db": 3, "status": "healthy"}
        assert health["stores"]["history"] == {"db": 4, "status": "healthy"}

    async def test_health_check_reports_failing_store(self) -> None:
        farm = RedisFarm()
        broken = StubStore(4)
        broken.ping = AsyncMock(
            side_effect=TransportError("PING", "localhost:6379", "Connection reset by peer")
        )
        farm.add("intraday", StubStore(3))
        farm.add("history", broken)

        health = await farm.health_check()

        assert health["status"] == "unhealthy"
        assert health["stores"]["intraday"]["status"] == "healthy"
        assert health["stores"]["history"]["status"] == "unhealthy"
        assert "Connection reset by peer" in health["stores"]["history"]["error"]

    async def test_close_all_continues_after_failure(self) -> None:
        """Test one store failing to close does not leave the rest open."""
        farm = RedisFarm()
        broken = StubStore(3)
        broken.close = AsyncMock(side_effect=TransportError("CLOSE", "", "Timeout"))
        healthy = StubStore(4)
        farm.add("intraday", broken)
        farm.add("history", healthy)

        await farm.close_all()

        broken.close.assert_awaited_once()
        healthy.close.assert_awaited_once()

    async def test_connect_all_propagates_failure(self) -> None:
        farm = RedisFarm()
        broken = StubStore(3)
        broken.connect = AsyncMock(side_effect=RuntimeError("boom"))
        farm.add("intraday", broken)

        with pytest.raises(RuntimeError):
            await farm.connect_all()
