"""Store registry.

Resolves stores by a human-readable code or by their Redis db index.
The registry is populated once at startup and read afterwards; it holds
references only, callers own connect()/close().
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

from redisfarm.config import Settings
from redisfarm.observability import get_logger
from redisfarm.store import RedisStore, Storer, StoreError

logger = get_logger(__name__)


class StoreFarmer(Protocol):
    """Directory of stores keyed by code and by db index."""

    def add(self, code: str, store: Storer) -> None: ...

    def by_code(self, code: str) -> Storer | None: ...

    def by_db(self, db: int) -> Storer | None: ...

    def codes(self) -> list[str]: ...


class RedisFarm:
    """Collection of stores identified by code and by db index.

    add() writes both indexes, so every store reachable by code is
    reachable by its own db index. Collisions are last-write-wins.
    """

    def __init__(self) -> None:
        self._by_code: dict[str, Storer] = {}
        self._by_db: dict[int, Storer] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> RedisFarm:
        """Build a farm of unconnected RedisStores from FARM_STORES."""
        farm = cls()
        for code, db in settings.farm.stores.items():
            farm.add(code, RedisStore.from_settings(settings.redis, db, log))
        return farm

    def __len__(self) -> int:
        return len(self._by_code)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def add(self, code: str, store: Storer) -> None:
        """Register store under code and under store.db."""
        db = store.db

        previous = self._by_code.get(code)
        if previous is not None and previous is not store:
            logger.warning("Store code re-registered", code=code, db=db, previous_db=previous.db)
        previous = self._by_db.get(db)
        if previous is not None and previous is not store:
            logger.warning("Store db re-registered", code=code, db=db)

        self._by_code[code] = store
        self._by_db[db] = store

        logger.debug("Store registered", code=code, db=db)

    def by_code(self, code: str) -> Storer | None:
        """Store registered under code, or None."""
        return self._by_code.get(code)

    def by_db(self, db: int) -> Storer | None:
        """Store registered under db index, or None."""
        return self._by_db.get(db)

    def codes(self) -> list[str]:
        """Registered codes, in no particular order."""
        return list(self._by_code)

    def _distinct(self) -> list[tuple[str, Storer]]:
        seen: set[int] = set()
        result = []
        for code, store in self._by_code.items():
            if id(store) in seen:
                continue
            seen.add(id(store))
            result.append((code, store))
        return result

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect_all(self) -> None:
        """Connect every registered store once.

        Raises:
            StoreConnectionError: first store that fails to connect
        """
        for code, store in self._distinct():
            await store.connect()
            logger.info("Store ready", code=code, db=store.db)

    async def close_all(self) -> None:
        """Close every registered store once.

        A store that fails to close is logged and skipped so the rest
        are still released.
        """
        for code, store in self._distinct():
            try:
                await store.close()
            except Exception as e:
                logger.warning("Store close failed", code=code, db=store.db, error=str(e))

    async def health_check(self) -> dict[str, Any]:
        """Ping every registered store.

        Returns:
            Health status dict
        """
        results: dict[str, dict[str, Any]] = {}
        for code, store in self._distinct():
            try:
                healthy = await store.ping()
                results[code] = {
                    "db": store.db,
                    "status": "healthy" if healthy else "unhealthy",
                }
            except StoreError as e:
                results[code] = {"db": store.db, "status": "unhealthy", "error": str(e)}

        all_healthy = all(r["status"] == "healthy" for r in results.values())
        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "stores": results,
        }
