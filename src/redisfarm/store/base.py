"""Store capability contract.

Every store backend must provide this operation set. RedisStore is the
only implementation; tests and callers may depend on the protocol alone.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from redisfarm.models import ChannelMessage


@runtime_checkable
class Subscribable(Protocol):
    """Handle of a running pub/sub delivery task."""

    tag: str
    channels: list[str]

    @property
    def active(self) -> bool: ...

    async def cancel(self) -> None: ...


@runtime_checkable
class Storer(Protocol):
    """Data access and messaging operations over one Redis database."""

    @property
    def db(self) -> int: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def ping(self) -> bool: ...

    async def scan(self, pattern: str) -> list[str]: ...

    async def keys(self, pattern: str) -> list[str]: ...

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def mget(self, keys: list[str]) -> list[str | None]: ...

    async def get_object(self, key: str) -> dict[str, str]: ...

    async def hget(self, key: str, field: str) -> str: ...

    async def exists(self, key: str) -> bool: ...

    async def lpush(self, key: str, element: str) -> None: ...

    async def rpush(self, key: str, element: str) -> None: ...

    async def lrem(self, key: str, element: str, count: int) -> None: ...

    async def list_range(self, key: str, start: int, stop: int) -> list[str]: ...

    async def llen(self, key: str) -> int: ...

    async def list_len(self, key: str) -> int: ...

    async def publish(self, code: str) -> bool: ...

    async def publish_ex(self, channel: str, message: str) -> bool: ...

    async def subscribe(
        self,
        tag: str,
        queue: asyncio.Queue[ChannelMessage],
        *channels: str,
    ) -> Subscribable: ...

    async def do(self, command: str, *args: str) -> None: ...
