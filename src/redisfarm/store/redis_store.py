"""Redis store facade.

One RedisStore wraps one Redis database (db index) behind typed
operations. It owns two connection pools:
- command pool: shared by all data-access coroutines
- pub/sub pool: one dedicated connection per subscription

Both pools issue SELECT <db> on every new connection.
"""

from __future__ import annotations

import asyncio
import contextlib

import redis.asyncio as redis
import structlog
from redis.asyncio.client import PubSub

from redisfarm.config import RedisSettings
from redisfarm.models import ChannelMessage
from redisfarm.observability import get_logger, log_command_failure, log_subscription_event

from .errors import StoreConnectionError, StoreNotConnectedError, TransportError

CHANNEL_PREFIX = "CMND"

LIST_PREFIX = "L:"
MAP_PREFIX = "M:"

_DATA_MESSAGE_TYPES = ("message", "pmessage")


def normalize_list_key(key: str) -> str:
    """Map a key to its list-key form.

    "M:x" -> "L:x", "L:x" is kept, anything else gets "L:" prepended.
    """
    if key.startswith(MAP_PREFIX):
        return "L" + key[1:]
    if not key.startswith(LIST_PREFIX):
        return LIST_PREFIX + key
    return key


def parse_address(address: str) -> tuple[str, int]:
    """Split a host:port address."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"address {address!r} is not in host:port form")
    return host, int(port)


class Subscription:
    """Running delivery task for one subscribe() call."""

    def __init__(
        self,
        tag: str,
        channels: list[str],
        pubsub: PubSub,
        task: asyncio.Task[None],
    ):
        self.tag = tag
        self.channels = channels
        self._pubsub = pubsub
        self._task = task
        self._cancelled = False

    @property
    def pubsub(self) -> PubSub:
        return self._pubsub

    @property
    def active(self) -> bool:
        """True while the delivery task is running."""
        return not self._task.done()

    async def cancel(self) -> None:
        """Stop delivery and release the pub/sub connection."""
        if self._cancelled:
            return
        self._cancelled = True

        self._task.cancel()
        try:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        finally:
            await self._pubsub.aclose()

    async def wait(self) -> None:
        """Wait until delivery stops on its own."""
        await asyncio.shield(self._task)


class RedisStore:
    """High-level API over one Redis database.

    The database is used as intraday storage: keys are typically
    prefixed "L:" (lists) or "M:" (hashes) and are cleared externally.
    """

    def __init__(
        self,
        connection: str,
        db: int,
        logger: structlog.stdlib.BoundLogger | None = None,
        *,
        password: str | None = None,
        pool_size: int = 10,
        connect_timeout: float | None = 5.0,
        socket_timeout: float | None = None,
        channel_prefix: str = CHANNEL_PREFIX,
    ):
        """Initialize an unconnected store.

        Args:
            connection: Redis address in host:port form
            db: Redis database index, fixed for the store's lifetime
            logger: Parent logger; bound with store context
            password: Redis password
            pool_size: Max connections in the command pool
            connect_timeout: Dial timeout in seconds
            socket_timeout: Command timeout in seconds
            channel_prefix: Prefix of the default publish channel
        """
        self._connection = connection
        self._db = db
        self._password = password
        self._pool_size = pool_size
        self._connect_timeout = connect_timeout
        self._socket_timeout = socket_timeout
        self._prefix = channel_prefix

        self._log = (logger or get_logger(__name__)).bind(
            layer="store",
            connection=connection,
            db=db,
        )

        self._pool: redis.ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._pubsub_pool: redis.ConnectionPool | None = None
        self._pubsub_client: redis.Redis | None = None
        self._subscriptions: list[Subscription] = []

    @classmethod
    def from_settings(
        cls,
        settings: RedisSettings,
        db: int,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> RedisStore:
        """Build a store from Redis settings."""
        return cls(
            settings.address,
            db,
            logger,
            password=settings.password,
            pool_size=settings.pool_size,
            connect_timeout=settings.connect_timeout_seconds,
            socket_timeout=settings.socket_timeout_seconds,
            channel_prefix=settings.channel_prefix,
        )

    def __repr__(self) -> str:
        return f"RedisStore(connection={self._connection!r}, db={self._db})"

    @property
    def db(self) -> int:
        return self._db

    @property
    def connection(self) -> str:
        return self._connection

    @property
    def default_channel(self) -> str:
        """Channel used by publish(): <prefix>:<db>."""
        return f"{self._prefix}:{self._db}"

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._pubsub_client is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _make_pool(self, max_connections: int | None) -> redis.ConnectionPool:
        host, port = parse_address(self._connection)
        return redis.ConnectionPool(
            host=host,
            port=port,
            db=self._db,
            password=self._password,
            max_connections=max_connections,
            socket_connect_timeout=self._connect_timeout,
            socket_timeout=self._socket_timeout,
            decode_responses=True,
        )

    async def connect(self) -> None:
        """Create the command and pub/sub pools and verify both.

        Raises:
            StoreConnectionError: address invalid or unreachable, auth or
                SELECT failure
        """
        try:
            self._pool = self._make_pool(self._pool_size)
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()

            # one connection per subscription, no cap
            self._pubsub_pool = self._make_pool(None)
            self._pubsub_client = redis.Redis(connection_pool=self._pubsub_pool)
            await self._pubsub_client.ping()
        except (redis.RedisError, ValueError) as e:
            log_command_failure(self._log, "CONNECT", self._connection, str(e))
            await self._release_pools()
            raise StoreConnectionError("CONNECT", self._connection, str(e)) from e

        self._log.info("Store connected", pool_size=self._pool_size)

    async def close(self) -> None:
        """Cancel subscriptions and release both pools.

        Safe after a partial connect() and on repeated calls.
        """
        subscriptions, self._subscriptions = self._subscriptions, []
        try:
            for subscription in subscriptions:
                await subscription.cancel()
        finally:
            await self._release_pools()

        self._log.info("Store closed")

    async def _release_pools(self) -> None:
        client, self._client = self._client, None
        pool, self._pool = self._pool, None
        pubsub_client, self._pubsub_client = self._pubsub_client, None
        pubsub_pool, self._pubsub_pool = self._pubsub_pool, None

        # LIFO: command client first, pub/sub pool last
        async with contextlib.AsyncExitStack() as stack:
            if pubsub_pool is not None:
                stack.push_async_callback(pubsub_pool.disconnect)
            if pubsub_client is not None:
                stack.push_async_callback(pubsub_client.aclose)
            if pool is not None:
                stack.push_async_callback(pool.disconnect)
            if client is not None:
                stack.push_async_callback(client.aclose)

    def _require_client(self, operation: str, target: str) -> redis.Redis:
        if self._client is None:
            raise StoreNotConnectedError(operation, target)
        return self._client

    def _transport_error(self, operation: str, target: str, error: Exception) -> TransportError:
        log_command_failure(self._log, operation, target, str(error))
        return TransportError(operation, target, str(error))

    async def ping(self) -> bool:
        """Check connectivity of the command pool."""
        client = self._require_client("PING", self._connection)
        try:
            return bool(await client.ping())
        except redis.RedisError as e:
            raise self._transport_error("PING", self._connection, e) from e

    # =========================================================================
    # Keys
    # =========================================================================

    async def scan(self, pattern: str) -> list[str]:
        """Return keys matching pattern using the SCAN cursor.

        SCAN may report a key more than once; duplicates are dropped.
        """
        client = self._require_client("SCAN", pattern)
        try:
            found = [key async for key in client.scan_iter(match=pattern)]
        except redis.RedisError as e:
            raise self._transport_error("SCAN", pattern, e) from e
        return list(dict.fromkeys(found))

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching pattern with a single KEYS command.

        Blocks the server for the whole keyspace walk; prefer scan() on
        large databases.
        """
        client = self._require_client("KEYS", pattern)
        try:
            return await client.keys(pattern)
        except redis.RedisError as e:
            raise self._transport_error("KEYS", pattern, e) from e

    async def exists(self, key: str) -> bool:
        client = self._require_client("EXISTS", key)
        try:
            return await client.exists(key) > 0
        except redis.RedisError as e:
            raise self._transport_error("EXISTS", key, e) from e

    # =========================================================================
    # Strings
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """Get a string value; None when the key is absent."""
        client = self._require_client("GET", key)
        try:
            return await client.get(key)
        except redis.RedisError as e:
            raise self._transport_error("GET", key, e) from e

    async def set(self, key: str, value: str) -> None:
        client = self._require_client("SET", key)
        try:
            await client.set(key, value)
        except redis.RedisError as e:
            raise self._transport_error("SET", key, e) from e

    async def mget(self, keys: list[str]) -> list[str | None]:
        """Get values aligned with keys; absent keys yield None."""
        if not keys:
            return []

        target = ",".join(keys)
        client = self._require_client("MGET", target)
        try:
            return await client.mget(keys)
        except redis.RedisError as e:
            raise self._transport_error("MGET", target, e) from e

    # =========================================================================
    # Hashes
    # =========================================================================

    async def get_object(self, key: str) -> dict[str, str]:
        """Return all fields of a hash; empty dict when absent."""
        client = self._require_client("HGETALL", key)
        try:
            return await client.hgetall(key)
        except redis.RedisError as e:
            raise self._transport_error("HGETALL", key, e) from e

    async def hget(self, key: str, field: str) -> str:
        """Return one hash field; empty string when the field is absent."""
        client = self._require_client("HGET", key)
        try:
            value = await client.hget(key, field)
        except redis.RedisError as e:
            raise self._transport_error("HGET", key, e) from e
        return value if value is not None else ""

    # =========================================================================
    # Lists
    # =========================================================================

    async def lpush(self, key: str, element: str) -> None:
        client = self._require_client("LPUSH", key)
        try:
            await client.lpush(key, element)
        except redis.RedisError as e:
            raise self._transport_error("LPUSH", key, e) from e

    async def rpush(self, key: str, element: str) -> None:
        client = self._require_client("RPUSH", key)
        try:
            await client.rpush(key, element)
        except redis.RedisError as e:
            raise self._transport_error("RPUSH", key, e) from e

    async def lrem(self, key: str, element: str, count: int) -> None:
        """Remove up to count occurrences of element.

        count > 0 walks head to tail, count < 0 tail to head, 0 removes all.
        """
        client = self._require_client("LREM", key)
        try:
            await client.lrem(key, count, element)
        except redis.RedisError as e:
            raise self._transport_error("LREM", key, e) from e

    async def list_range(self, key: str, start: int, stop: int) -> list[str]:
        """Return elements start..stop, both inclusive."""
        client = self._require_client("LRANGE", key)
        try:
            return await client.lrange(key, start, stop)
        except redis.RedisError as e:
            raise self._transport_error("LRANGE", key, e) from e

    async def llen(self, key: str) -> int:
        client = self._require_client("LLEN", key)
        try:
            return await client.llen(key)
        except redis.RedisError as e:
            raise self._transport_error("LLEN", key, e) from e

    async def list_len(self, key: str) -> int:
        """LLEN of the list form of key (see normalize_list_key)."""
        return await self.llen(normalize_list_key(key))

    # =========================================================================
    # Pub/Sub
    # =========================================================================

    async def publish(self, code: str) -> bool:
        """Publish code on the default channel.

        Returns:
            True if at least one subscriber received the message
        """
        return await self.publish_ex(self.default_channel, code)

    async def publish_ex(self, channel: str, message: str) -> bool:
        """Publish message on an explicit channel.

        Returns:
            True if at least one subscriber received the message
        """
        client = self._require_client("PUBLISH", channel)
        try:
            receivers = await client.publish(channel, message)
        except redis.RedisError as e:
            raise self._transport_error("PUBLISH", channel, e) from e

        if receivers > 0:
            self._log.debug("Message sent", channel=channel, payload=message, receivers=receivers)
        return receivers > 0

    async def subscribe(
        self,
        tag: str,
        queue: asyncio.Queue[ChannelMessage],
        *channels: str,
    ) -> Subscription:
        """Subscribe to channels and deliver messages to queue.

        Channel names containing "*" are pattern subscriptions. Each call
        gets its own pub/sub connection and delivery task; messages are
        wrapped in ChannelMessage carrying tag and this store's db index.

        Args:
            tag: Caller-assigned subscription tag
            queue: Destination for ChannelMessage instances
            channels: Channel names or patterns

        Returns:
            Subscription handle; cancel() stops delivery
        """
        target = ",".join(channels)
        if not channels:
            raise ValueError("subscribe requires at least one channel")
        if self._pubsub_client is None:
            raise StoreNotConnectedError("SUBSCRIBE", target)

        pubsub = self._pubsub_client.pubsub(ignore_subscribe_messages=True)
        exact = [c for c in channels if "*" not in c]
        patterns = [c for c in channels if "*" in c]

        try:
            if exact:
                await pubsub.subscribe(*exact)
            if patterns:
                await pubsub.psubscribe(*patterns)
        except redis.RedisError as e:
            await pubsub.aclose()
            raise self._transport_error("SUBSCRIBE", target, e) from e

        task = asyncio.create_task(
            self._deliver(tag, list(channels), pubsub, queue),
            name=f"redisfarm:{self._db}:{tag}",
        )
        subscription = Subscription(tag, list(channels), pubsub, task)
        self._subscriptions.append(subscription)

        log_subscription_event(self._log, "Subscription started", tag, list(channels))
        return subscription

    async def _deliver(
        self,
        tag: str,
        channels: list[str],
        pubsub: PubSub,
        queue: asyncio.Queue[ChannelMessage],
    ) -> None:
        """Forward pub/sub messages until the subscription ends."""
        delivered = 0
        try:
            async for message in pubsub.listen():
                if message["type"] not in _DATA_MESSAGE_TYPES:
                    continue
                await queue.put(ChannelMessage.from_redis(tag, self._db, message))
                delivered += 1
        except redis.RedisError as e:
            self._log.warning("Subscription failed", tag=tag, error=str(e))
        finally:
            self._subscriptions = [s for s in self._subscriptions if s.pubsub is not pubsub]
            log_subscription_event(
                self._log, "Subscription stopped", tag, channels, delivered=delivered
            )
            await pubsub.aclose()

    # =========================================================================
    # Generic
    # =========================================================================

    async def do(self, command: str, *args: str) -> None:
        """Execute an arbitrary command, discarding its result."""
        client = self._require_client(command, " ".join(args))
        try:
            await client.execute_command(command, *args)
        except redis.RedisError as e:
            raise self._transport_error(command, " ".join(args), e) from e
