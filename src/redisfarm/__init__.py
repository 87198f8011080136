"""redisfarm: typed async facade over Redis databases.

This package contains:
- store: RedisStore facade over one Redis db index
- farm: registry resolving stores by code or db index
- models: Pydantic message envelopes
- config: Configuration management
- observability: Structured logging
"""

from redisfarm.farm import RedisFarm, StoreFarmer
from redisfarm.models import ChannelMessage
from redisfarm.store import (
    RedisStore,
    StoreConnectionError,
    StoreError,
    Storer,
    StoreNotConnectedError,
    Subscription,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "RedisFarm",
    "StoreFarmer",
    "RedisStore",
    "Storer",
    "Subscription",
    "ChannelMessage",
    "StoreError",
    "StoreConnectionError",
    "StoreNotConnectedError",
    "TransportError",
]
