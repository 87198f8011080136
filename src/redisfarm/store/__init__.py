"""Redis store facade.

A store wraps one Redis database (db index):
- typed string, hash and list access
- key enumeration (SCAN and KEYS)
- pub/sub with per-subscription delivery tasks
"""

from .base import Storer, Subscribable
from .errors import (
    StoreConnectionError,
    StoreError,
    StoreNotConnectedError,
    TransportError,
)
from .redis_store import (
    CHANNEL_PREFIX,
    RedisStore,
    Subscription,
    normalize_list_key,
    parse_address,
)

__all__ = [
    # Contract
    "Storer",
    "Subscribable",
    # Implementation
    "RedisStore",
    "Subscription",
    "CHANNEL_PREFIX",
    "normalize_list_key",
    "parse_address",
    # Errors
    "StoreError",
    "StoreConnectionError",
    "StoreNotConnectedError",
    "TransportError",
]
