"""Store registry keyed by code and db index."""

from .registry import RedisFarm, StoreFarmer

__all__ = [
    "RedisFarm",
    "StoreFarmer",
]
