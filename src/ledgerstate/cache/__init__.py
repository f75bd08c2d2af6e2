"""In-memory caching layer."""

from .keys import CacheKeys
from .ttl import CacheRecord, CacheStats, TTLCache

__all__ = [
    "CacheKeys",
    "CacheRecord",
    "CacheStats",
    "TTLCache",
]
