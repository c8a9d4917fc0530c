"""Cache layer for the taxonomy services.

Key Modules:
    - store: MemoryStore / RedisStore expiring key-value stores
    - keys: build_key, TTL classes and per-family typed key builders
    - serializer: JSON serialization of cached values
    - read_through: ReadThroughCache and the @cached decorator
    - invalidation: CacheInvalidator fan-out run after mutations

Example:
    store = MemoryStore(max_entries=1000)
    cache = ReadThroughCache(store)
    keys = FamilyKeys("categories")

    stats = await cache.get_or_load(keys.stats_key(), load_stats, CacheTTL.STATS)
    await CacheInvalidator(store, keys).invalidate(entity_id)
"""

from .keys import (
    CacheTTL,
    FamilyKeys,
    build_key,
    parse_key,
    validate_key,
)
from .store import MemoryStore, RedisStore
from .read_through import ReadThroughCache, cached
from .invalidation import CacheInvalidator

__all__ = [
    "CacheTTL",
    "FamilyKeys",
    "build_key",
    "parse_key",
    "validate_key",
    "MemoryStore",
    "RedisStore",
    "ReadThroughCache",
    "cached",
    "CacheInvalidator",
]
