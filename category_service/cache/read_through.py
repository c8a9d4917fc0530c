"""Read-through caching for service read operations.

For every read: build the key, look it up, and on a miss call the loader,
store its result under the key with the operation's TTL class and return it.

Failure semantics:
    - Store errors and payloads that cannot be decoded are treated as a miss
      (logged as a warning, never raised to the caller)
    - Loader errors propagate unchanged and nothing is cached
    - Store write errors are logged as a warning and swallowed

Concurrent misses for the same key are not coalesced: each caller invokes the
loader and the last write wins.

Usage:
    cache = ReadThroughCache(store)
    stats = await cache.get_or_load("categories:stats", repository.get_stats, CacheTTL.STATS)

    # Or as a decorator on a service method (the instance needs a .cache)
    class CategoryService:
        @cached(key_builder=lambda self, entity_id: self.keys.detail_key(entity_id), ttl=CacheTTL.DETAIL)
        async def find_one(self, entity_id):
            return await self.repository.find_by_id(entity_id)
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Optional

from category_service.cache.keys import validate_key
from category_service.cache.serializer import serialize, deserialize

logger = logging.getLogger(__name__)

_MISSING = object()


class ReadThroughCache:
    """
    Read-through wrapper around an expiring store.

    Args:
        store: Object with async get(key) and set(key, value, ttl)
    """

    def __init__(self, store):
        self.store = store

    async def lookup(self, key: str) -> Any:
        """Return the cached value for key, or _MISSING on miss or read failure."""
        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}. Treating as miss.")
            return _MISSING

        if raw is None:
            return _MISSING

        try:
            return deserialize(raw)
        except ValueError as e:
            logger.warning(f"Undecodable cache entry for {key}: {e}. Treating as miss.")
            return _MISSING

    async def populate(self, key: str, value: Any, ttl: int) -> bool:
        """Store value under key; returns False (after logging) on failure."""
        try:
            await self.store.set(key, serialize(value), ttl)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False
        logger.debug(f"Cache SET: {key} (ttl={ttl})")
        return True

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: int,
    ) -> Any:
        """
        Return the cached value for key, loading and caching it on a miss.

        Keys rejected by validate_key() are not looked up or stored; the
        loader runs directly.

        Args:
            key: Cache key for this read
            loader: Zero-argument coroutine function producing the value
            ttl: TTL class of the operation, in seconds

        Returns:
            The cached or freshly loaded value

        Raises:
            Whatever the loader raises; failures are never cached
        """
        if not validate_key(key):
            logger.warning(f"Invalid cache key, loading uncached: {key[:80]!r}")
            return await loader()

        cached_value = await self.lookup(key)
        if cached_value is not _MISSING:
            logger.debug(f"Cache HIT: {key}")
            return cached_value

        logger.debug(f"Cache MISS: {key}")
        value = await loader()
        await self.populate(key, value, ttl)
        return value


def cached(key_builder: Callable[..., str], ttl: int, cache_attr: str = "cache"):
    """
    Decorator applying read-through caching to an async method.

    Args:
        key_builder: Called with the method's arguments (self included) and
            returns the cache key
        ttl: TTL class in seconds
        cache_attr: Attribute on self holding the ReadThroughCache

    If the key cannot be built the method runs uncached.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs) -> Any:
            cache: Optional[ReadThroughCache] = getattr(self, cache_attr, None)
            try:
                key = key_builder(self, *args, **kwargs)
            except Exception as e:
                logger.error(f"Failed to build cache key for {func.__name__}: {e}")
                return await func(self, *args, **kwargs)

            if cache is None:
                return await func(self, *args, **kwargs)

            return await cache.get_or_load(key, lambda: func(self, *args, **kwargs), ttl)

        return wrapper

    return decorator
