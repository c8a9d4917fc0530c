"""Expiring key-value stores backing the read-through cache.

Two backends share one async contract:

    - MemoryStore: in-process map of key -> (value, expires_at) with lazy
      expiry, an injectable clock and an optional LRU capacity bound.
    - RedisStore: the same contract over redis.asyncio, for deployments that
      run more than one worker process.

Contract:
    await store.get(key)               -> str | None
    await store.set(key, value, ttl)   -> None
    await store.delete(key)            -> bool
    await store.delete_prefix(prefix)  -> int

A ttl of zero or less means "expire immediately": nothing is stored and any
existing entry for the key is dropped.

Usage:
    store = MemoryStore(max_entries=1000)
    await store.set("categories:stats", payload, ttl=900)
    value = await store.get("categories:stats")
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from redis import asyncio as aioredis

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    value: str
    expires_at: float


class MemoryStore:
    """
    In-process expiring store.

    Entries past ``expires_at`` are evicted by the read that discovers them;
    there is no background sweep. None of the methods await, so each call is
    atomic with respect to other tasks on the event loop.

    Args:
        clock: Zero-argument callable returning seconds (default time.monotonic)
        max_entries: Capacity bound; None disables it. When a new key would
            exceed the bound, expired entries are purged first and then the
            least recently used entry is evicted.
    """

    def __init__(self, clock: Optional[Clock] = None, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive or None")
        self._clock = clock or time.monotonic
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self._misses += 1
            logger.debug(f"Cache EXPIRED: {key}")
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    async def set(self, key: str, value: str, ttl: int) -> None:
        if ttl <= 0:
            self._entries.pop(key, None)
            logger.debug(f"Cache SKIP: {key} (ttl={ttl})")
            return

        if key in self._entries:
            self._entries.move_to_end(key)
        elif self._max_entries is not None and len(self._entries) >= self._max_entries:
            self._make_room()

        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def clear(self) -> None:
        self._entries.clear()

    async def ping(self) -> bool:
        return True

    def keys(self, prefix: str = "") -> List[str]:
        """Keys currently held, expired ones included until they are read."""
        return [key for key in self._entries if key.startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Optional[int]]:
        return {
            "backend": "memory",
            "entries": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }

    def _make_room(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]

        while len(self._entries) >= self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Cache EVICT: {evicted}")


class RedisStore:
    """
    Redis-backed store with the same contract as MemoryStore.

    Keys are namespaced as ``<namespace>:<key>`` so several services can share
    one Redis database. Prefix deletion uses SCAN so it never blocks the server
    the way KEYS would.

    Args:
        redis: redis.asyncio client (see category_service.redis_client)
        namespace: Prefix applied to every key
    """

    def __init__(self, redis: aioredis.Redis, namespace: str = "category-service"):
        self.client = redis
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str, ttl: int) -> None:
        if ttl <= 0:
            await self.client.delete(self._key(key))
            return
        await self.client.setex(self._key(key), ttl, value)

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(self._key(key)))

    async def delete_prefix(self, prefix: str) -> int:
        pattern = self._key(prefix)
        for char in "\\*?[]":
            pattern = pattern.replace(char, "\\" + char)
        pattern += "*"
        doomed = [key async for key in self.client.scan_iter(match=pattern, count=500)]
        if not doomed:
            return 0
        return await self.client.delete(*doomed)

    async def clear(self) -> None:
        await self.delete_prefix("")

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    def stats(self) -> Dict[str, Optional[int]]:
        return {"backend": "redis", "namespace": self.namespace}
