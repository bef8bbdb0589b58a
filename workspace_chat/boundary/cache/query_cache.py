"""
Key-value query cache with TTL.

Sits in front of retrieval and web search. Backends never raise on I/O
failure: an unreachable cache behaves like a miss and is logged as a
warning, so callers keep working with fresh results.

Dependencies: redis.asyncio
System role: Eventually consistent cache for retrieval and tool calls
"""

import logging
import time
from collections import OrderedDict
from typing import Protocol

import redis.asyncio as redis_async
from redis.exceptions import RedisError

from workspace_chat.configs.cache import CacheSettings

logger = logging.getLogger(__name__)


class QueryCache(Protocol):
    """Cache contract: string values, TTL in seconds, prefix invalidation."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def invalidate(self, prefix: str) -> int: ...

    async def close(self) -> None: ...


class InMemoryQueryCache:
    """
    Process-local LRU cache with per-entry expiry.

    No awaits happen while the dict is mutated, so the event loop never
    interleaves two operations on it.
    """

    def __init__(self, max_entries: int = 1000, clock=time.monotonic) -> None:
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def invalidate(self, prefix: str) -> int:
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def close(self) -> None:
        self._entries.clear()


class RedisQueryCache:
    """
    Redis-backed cache shared across workers.

    Keys are namespaced as ``{namespace}:{key}``. Invalidation scans the
    namespace with SCAN so it never blocks the server.
    """

    def __init__(self, client: redis_async.Redis, namespace: str = "wschat") -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "RedisQueryCache":
        client = redis_async.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.socket_timeout_seconds,
            socket_connect_timeout=settings.socket_timeout_seconds,
        )
        return cls(client, namespace=settings.namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(self._key(key))
        except (RedisError, OSError) as e:
            logger.warning(
                f"{__name__}:get - Cache unavailable, treating as miss",
                extra={"key": key, "error": str(e)},
            )
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(self._key(key), value, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            logger.warning(
                f"{__name__}:set - Cache unavailable, skipping write",
                extra={"key": key, "error": str(e)},
            )

    async def invalidate(self, prefix: str) -> int:
        deleted = 0
        batch: list[str] = []
        try:
            async for key in self._client.scan_iter(match=f"{self._key(prefix)}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self._client.delete(*batch)
        except (RedisError, OSError) as e:
            logger.warning(
                f"{__name__}:invalidate - Cache unavailable, entries expire by TTL",
                extra={"prefix": prefix, "error": str(e)},
            )
        return deleted

    async def close(self) -> None:
        await self._client.aclose()


def create_query_cache(settings: CacheSettings) -> QueryCache:
    """
    Create the configured cache backend.

    Args:
        settings: Cache settings

    Returns:
        QueryCache: Redis backend when ``backend == "redis"``, in-memory otherwise

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = settings.backend.lower()
    if backend == "redis":
        logger.info(f"{__name__}:create_query_cache - Using Redis at {settings.redis_url}")
        return RedisQueryCache.from_settings(settings)
    if backend == "memory":
        logger.info(f"{__name__}:create_query_cache - Using in-memory cache")
        return InMemoryQueryCache(max_entries=settings.max_entries)
    raise ValueError(f"Unknown cache backend: {settings.backend}")
