"""
Query cache backends.

Exports:
  - QueryCache: Protocol shared by all backends
  - RedisQueryCache: redis.asyncio backend for shared deployments
  - InMemoryQueryCache: LRU + TTL backend for single-process deployments
  - create_query_cache: Factory selecting a backend from settings
"""

from workspace_chat.boundary.cache.query_cache import (
    InMemoryQueryCache,
    QueryCache,
    RedisQueryCache,
    create_query_cache,
)

__all__ = ["QueryCache", "RedisQueryCache", "InMemoryQueryCache", "create_query_cache"]
