"""Document store factory.

Creates the store implementation named by the configuration.
"""

from __future__ import annotations

from shop_stats.core.config import StoreConfig
from shop_stats.core.enums import StoreBackend
from shop_stats.core.errors import ConfigError

from .callback_store import EventLoopCallbackStore
from .memory_store import AsyncInMemoryDocumentStore, InMemoryDocumentStore
from .redis_store import AsyncRedisDocumentStore, RedisDocumentStore


def create_document_store(config: StoreConfig) -> InMemoryDocumentStore | RedisDocumentStore:
    """Create a blocking store for worker-pool data access.

    - MEMORY: InMemoryDocumentStore (no external deps)
    - REDIS: RedisDocumentStore (connected before returning)
    """
    if config.backend == StoreBackend.MEMORY:
        return InMemoryDocumentStore(latency_ms=config.simulated_latency_ms)
    if config.backend == StoreBackend.REDIS:
        store = RedisDocumentStore(config.redis_url, prefix=config.key_prefix)
        store.connect()
        return store
    raise ConfigError(f"Unknown store backend: {config.backend!r}")


def create_callback_store(config: StoreConfig) -> EventLoopCallbackStore:
    """Create a callback-style store driving an asyncio store on its own loop."""
    if config.backend == StoreBackend.MEMORY:
        return EventLoopCallbackStore(
            AsyncInMemoryDocumentStore(latency_ms=config.simulated_latency_ms)
        )
    if config.backend == StoreBackend.REDIS:
        async_store = AsyncRedisDocumentStore(config.redis_url, prefix=config.key_prefix)
        callback_store = EventLoopCallbackStore(async_store)
        callback_store.call(async_store.connect())
        return callback_store
    raise ConfigError(f"Unknown store backend: {config.backend!r}")
