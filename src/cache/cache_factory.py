# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from querycache.cache.base_cache_store import BaseCacheStore
from querycache.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation, wrapped in a
        RetryingCacheStore when STORE_RETRY_ATTEMPTS > 0.
    """
    backend = "memory" if settings is None else settings.cache_backend
    store: BaseCacheStore

    if backend == "memory":
        from querycache.cache.memory_store import MemoryCacheStore
        store = MemoryCacheStore()
    elif backend == "redis":
        from querycache.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        store = RedisCacheStore(
            redis_url=settings.cache_redis_url,
            namespace=settings.cache_namespace,
            socket_timeout=settings.cache_socket_timeout_s,
        )
    else:
        raise ValueError(f"Unsupported cache backend: {backend!r}")

    if settings is not None and settings.store_retry_attempts > 0:
        from querycache.cache.retrying_store import RetryConfig, RetryingCacheStore
        store = RetryingCacheStore(
            store,
            RetryConfig(
                max_retries=settings.store_retry_attempts,
                base_delay_s=settings.store_retry_base_delay_s,
                backoff_factor=settings.store_retry_backoff_factor,
            ),
        )

    return store
