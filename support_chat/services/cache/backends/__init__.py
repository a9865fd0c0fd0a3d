"""Cache backend implementations.

Provides different storage backends for the conversation cache:
- RedisBackend: Production Redis-based caching
- MemoryBackend: In-memory caching for local runs and tests
"""

from typing import Optional

from support_chat.services.cache.backends.base import ICacheBackend, CacheStats
from support_chat.services.cache.backends.redis_backend import RedisBackend
from support_chat.services.cache.backends.memory_backend import MemoryBackend


def create_cache_backend(settings) -> ICacheBackend:
    """Pick the backend for the configured environment."""
    redis_url: Optional[str] = settings.redis_url
    if redis_url:
        return RedisBackend(
            redis_url,
            max_retries=settings.redis_max_retries,
            backoff_base=settings.redis_backoff_base,
            backoff_cap=settings.redis_backoff_cap,
            socket_timeout=settings.redis_socket_timeout,
        )
    return MemoryBackend()


__all__ = [
    "ICacheBackend",
    "CacheStats",
    "RedisBackend",
    "MemoryBackend",
    "create_cache_backend",
]
