"""Conversation cache.

A fail-open key-value cache in front of the conversation store. Entries are
advisory: the store stays authoritative, so a missing or expired entry only
costs latency.

Usage:
    from support_chat.services.cache import ChatCacheKeys, create_cache_backend

    cache = create_cache_backend(settings)
    await cache.connect()

    key = ChatCacheKeys.conversation_messages(conversation_id)
    messages = await cache.get(key)
    await cache.set(key, payload, ttl=90)
    await cache.delete([key])
"""

from support_chat.services.cache.key_generator import ChatCacheKeys
from support_chat.services.cache.backends import (
    CacheStats,
    ICacheBackend,
    MemoryBackend,
    RedisBackend,
    create_cache_backend,
)

__all__ = [
    "ChatCacheKeys",
    "CacheStats",
    "ICacheBackend",
    "MemoryBackend",
    "RedisBackend",
    "create_cache_backend",
]
