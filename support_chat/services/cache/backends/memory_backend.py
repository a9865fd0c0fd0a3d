"""In-memory cache backend for local development and tests."""

import json
import time
from typing import Optional, Any, Dict, Sequence
from dataclasses import dataclass

from support_chat.services.cache.backends.base import ICacheBackend, CacheStats
from support_chat.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """A serialized cache entry with an expiration time."""

    value: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if the entry has expired."""
        return (now if now is not None else time.monotonic()) >= self.expires_at


class MemoryBackend(ICacheBackend):
    """In-memory cache backend.

    Mimics the Redis backend: values are stored JSON-serialized, so callers
    get fresh copies and unserializable values fail the same way. Used when
    no Redis URL is configured and in unit tests.
    """

    def __init__(self, clock=time.monotonic):
        """Initialize memory backend.

        Args:
            clock: Monotonic time source, replaceable in tests.
        """
        self._storage: Dict[str, CacheEntry] = {}
        self._available = False
        self._stats = CacheStats()
        self._clock = clock

    @property
    def available(self) -> bool:
        """Check if the backend is enabled."""
        return self._available

    @property
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats

    def __len__(self) -> int:
        return len(self._storage)

    async def connect(self) -> None:
        """Enable the cache backend."""
        self._available = True

    async def disconnect(self) -> None:
        """Disable the cache backend and clear storage."""
        self._available = False
        self._storage.clear()

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache."""
        if not self._available:
            self._stats.record_skip()
            return None

        entry = self._storage.get(key)
        if entry is None:
            self._stats.record_miss()
            return None

        if entry.is_expired(self._clock()):
            del self._storage[key]
            self._stats.evictions += 1
            self._stats.record_miss()
            return None

        self._stats.record_hit()
        return json.loads(entry.value)

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set a value in the cache."""
        if not self._available:
            self._stats.record_skip()
            return False

        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Memory cache could not serialize value for key {key}: {e}")
            self._stats.record_error()
            return False

        self._storage[key] = CacheEntry(value=serialized, expires_at=self._clock() + ttl)
        return True

    async def delete(self, keys: Sequence[str]) -> int:
        """Delete keys from the cache."""
        if not self._available:
            self._stats.record_skip()
            return 0

        removed = 0
        for key in keys:
            if self._storage.pop(key, None) is not None:
                removed += 1
        return removed
