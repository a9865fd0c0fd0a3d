"""Base interface for cache backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Any, Dict, Sequence


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0
    skipped: int = 0  # operations short-circuited while unavailable

    @property
    def total_requests(self) -> int:
        """Total number of cache lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.misses += 1

    def record_error(self) -> None:
        """Record a cache error."""
        self.errors += 1

    def record_skip(self) -> None:
        """Record an operation skipped because the backend is unavailable."""
        self.skipped += 1

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.evictions = 0
        self.skipped = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "evictions": self.evictions,
            "skipped": self.skipped,
            "hit_rate": round(self.hit_rate, 4),
        }


class ICacheBackend(ABC):
    """Abstract base class for cache backends.

    Every operation is fail-open: implementations never raise to callers.
    ``get`` reports failures as a miss, ``set`` and ``delete`` report them
    through their return value and the log.
    """

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether the backend is connected and usable right now."""
        ...

    @property
    @abstractmethod
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the cache backend."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the cache backend."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached value, or None if absent, expired or unreadable.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set a value in the cache.

        Args:
            key: The cache key.
            value: The value to cache (will be JSON serialized).
            ttl: Time-to-live in seconds.

        Returns:
            True if stored, False otherwise.
        """
        ...

    @abstractmethod
    async def delete(self, keys: Sequence[str]) -> int:
        """Delete keys from the cache.

        Args:
            keys: The cache keys to delete.

        Returns:
            Number of keys removed (0 on failure).
        """
        ...
