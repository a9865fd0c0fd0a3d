"""Redis cache backend implementation."""

import asyncio
import json
from typing import Optional, Any, Sequence
from datetime import timedelta

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from support_chat.services.cache.backends.base import ICacheBackend, CacheStats
from support_chat.core.logging import get_logger

logger = get_logger(__name__)

# Errors that mean the connection itself is gone, as opposed to a bad command.
TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError, ConnectionError, OSError)


class RedisBackend(ICacheBackend):
    """Redis-based cache backend.

    Provides a fail-open cache over a single shared Redis client with:
    - Automatic JSON serialization/deserialization
    - An ``available`` flag cleared on transport errors, so a down cache
      costs no network round-trips per request
    - Bounded exponential-backoff reconnection in the background
    - Statistics tracking
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        max_retries: int = 3,
        backoff_base: float = 0.1,
        backoff_cap: float = 3.0,
        socket_timeout: float = 2.0,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL.
            max_retries: Reconnection attempts before giving up.
            backoff_base: Initial reconnection delay in seconds.
            backoff_cap: Upper bound for a single reconnection delay.
            socket_timeout: Socket connect/read timeout in seconds.
            client: Pre-built client (used by tests).
        """
        self._redis_url = redis_url
        self._max_retries = max_retries
        self._socket_timeout = socket_timeout
        self._backoff = ExponentialBackoff(cap=backoff_cap, base=backoff_base)
        self._client: Optional[redis.Redis] = client
        self._available = False
        self._stats = CacheStats()
        self._reconnect_task: Optional[asyncio.Task] = None

    @property
    def available(self) -> bool:
        """Check if Redis is connected and usable."""
        return self._available and self._client is not None

    @property
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats

    @property
    def client(self) -> Optional[redis.Redis]:
        """Get the Redis client (for advanced operations)."""
        return self._client

    def _build_client(self) -> redis.Redis:
        return redis.from_url(
            self._redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._socket_timeout,
            retry=Retry(self._backoff, self._max_retries),
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
        )

    async def connect(self) -> None:
        """Connect to Redis.

        A failed first ping does not raise; the backend stays unavailable and
        reconnection continues in the background.
        """
        if self._client is None:
            if not self._redis_url:
                logger.info("Redis URL not configured, cache disabled")
                self._available = False
                return
            self._client = self._build_client()

        if await self._ping():
            logger.info("Connected to Redis cache")
        else:
            logger.error("Initial Redis connection failed, cache disabled until reconnect")
            self._schedule_reconnect()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        if self._client:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning(f"Error closing Redis client: {e}")
            self._client = None
        self._available = False
        logger.info("Redis connection closed")

    async def _ping(self) -> bool:
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            logger.error(f"Redis connection error: {e}")
            self._available = False
            return False
        self._available = True
        return True

    def _schedule_reconnect(self) -> None:
        if self._client is None:
            return
        if self._reconnect_task and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> bool:
        """Retry the connection with capped exponential backoff."""
        for attempt in range(1, self._max_retries + 1):
            delay = self._backoff.compute(attempt)
            await asyncio.sleep(delay)
            logger.info(f"Redis reconnect attempt {attempt}/{self._max_retries}")
            if await self._ping():
                logger.info("Redis connection restored")
                return True

        logger.error("Redis max retries reached, cache disabled")
        return False

    def _on_error(self, operation: str, key: str, error: Exception) -> None:
        self._stats.record_error()
        if isinstance(error, TRANSPORT_ERRORS):
            logger.error(f"Redis {operation} transport error for {key}: {error}")
            self._available = False
            self._schedule_reconnect()
        else:
            logger.error(f"Redis {operation} error for {key}: {error}")

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from Redis."""
        if not self.available:
            self._stats.record_skip()
            return None

        try:
            value = await self._client.get(key)
        except Exception as e:
            self._on_error("GET", key, e)
            return None

        if value is None:
            self._stats.record_miss()
            return None

        try:
            decoded = json.loads(value)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Redis GET returned undecodable value for key {key}: {e}")
            self._stats.record_error()
            return None

        self._stats.record_hit()
        return decoded

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set a value in Redis with a TTL."""
        if not self.available:
            self._stats.record_skip()
            return False

        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Redis SET could not serialize value for key {key}: {e}")
            self._stats.record_error()
            return False

        try:
            await self._client.setex(key, timedelta(seconds=ttl), serialized)
            return True
        except Exception as e:
            self._on_error("SET", key, e)
            return False

    async def delete(self, keys: Sequence[str]) -> int:
        """Delete keys from Redis in a single DEL."""
        keys = list(keys)
        if not keys:
            return 0
        if not self.available:
            self._stats.record_skip()
            return 0

        try:
            return int(await self._client.delete(*keys))
        except Exception as e:
            self._on_error("DEL", ",".join(keys), e)
            return 0
