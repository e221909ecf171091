"""
Signal Cache

Short-lived cache for fetched signal sets, keyed by competitor identity and
enabled sources.

Backends:
- RedisCache (redis.asyncio) when REDIS_URL is set, behind a circuit breaker
- MemoryCache otherwise

Both degrade gracefully: any backend error reads as a miss and a failed
write is only logged.
"""

import asyncio
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from .config import CacheConfig, get_cache_config

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache operation statistics."""
    hits: int = 0
    misses: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class CircuitBreaker:
    """
    Fails fast after `threshold` consecutive failures, then lets requests
    through again once `timeout` seconds have passed.
    """

    def __init__(self, threshold: int = 5, timeout: int = 60):
        self.threshold = threshold
        self.timeout = timeout
        self.failures = 0
        self.is_open = False
        self.opened_at = 0.0

    def is_available(self) -> bool:
        if not self.is_open:
            return True
        if time.monotonic() - self.opened_at >= self.timeout:
            self.is_open = False
            self.failures = 0
            logger.info("Circuit breaker closed, allowing requests")
            return True
        return False

    def record_success(self) -> None:
        self.failures = 0
        self.is_open = False

    def record_failure(self) -> None:
        self.failures += 1
        if self.failures >= self.threshold and not self.is_open:
            self.is_open = True
            self.opened_at = time.monotonic()
            logger.warning(
                f"Circuit breaker opened after {self.failures} failures. "
                f"Will retry in {self.timeout} seconds."
            )


class MemoryCache:
    """In-process TTL cache with LRU eviction."""

    def __init__(self, config: Optional[CacheConfig] = None):
        self.config = config or get_cache_config()
        self._entries: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.stats = CacheStats()

    def _key(self, key: str) -> str:
        return f"{self.config.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        if not self.config.enabled:
            return None
        async with self._lock:
            entry = self._entries.get(self._key(key))
            if entry is None or entry[0] < time.monotonic():
                self._entries.pop(self._key(key), None)
                self.stats.misses += 1
                return None
            self._entries.move_to_end(self._key(key))
            self.stats.hits += 1
            return json.loads(entry[1])

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        if not self.config.enabled:
            return False
        expires = time.monotonic() + (ttl_seconds or self.config.signal_ttl_seconds)
        async with self._lock:
            self._entries[self._key(key)] = (expires, json.dumps(value, default=str))
            self._entries.move_to_end(self._key(key))
            while len(self._entries) > self.config.memory_max_entries:
                self._entries.popitem(last=False)
        return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(self._key(key), None) is not None

    async def close(self) -> None:
        self._entries.clear()


class RedisCache:
    """
    Redis-backed cache. Values are stored as JSON.

    Returns None / False instead of raising when Redis is unavailable.
    """

    def __init__(self, config: Optional[CacheConfig] = None, redis: Optional[Redis] = None):
        self.config = config or get_cache_config()
        self._redis = redis
        self._circuit_breaker = CircuitBreaker(
            threshold=self.config.circuit_breaker_threshold,
            timeout=self.config.circuit_breaker_timeout,
        ) if self.config.circuit_breaker_enabled else None
        self.stats = CacheStats()

    def _client(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(
                self.config.redis_url,
                socket_timeout=self.config.redis_socket_timeout,
                socket_connect_timeout=self.config.redis_connect_timeout,
                decode_responses=True,
            )
            logger.info("Redis signal cache connected")
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.config.namespace}:{key}"

    def _available(self) -> bool:
        return self._circuit_breaker is None or self._circuit_breaker.is_available()

    def _record(self, ok: bool) -> None:
        if self._circuit_breaker is None:
            return
        if ok:
            self._circuit_breaker.record_success()
        else:
            self._circuit_breaker.record_failure()

    async def get(self, key: str) -> Optional[Any]:
        if not self.config.enabled or not self._available():
            return None
        try:
            data = await self._client().get(self._key(key))
            self._record(True)
        except (RedisError, RedisConnectionError, OSError) as e:
            self._record(False)
            self.stats.errors += 1
            logger.warning(f"Redis unavailable, cache miss for {key}: {e}")
            return None

        if data is None:
            self.stats.misses += 1
            return None
        self.stats.hits += 1
        try:
            return json.loads(data)
        except ValueError:
            logger.error(f"Corrupt cache entry for {key}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        if not self.config.enabled or not self._available():
            return False
        try:
            await self._client().setex(
                self._key(key),
                ttl_seconds or self.config.signal_ttl_seconds,
                json.dumps(value, default=str),
            )
            self._record(True)
            return True
        except (RedisError, RedisConnectionError, OSError) as e:
            self._record(False)
            self.stats.errors += 1
            logger.warning(f"Redis unavailable, cache set failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        if not self._available():
            return False
        try:
            return bool(await self._client().delete(self._key(key)))
        except (RedisError, RedisConnectionError, OSError) as e:
            self._record(False)
            logger.warning(f"Redis unavailable, cache delete failed for {key}: {e}")
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


_signal_cache = None


def get_signal_cache():
    """Process-wide signal cache; Redis when configured."""
    global _signal_cache
    if _signal_cache is None:
        config = get_cache_config()
        _signal_cache = RedisCache(config) if config.redis_url else MemoryCache(config)
        logger.info(f"Signal cache backend: {type(_signal_cache).__name__}")
    return _signal_cache
