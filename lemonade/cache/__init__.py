"""
Signal cache - Redis when REDIS_URL is set, in-process otherwise.
"""

from .config import CacheConfig, get_cache_config
from .signal_cache import (
    CacheStats,
    CircuitBreaker,
    MemoryCache,
    RedisCache,
    get_signal_cache,
)

__all__ = [
    "CacheConfig",
    "get_cache_config",
    "CacheStats",
    "CircuitBreaker",
    "MemoryCache",
    "RedisCache",
    "get_signal_cache",
]
