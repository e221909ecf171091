"""
Cache Configuration

Settings can be overridden via environment variables:
- REDIS_URL: Use Redis; without it an in-process cache is used
- CACHE_ENABLED: Enable/disable caching globally
- SIGNAL_CACHE_TTL_SECONDS: How long fetched signals stay fresh
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


@dataclass
class CacheConfig:
    """Signal cache configuration."""

    # Cache namespace (for key prefixes)
    namespace: str = field(default_factory=lambda: os.getenv("CACHE_NAMESPACE", "lemonade"))

    # Global cache toggle
    enabled: bool = field(default_factory=lambda: os.getenv(
        "CACHE_ENABLED",
        "true"
    ).lower() == "true")

    redis_url: Optional[str] = field(default_factory=lambda: os.getenv("REDIS_URL"))
    redis_socket_timeout: float = 2.0
    redis_connect_timeout: float = 2.0

    # Fetched signals age quickly; an hour keeps repeat analyses cheap
    signal_ttl_seconds: int = field(default_factory=lambda: int(os.getenv(
        "SIGNAL_CACHE_TTL_SECONDS",
        "3600"
    )))

    # In-process backend bound
    memory_max_entries: int = 500

    circuit_breaker_enabled: bool = True
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 60


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get singleton cache configuration."""
    return CacheConfig()
