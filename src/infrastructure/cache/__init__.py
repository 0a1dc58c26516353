# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache infrastructure using Redis.

This package provides the Redis client and the resilient facade that the
blocklist and reference token components use.

Example:
    from src.infrastructure.cache import init_redis, get_redis, init_cache

    # Initialize at application startup
    await init_redis(settings)
    cache = init_cache(settings, get_redis())

    # Cleanup at shutdown
    close_cache()
    await close_redis()
"""

from src.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)
from src.infrastructure.cache.resilient import (
    CacheBackend,
    CacheUnavailableError,
    CircuitBreaker,
    CircuitState,
    ResilientCache,
    close_cache,
    get_cache,
    init_cache,
)

__all__ = [
    "RedisClient",
    "RedisError",
    "close_redis",
    "get_redis",
    "init_redis",
    "CacheBackend",
    "CacheUnavailableError",
    "CircuitBreaker",
    "CircuitState",
    "ResilientCache",
    "close_cache",
    "get_cache",
    "init_cache",
]
