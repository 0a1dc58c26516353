# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Resilient cache client with timeouts and circuit breaking.

Every cache-backed component (blocklist, reference tokens) talks to Redis
through ResilientCache. Each call is bounded by a timeout; timeouts and
Redis errors are counted by a CircuitBreaker, and once the breaker opens
calls fail fast with CacheUnavailableError until the reset timeout passes.

States:
- CLOSED: Normal operation
- OPEN: Failure threshold exceeded, calls are rejected immediately
- HALF_OPEN: One trial call decides whether to close or re-open

Example:
    cache = ResilientCache(get_redis(), operation_timeout=0.5)
    try:
        blocked = await cache.set_contains("blockedUsersId", "42")
    except CacheUnavailableError:
        blocked = False
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol, TypeVar

from src.infrastructure.cache.redis_client import RedisError

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Module-level state
_cache: Optional["ResilientCache"] = None


class CacheBackend(Protocol):
    """Operations ResilientCache needs from the underlying client."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, expire_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def sadd(self, key: str, member: str) -> bool: ...

    async def srem(self, key: str, member: str) -> bool: ...

    async def sismember(self, key: str, member: str) -> bool: ...

    async def scard(self, key: str) -> int: ...

    async def smembers(self, key: str) -> set[str]: ...

    async def ping(self) -> bool: ...


class CacheUnavailableError(Exception):
    """Raised when the cache is unreachable, slow, or the circuit is open."""

    pass


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    Attributes:
        failure_threshold: Consecutive failures that open the circuit.
        reset_timeout: Seconds to wait in OPEN before allowing a trial call.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the circuit breaker.

        Args:
            failure_threshold: Consecutive failures that open the circuit.
            reset_timeout: Seconds before an open circuit lets a trial through.
            clock: Monotonic time source, injectable for tests.
        """
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        """Current state, promoting OPEN to HALF_OPEN once the timeout passed."""
        if (
            self._state == CircuitState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self.reset_timeout
        ):
            self._state = CircuitState.HALF_OPEN
            self._trial_in_flight = False
            logger.info("Cache circuit half-open, testing recovery")
        return self._state

    @property
    def failure_count(self) -> int:
        """Consecutive failures recorded since the last success."""
        return self._failure_count

    def allow_request(self) -> bool:
        """Decide whether a call may proceed.

        Returns:
            True when closed, or for the single trial call while half-open.
        """
        state = self.state
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            return True
        return False

    def record_success(self) -> None:
        """Close the circuit and reset the failure count."""
        if self._state != CircuitState.CLOSED:
            logger.info("Cache circuit closed")
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._trial_in_flight = False

    def record_cancelled(self) -> None:
        """Release the trial slot of a call that was cancelled mid-flight.

        A cancellation says nothing about backend health, so the state and
        failure count are left as they are and the next call may run the
        trial instead.
        """
        self._trial_in_flight = False

    def record_failure(self) -> None:
        """Count a failure and open the circuit when the threshold is hit."""
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    "Cache circuit open after %d consecutive failures",
                    self._failure_count,
                )
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            self._trial_in_flight = False


class ResilientCache:
    """Timeout- and breaker-guarded facade over the Redis client.

    All methods raise CacheUnavailableError on timeout, Redis failure, or an
    open circuit. Callers decide the safe default.

    Attributes:
        breaker: The circuit breaker guarding the backend.
    """

    def __init__(
        self,
        backend: CacheBackend,
        operation_timeout: float = 0.5,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize the resilient cache.

        Args:
            backend: Redis client (or any object with the same operations).
            operation_timeout: Upper bound for a single call in seconds.
            breaker: Circuit breaker; a default one is created if omitted.
        """
        self._backend = backend
        self._operation_timeout = operation_timeout
        self.breaker = breaker or CircuitBreaker()

    async def _call(self, operation: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Run one backend call under the timeout and the breaker.

        Args:
            operation: Operation name for logging.
            factory: Zero-argument callable producing the awaitable.

        Returns:
            The backend result.

        Raises:
            CacheUnavailableError: If the circuit is open or the call fails.
        """
        if not self.breaker.allow_request():
            raise CacheUnavailableError(f"Cache circuit open, skipping {operation}")

        try:
            result = await asyncio.wait_for(factory(), timeout=self._operation_timeout)
        except asyncio.CancelledError:
            self.breaker.record_cancelled()
            raise
        except asyncio.TimeoutError as e:
            self.breaker.record_failure()
            logger.warning("Cache %s timed out after %.2fs", operation, self._operation_timeout)
            raise CacheUnavailableError(f"Cache {operation} timed out") from e
        except RedisError as e:
            self.breaker.record_failure()
            logger.warning("Cache %s failed: %s", operation, str(e))
            raise CacheUnavailableError(f"Cache {operation} failed") from e
        except Exception as e:
            self.breaker.record_failure()
            logger.error("Unexpected cache %s error: %s", operation, str(e), exc_info=True)
            raise CacheUnavailableError(f"Cache {operation} failed") from e

        self.breaker.record_success()
        return result

    async def get(self, key: str) -> str | None:
        """Get a string value."""
        return await self._call("get", lambda: self._backend.get(key))

    async def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Set a string value with an optional TTL."""
        await self._call("set", lambda: self._backend.set(key, value, expire_seconds))

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        return await self._call("delete", lambda: self._backend.delete(key))

    async def set_add(self, key: str, member: str) -> bool:
        """Add a member to a set."""
        return await self._call("sadd", lambda: self._backend.sadd(key, member))

    async def set_remove(self, key: str, member: str) -> bool:
        """Remove a member from a set."""
        return await self._call("srem", lambda: self._backend.srem(key, member))

    async def set_contains(self, key: str, member: str) -> bool:
        """Check set membership."""
        return await self._call("sismember", lambda: self._backend.sismember(key, member))

    async def set_size(self, key: str) -> int:
        """Count set members."""
        return await self._call("scard", lambda: self._backend.scard(key))

    async def set_members(self, key: str) -> set[str]:
        """Read all set members."""
        return await self._call("smembers", lambda: self._backend.smembers(key))

    async def ping(self) -> bool:
        """Check reachability without raising.

        Returns:
            True if the backend answered within the timeout.
        """
        try:
            return await self._call("ping", self._backend.ping)
        except CacheUnavailableError:
            return False


# ========== Module-level functions ==========


def init_cache(settings: "Settings", backend: CacheBackend) -> ResilientCache:
    """Create the global resilient cache around a connected backend.

    Args:
        settings: Application settings containing Redis configuration.
        backend: The Redis client.

    Returns:
        The ResilientCache instance.
    """
    global _cache

    _cache = ResilientCache(
        backend,
        operation_timeout=settings.redis.operation_timeout,
        breaker=CircuitBreaker(
            failure_threshold=settings.redis.failure_threshold,
            reset_timeout=settings.redis.reset_timeout,
        ),
    )
    return _cache


def close_cache() -> None:
    """Drop the global resilient cache."""
    global _cache
    _cache = None


def get_cache() -> ResilientCache:
    """Get the global resilient cache.

    Returns:
        The ResilientCache instance.

    Raises:
        CacheUnavailableError: If the cache has not been initialized.
    """
    if _cache is None:
        raise CacheUnavailableError("Cache not initialized. Call init_cache() first.")
    return _cache
