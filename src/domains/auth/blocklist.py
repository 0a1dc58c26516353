# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared set of blocked account ids.

The set lives in Redis and is advisory: the account's persisted status is
the source of truth. Every operation is best-effort and converts cache
failures into a safe default instead of raising.
"""

import logging

from src.infrastructure.cache import CacheUnavailableError, ResilientCache

logger = logging.getLogger(__name__)

BLOCKLIST_KEY = "blockedUsersId"


class BlocklistCache:
    """Blocked user id set.

    Example:
        >>> blocklist = BlocklistCache(get_cache())
        >>> await blocklist.add(42)
        True
        >>> await blocklist.is_blocked(42)
        True
    """

    def __init__(self, cache: ResilientCache, key: str = BLOCKLIST_KEY) -> None:
        self._cache = cache
        self._key = key

    async def add(self, user_id: int) -> bool:
        """Add a user id. Returns False if the cache rejected the write."""
        try:
            await self._cache.set_add(self._key, str(user_id))
        except CacheUnavailableError as e:
            logger.warning("Could not add user %s to blocklist: %s", user_id, e)
            return False
        logger.info("User %s added to blocklist", user_id)
        return True

    async def remove(self, user_id: int) -> bool:
        """Remove a user id. Returns False if the cache rejected the write."""
        try:
            await self._cache.set_remove(self._key, str(user_id))
        except CacheUnavailableError as e:
            logger.warning("Could not remove user %s from blocklist: %s", user_id, e)
            return False
        logger.info("User %s removed from blocklist", user_id)
        return True

    async def is_blocked(self, user_id: int) -> bool:
        """Check membership; False when the cache is unavailable."""
        try:
            return await self._cache.set_contains(self._key, str(user_id))
        except CacheUnavailableError as e:
            logger.warning("Blocklist lookup failed for user %s: %s", user_id, e)
            return False

    async def count(self) -> int:
        try:
            return await self._cache.set_size(self._key)
        except CacheUnavailableError as e:
            logger.warning("Blocklist count failed: %s", e)
            return 0

    async def list_all(self) -> set[int]:
        """All blocked ids; empty when the cache is unavailable."""
        try:
            members = await self._cache.set_members(self._key)
        except CacheUnavailableError as e:
            logger.warning("Blocklist listing failed: %s", e)
            return set()
        return {int(member) for member in members if member.isdigit()}
