# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Opaque reference tokens that resolve to session tokens.

A signed session token cannot be revoked before it expires. Clients hold a
random reference token instead; the mapping lives in Redis and deleting it
is how logout works. Lookups fail closed: an unknown, invalidated or
unreachable mapping resolves to None.
"""

import logging
import secrets
from datetime import datetime

from src.core.config.settings import ReferenceTokenSettings
from src.core.errors import UnauthenticatedError, UnavailableError
from src.domains.auth.jwt import TokenCodec, ValidClaims
from src.infrastructure.cache import CacheUnavailableError, ResilientCache
from src.utils.datetime import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)


class ReferenceTokenService:
    """Issues, resolves and invalidates reference tokens.

    Example:
        >>> service = ReferenceTokenService(cache, codec, settings.reference_token)
        >>> reference = await service.wrap(issued.token, issued.expires_at)
        >>> await service.resolve(reference) == issued.token
        True
    """

    def __init__(
        self,
        cache: ResilientCache,
        codec: TokenCodec,
        settings: ReferenceTokenSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._cache = cache
        self._codec = codec
        self._settings = settings
        self._clock = clock

    def _key(self, reference: str) -> str:
        return f"{self._settings.key_prefix}{reference}"

    def _ttl_seconds(self, token: str, expires_at: datetime | None) -> int:
        """Mapping lifetime: configured TTL capped by the token's remaining life."""
        if expires_at is None:
            result = self._codec.validate(token)
            if not isinstance(result, ValidClaims):
                raise UnauthenticatedError("Invalid token")
            expires_at = result.claims.expires_at

        remaining = int((ensure_utc(expires_at) - self._clock()).total_seconds())
        if remaining <= 0:
            raise UnauthenticatedError("Invalid token")
        return min(self._settings.ttl_seconds, remaining)

    async def wrap(self, token: str, expires_at: datetime | None = None) -> str:
        """Store a new reference for a session token.

        Args:
            token: Session token to wrap.
            expires_at: Token expiry; decoded from the token when omitted.

        Returns:
            The new reference token.

        Raises:
            UnauthenticatedError: If the token is invalid or already expired.
            UnavailableError: If the cache cannot store the mapping.
        """
        ttl = self._ttl_seconds(token, expires_at)
        reference = secrets.token_urlsafe(self._settings.token_bytes)

        try:
            await self._cache.set(self._key(reference), token, expire_seconds=ttl)
        except CacheUnavailableError as e:
            logger.error("Failed to store reference token: %s", e)
            raise UnavailableError("Failed to create reference token") from e

        return reference

    async def resolve(self, reference: str) -> str | None:
        """Return the wrapped session token, or None."""
        if not reference:
            return None

        try:
            return await self._cache.get(self._key(reference))
        except CacheUnavailableError as e:
            logger.warning("Reference token lookup failed, treating as unknown: %s", e)
            return None

    async def invalidate(self, reference: str) -> bool:
        """Delete a reference mapping.

        Deleting an unknown reference is a no-op.

        Returns:
            True if a mapping was removed.

        Raises:
            UnavailableError: If the cache is unreachable, since the mapping
                may still be live.
        """
        if not reference:
            return False

        try:
            return await self._cache.delete(self._key(reference))
        except CacheUnavailableError as e:
            logger.error("Failed to invalidate reference token: %s", e)
            raise UnavailableError("Failed to invalidate reference token") from e

    async def owner_of(self, reference: str) -> str | None:
        """Return the subject of the session token behind a reference."""
        token = await self.resolve(reference)
        if token is None:
            return None

        result = self._codec.validate(token)
        if isinstance(result, ValidClaims):
            return result.claims.subject
        return None
