# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get credential store sessions
- Get the authenticated caller and enforce roles
- Build the auth, account and moderation services per request

Example:
    @router.get("/users/me")
    async def me(
        current_user: AuthenticatedUser,
        accounts: AccountSvc,
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import Settings, get_settings
from src.core.errors import ForbiddenError, UnauthenticatedError, UnavailableError
from src.domains.auth.blocklist import BlocklistCache
from src.domains.auth.jwt import TokenCodec
from src.domains.auth.otp import OTPLedger, SQLAlchemyOTPStore
from src.domains.auth.password import PasswordHasher
from src.domains.auth.reference_token import ReferenceTokenService
from src.domains.auth.service import AuthService
from src.domains.user.moderation import ModerationService
from src.domains.user.repository import AccountRepository
from src.domains.user.service import AccountService
from src.infrastructure.cache import CacheUnavailableError, ResilientCache, get_cache
from src.infrastructure.database.connection import get_central_session, get_central_sessionmaker
from src.infrastructure.notifications import NotificationService, get_notification_service
from src.models.common import AccountRole

logger = logging.getLogger(__name__)


async def get_central_db() -> AsyncGenerator[AsyncSession, None]:
    """Get credential store session.

    Yields:
        AsyncSession committed when the request succeeds.
    """
    async with get_central_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        UnauthenticatedError: If the gate attached no identity.
    """
    user = get_current_user(request)
    if not user:
        raise UnauthenticatedError("Not authenticated")
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require an Admin caller.

    Raises:
        ForbiddenError: If the caller is not an admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


class RequireRole:
    """Dependency for requiring specific roles.

    Example:
        @router.post("/advice")
        async def advise(
            user: CurrentUser = Depends(RequireRole(AccountRole.EXPERT)),
        ):
            ...
    """

    def __init__(self, *roles: AccountRole) -> None:
        """Initialize role requirement.

        Args:
            roles: Accepted roles (any of these).
        """
        self.roles = roles

    def __call__(self, request: Request) -> CurrentUser:
        user = require_auth(request)

        if not user.has_any_role(*self.roles):
            raise ForbiddenError(
                f"Requires role: {', '.join(role.value for role in self.roles)}"
            )

        return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_token_codec() -> TokenCodec:
    """Get token codec built from the configured key."""
    return TokenCodec(get_settings().jwt)


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


def get_resilient_cache() -> ResilientCache:
    """Get the shared cache facade.

    Raises:
        UnavailableError: If the cache was never initialized.
    """
    try:
        return get_cache()
    except CacheUnavailableError as e:
        logger.error("Cache requested before startup: %s", e)
        raise UnavailableError("Cache is not available") from e


def get_notifier(settings: Settings = Depends(get_settings)) -> NotificationService:
    return get_notification_service(settings)


def get_account_repository(db: AsyncSession = Depends(get_central_db)) -> AccountRepository:
    return AccountRepository(db)


def get_blocklist(cache: ResilientCache = Depends(get_resilient_cache)) -> BlocklistCache:
    return BlocklistCache(cache)


def get_reference_tokens(
    cache: ResilientCache = Depends(get_resilient_cache),
    codec: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> ReferenceTokenService:
    return ReferenceTokenService(cache, codec, settings.reference_token)


def get_otp_ledger(
    db: AsyncSession = Depends(get_central_db),
    notifier: NotificationService = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> OTPLedger:
    """Get OTP ledger persisting to the credential store."""
    store = SQLAlchemyOTPStore(db, get_central_sessionmaker())
    return OTPLedger(store, notifier, settings.otp)


def get_account_service(
    accounts: AccountRepository = Depends(get_account_repository),
    otp: OTPLedger = Depends(get_otp_ledger),
    notifier: NotificationService = Depends(get_notifier),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
) -> AccountService:
    return AccountService(accounts, otp, notifier, hasher, settings.verification)


def get_auth_service(
    accounts: AccountRepository = Depends(get_account_repository),
    codec: TokenCodec = Depends(get_token_codec),
    references: ReferenceTokenService = Depends(get_reference_tokens),
    otp: OTPLedger = Depends(get_otp_ledger),
    blocklist: BlocklistCache = Depends(get_blocklist),
    account_service: AccountService = Depends(get_account_service),
    notifier: NotificationService = Depends(get_notifier),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    """Get AuthService instance.

    All collaborators share one credential store session per request.
    """
    return AuthService(
        accounts,
        codec,
        references,
        otp,
        blocklist,
        account_service,
        notifier,
        hasher=hasher,
        verification_base_url=settings.verification.base_url,
    )


def get_moderation_service(
    accounts: AccountRepository = Depends(get_account_repository),
    blocklist: BlocklistCache = Depends(get_blocklist),
) -> ModerationService:
    return ModerationService(accounts, blocklist)


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]
AuthSvc = Annotated[AuthService, Depends(get_auth_service)]
AccountSvc = Annotated[AccountService, Depends(get_account_service)]
ModerationSvc = Annotated[ModerationService, Depends(get_moderation_service)]
