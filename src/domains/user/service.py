# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account service for self-service account management.

This module provides the AccountService that handles:
- Registration and verification e-mails
- Profile lookup
- Password changes
- Deactivation, soft deletion and reactivation

Status transitions are server-initiated only: clients never write status,
verification status or role directly.

Example:
    >>> service = AccountService(AccountRepository(db), ledger, notifier,
    ...                          PasswordHasher(), settings.verification)
    >>> account = await service.register(request)
"""

import logging
from datetime import timedelta
from urllib.parse import urlencode
from uuid import uuid4

from src.core.config.settings import VerificationSettings
from src.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from src.domains.auth.otp import OTPLedger, OTPPurpose
from src.domains.auth.password import PasswordHasher, validate_password_policy
from src.domains.user.repository import AccountRepository
from src.infrastructure.database.models import Account, VerificationToken
from src.infrastructure.notifications import NotificationService
from src.models.common import AccountStatus, VerificationStatus
from src.models.user import RegisterRequest
from src.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class AccountService:
    """Service for account lifecycle operations.

    Attributes:
        _accounts: Credential store repository.
        _otp: OTP ledger for registration codes.
        _notifier: Outbound messages.
        _hasher: Password hasher.
        _settings: Verification link settings.
        _clock: Source of the current UTC time.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        otp: OTPLedger,
        notifier: NotificationService,
        hasher: PasswordHasher,
        settings: VerificationSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._accounts = accounts
        self._otp = otp
        self._notifier = notifier
        self._hasher = hasher
        self._settings = settings
        self._clock = clock

    async def register(self, request: RegisterRequest) -> Account:
        """Create a new Inactive/Pending account and send its verification e-mail.

        Args:
            request: Registration payload.

        Returns:
            The created account.

        Raises:
            InvalidInputError: If the password breaks the policy.
            ConflictError: If the e-mail, phone number or username is taken.
        """
        validate_password_policy(request.password)

        if await self._accounts.exists_email(request.email):
            raise ConflictError("Email already registered")
        if await self._accounts.exists_phone(request.phone_number):
            raise ConflictError("Phone number already registered")
        if await self._accounts.exists_username(request.username):
            raise ConflictError("Username already taken")

        account = Account(
            username=request.username,
            full_name=request.full_name,
            email=request.email,
            phone_number=request.phone_number,
            password_hash=self._hasher.hash(request.password),
            status=AccountStatus.INACTIVE.value,
            verification_status=VerificationStatus.PENDING.value,
            role=request.role.value,
        )
        await self._accounts.add(account)
        logger.info("Registered account %s (%s)", account.id, account.role)

        if not await self.send_verification_email(account):
            logger.warning("Verification e-mail not delivered for account %s", account.id)

        return account

    def build_verification_link(self, email: str, token: str) -> str:
        query = urlencode({"email": email, "token": token})
        return f"{self._settings.base_url.rstrip('/')}/auth/verify?{query}"

    async def send_verification_email(self, account: Account) -> bool:
        """Issue a fresh link token and Registration OTP and e-mail both.

        Older link tokens for the account are discarded.

        Returns:
            False if the e-mail provider rejected the message.
        """
        token = str(uuid4())
        expires_at = self._clock() + timedelta(minutes=self._settings.token_expire_minutes)

        await self._accounts.delete_verification_tokens(account.id)
        await self._accounts.add_verification_token(
            VerificationToken(token=token, account_id=account.id, expires_at=expires_at)
        )
        code = await self._otp.generate(account.email, OTPPurpose.REGISTRATION)

        result = await self._notifier.send_verification_link(
            email=account.email,
            full_name=account.full_name,
            link=self.build_verification_link(account.email, token),
            code=code,
        )
        return not result.failed

    async def get_profile(self, account_id: int) -> Account:
        """Raises NotFoundError for unknown ids."""
        account = await self._accounts.get_by_id(account_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def change_password(
        self,
        account_id: int,
        current_password: str | None,
        new_password: str | None,
        confirm_password: str | None,
    ) -> None:
        """Replace the password after checking the current one.

        Raises:
            InvalidInputError: Missing fields, policy failure or mismatch.
            UnauthenticatedError: If the current password is wrong.
            NotFoundError: If the account does not exist.
        """
        if not current_password or not new_password or not confirm_password:
            raise InvalidInputError("All password fields are required")
        validate_password_policy(new_password)
        if new_password != confirm_password:
            raise InvalidInputError("New password and confirm password do not match")

        account = await self.get_profile(account_id)
        if not self._hasher.verify(current_password, account.password_hash):
            raise UnauthenticatedError("Incorrect current password")

        account.password_hash = self._hasher.hash(new_password)
        await self._accounts.save(account)
        logger.info("Password changed for account %s", account_id)

        result = await self._notifier.send_password_update_confirmation(
            account.email, account.full_name
        )
        if result.failed:
            logger.warning("Password change notice not delivered for account %s", account_id)

    async def _confirm_password(self, account_id: int, confirm_password: str | None) -> Account:
        if not confirm_password or not confirm_password.strip():
            raise InvalidInputError("Confirm password is required")
        account = await self.get_profile(account_id)
        if not self._hasher.verify(confirm_password, account.password_hash):
            raise UnauthenticatedError("Incorrect password")
        return account

    async def deactivate(self, account_id: int, confirm_password: str | None) -> None:
        account = await self._confirm_password(account_id, confirm_password)
        account.status = AccountStatus.INACTIVE.value
        await self._accounts.save(account)
        logger.info("Account %s deactivated", account_id)

    async def soft_delete(self, account_id: int, confirm_password: str | None) -> None:
        account = await self._confirm_password(account_id, confirm_password)
        account.status = AccountStatus.DELETED.value
        await self._accounts.save(account)
        logger.info("Account %s soft-deleted", account_id)

    async def reactivate(self, email: str | None, password: str | None) -> Account:
        """Move an Inactive account back to Active.

        Deleted and Blocked accounts cannot be reactivated here.

        Raises:
            InvalidInputError: Missing fields or account not Inactive.
            NotFoundError: Unknown e-mail.
            UnauthenticatedError: Wrong password.
        """
        if not email or not password:
            raise InvalidInputError("Email and password are required")

        account = await self._accounts.get_by_email(email)
        if account is None:
            raise NotFoundError("User not found")
        if not self._hasher.verify(password, account.password_hash):
            raise UnauthenticatedError("Incorrect password")
        if account.status != AccountStatus.INACTIVE.value:
            raise InvalidInputError("Only inactive accounts can be reactivated")

        account.status = AccountStatus.ACTIVE.value
        await self._accounts.save(account)
        logger.info("Account %s reactivated", account.id)
        return account
