# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service orchestrating the login and recovery flows.

This module provides the main AuthService that composes the token codec,
reference tokens, OTP ledger, blocklist and credential store into:
- Password login (username, e-mail or phone) and OTP login (phone)
- Forgot / reset password with a ForgotPassword OTP
- E-mail verification with a link token or Registration OTP
- Reference token resolution and logout
- Expert e-mail verification

Failures are raised as AppError subclasses; the API layer renders them.

Example:
    >>> auth_service = AuthService(accounts, codec, references, ledger,
    ...                            blocklist, account_service, notifier)
    >>> tokens = await auth_service.login(username="amina", password="S3cure!pass")
"""

import logging

from src.core.errors import (
    AppError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from src.domains.auth.blocklist import BlocklistCache
from src.domains.auth.jwt import SessionClaims, TokenCodec, ValidClaims
from src.domains.auth.otp import OTPLedger, OTPPurpose
from src.domains.auth.password import PasswordHasher, validate_password_policy
from src.domains.auth.reference_token import ReferenceTokenService
from src.domains.user.repository import AccountRepository
from src.domains.user.service import AccountService
from src.infrastructure.database.models import Account
from src.infrastructure.notifications import NotificationService
from src.models.auth import (
    ForgetPasswordResponse,
    JWTResponse,
    OTPDispatchResponse,
    TokenResponse,
)
from src.models.common import (
    AccountRole,
    AccountStatus,
    VerificationStatus,
)
from src.utils.datetime import Clock, is_expired, utc_now

logger = logging.getLogger(__name__)

LOGIN_OTP_VERIFICATION_PATH = "/auth/verify-otp"


def mask_phone_number(phone_number: str | None) -> str:
    """Keep only the last four digits."""
    if not phone_number or len(phone_number) <= 4:
        return "****"
    return "****" + phone_number[-4:]


def mask_email(email: str | None) -> str:
    """Keep the first two characters of the local part."""
    if not email or "@" not in email:
        return "****"
    name, domain = email.split("@", 1)
    if len(name) <= 2:
        return "*" * len(name) + "@" + domain
    return name[:2] + "*" * (len(name) - 2) + "@" + domain


class AuthService:
    """Use-case layer for authentication.

    Attributes:
        _accounts: Credential store repository.
        _codec: Session token codec.
        _references: Reference token service.
        _otp: OTP ledger.
        _blocklist: Blocklist cache.
        _account_service: Account service (verification e-mails).
        _notifier: Outbound messages.
        _hasher: Password hasher.
        _verification_base_url: Public base URL for links in responses.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        codec: TokenCodec,
        references: ReferenceTokenService,
        otp: OTPLedger,
        blocklist: BlocklistCache,
        account_service: AccountService,
        notifier: NotificationService,
        hasher: PasswordHasher | None = None,
        verification_base_url: str = "",
        clock: Clock = utc_now,
    ) -> None:
        self._accounts = accounts
        self._codec = codec
        self._references = references
        self._otp = otp
        self._blocklist = blocklist
        self._account_service = account_service
        self._notifier = notifier
        self._hasher = hasher or PasswordHasher()
        self._verification_base_url = verification_base_url.rstrip("/")
        self._clock = clock

    # ========== Login ==========

    async def login(
        self,
        username: str | None = None,
        email: str | None = None,
        phone_number: str | None = None,
        password: str | None = None,
    ) -> TokenResponse | OTPDispatchResponse:
        """Authenticate with a password, or start OTP login.

        A request carrying only a phone number (no password) starts the OTP
        login flow. Otherwise the identifier is chosen by presence: username,
        then e-mail, then phone number.

        Returns:
            TokenResponse on password login, OTPDispatchResponse when an OTP
            was sent.

        Raises:
            InvalidInputError: Missing identifier or password.
            NotFoundError: No account for the identifier.
            UnauthenticatedError: Wrong password.
            ForbiddenError: Account is Blocked or Deleted.
        """
        if phone_number and not username and not email and not password:
            return await self.start_otp_login(phone_number)

        if not password or not (username or email or phone_number):
            raise InvalidInputError("Username, email, or phone number and password are required")

        if username:
            account = await self._accounts.get_by_username(username)
        elif email:
            account = await self._accounts.get_by_email(email)
        else:
            account = await self._accounts.get_by_phone(phone_number)

        if account is None:
            logger.warning("Login failed, no account for %s", username or email or phone_number)
            raise NotFoundError("User not found")

        if not self._hasher.verify(password, account.password_hash):
            logger.warning("Login failed, bad credentials for account %s", account.id)
            raise UnauthenticatedError("Invalid credentials")

        await self._ensure_can_login(account)
        await self._resend_verification_if_pending(account)

        logger.info("Login successful for account %s", account.id)
        return await self.issue_tokens(account)

    async def _ensure_can_login(self, account: Account) -> None:
        if account.status == AccountStatus.BLOCKED.value:
            logger.warning("Blocked account %s attempted login", account.id)
            await self._blocklist.add(account.id)
            raise ForbiddenError("Account is blocked")
        if account.status == AccountStatus.DELETED.value:
            logger.warning("Deleted account %s attempted login", account.id)
            raise ForbiddenError("Account is deleted")

    async def _resend_verification_if_pending(self, account: Account) -> None:
        """Send a fresh verification e-mail; never fails the login."""
        if account.verification_status == VerificationStatus.VERIFIED.value:
            return
        try:
            sent = await self._account_service.send_verification_email(account)
        except AppError as e:
            logger.error("Verification e-mail for account %s failed: %s", account.id, e)
            return
        if not sent:
            logger.error("Verification e-mail for account %s was not delivered", account.id)

    async def issue_tokens(self, account: Account) -> TokenResponse:
        """Issue a session token and wrap it in a new reference token."""
        issued = self._codec.issue(
            subject=account.username,
            user_id=account.id,
            full_name=account.full_name,
            status=AccountStatus(account.status),
            verification=VerificationStatus(account.verification_status),
            role=AccountRole(account.role),
        )
        reference = await self._references.wrap(issued.token, issued.expires_at)
        return TokenResponse(jwt_token=issued.token, reference_token=reference)

    async def start_otp_login(self, phone_number: str | None) -> OTPDispatchResponse:
        """Send a Login OTP by SMS."""
        if not phone_number:
            raise InvalidInputError("Phone number is required")

        account = await self._accounts.get_by_phone(phone_number)
        if account is None:
            raise NotFoundError("User not found")

        await self._otp.issue(phone_number, OTPPurpose.LOGIN)
        return OTPDispatchResponse(
            message="OTP sent to phone number",
            phone_number=mask_phone_number(phone_number),
            verification_url=f"{self._verification_base_url}{LOGIN_OTP_VERIFICATION_PATH}",
        )

    async def verify_login_otp(self, phone_number: str | None, otp: str | None) -> TokenResponse:
        """Complete OTP login and issue tokens.

        Raises:
            InvalidInputError: Missing phone number or code.
            NotFoundError: No account for the phone number.
            UnauthenticatedError: Wrong or expired code.
            ForbiddenError: Account is Blocked or Deleted.
        """
        if not phone_number or not otp:
            raise InvalidInputError("Phone number and OTP are required")

        account = await self._accounts.get_by_phone(phone_number)
        if account is None:
            raise NotFoundError("User not found")

        if not await self._otp.consume(phone_number, otp, OTPPurpose.LOGIN):
            raise UnauthenticatedError("Invalid OTP or phone number")

        await self._ensure_can_login(account)
        logger.info("OTP login successful for account %s", account.id)
        return await self.issue_tokens(account)

    # ========== Password recovery ==========

    async def _find_by_phone_or_email(self, identifier: str) -> Account:
        if "@" in identifier:
            account = await self._accounts.get_by_email(identifier)
        else:
            account = await self._accounts.get_by_phone(identifier)
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def forget_password(self, identifier: str | None) -> ForgetPasswordResponse:
        """E-mail a ForgotPassword OTP to the account behind a phone or e-mail.

        The code is always stored against the account's e-mail address.
        """
        if not identifier:
            raise InvalidInputError("Phone number or email is required")

        account = await self._find_by_phone_or_email(identifier)
        await self._otp.issue(account.email, OTPPurpose.FORGOT_PASSWORD)

        logger.info("Password reset OTP sent for account %s", account.id)
        return ForgetPasswordResponse(message="OTP sent to email", email=mask_email(account.email))

    async def verify_reset_otp(self, identifier: str | None, otp: str | None) -> str:
        """Check a ForgotPassword OTP without consuming it."""
        if not identifier or not otp:
            raise InvalidInputError("Phone number or email and OTP are required")

        account = await self._find_by_phone_or_email(identifier)
        if not await self._otp.verify(account.email, otp, OTPPurpose.FORGOT_PASSWORD):
            raise UnauthenticatedError("Invalid or expired OTP")
        return "OTP verified successfully for password reset"

    async def reset_password(
        self,
        identifier: str | None,
        otp: str | None,
        new_password: str | None,
    ) -> str:
        """Set a new password, proven by a ForgotPassword OTP.

        Raises:
            InvalidInputError: Missing fields or password policy failure.
            NotFoundError: Unknown account.
            UnauthenticatedError: Wrong or expired code.
        """
        if not identifier or not otp or not new_password:
            raise InvalidInputError("Phone number or email, OTP and new password are required")
        validate_password_policy(new_password)

        account = await self._find_by_phone_or_email(identifier)
        if not await self._otp.verify(account.email, otp, OTPPurpose.FORGOT_PASSWORD):
            raise UnauthenticatedError("Invalid or expired OTP")

        account.password_hash = self._hasher.hash(new_password)
        await self._accounts.save(account)
        await self._otp.delete(account.email, OTPPurpose.FORGOT_PASSWORD)
        logger.info("Password reset for account %s", account.id)

        result = await self._notifier.send_password_update_confirmation(
            account.email, account.full_name
        )
        if result.failed:
            logger.warning("Password reset notice not delivered for account %s", account.id)
        return "Password updated successfully"

    # ========== E-mail verification ==========

    async def verify_user(
        self,
        email: str | None,
        token: str | None = None,
        otp: str | None = None,
    ) -> str:
        """Verify an account with a Registration OTP or a link token.

        Returns:
            Result message.

        Raises:
            InvalidInputError: Missing e-mail or expired link token.
            NotFoundError: Unknown e-mail.
            UnauthenticatedError: Unknown or foreign link token, or no valid proof.
        """
        if not email:
            raise InvalidInputError("Email is required")

        account = await self._accounts.get_by_email(email)
        if account is None:
            raise NotFoundError("User not found")

        if account.verification_status == VerificationStatus.VERIFIED.value:
            return "Account already verified"

        verified = False
        if token:
            link_token = await self._accounts.get_verification_token(token)
            if link_token is None:
                raise UnauthenticatedError("Invalid token")
            if link_token.account_id != account.id:
                raise UnauthenticatedError("Token does not belong to this user")
            if is_expired(link_token.expires_at, self._clock()):
                raise InvalidInputError("Token expired")
            verified = True

        # The code is only spent once any link token has been accepted.
        if otp and await self._otp.consume(email, otp, OTPPurpose.REGISTRATION):
            verified = True

        if not verified:
            raise UnauthenticatedError("Invalid or expired OTP/token")

        account.verification_status = VerificationStatus.VERIFIED.value
        if account.status == AccountStatus.INACTIVE.value:
            account.status = AccountStatus.ACTIVE.value
        await self._accounts.save(account)
        await self._accounts.delete_verification_tokens(account.id)

        logger.info("Account %s verified", account.id)
        return "User verified successfully"

    # ========== Reference tokens and logout ==========

    async def validate_reference(self, reference: str | None) -> JWTResponse:
        """Resolve a reference token to its session token."""
        if not reference or not reference.strip():
            raise InvalidInputError("Reference token is required")

        token = await self._references.resolve(reference)
        if token is None:
            raise UnauthenticatedError("Invalid or expired reference token")
        return JWTResponse(jwt_token=token)

    async def logout(self, caller: SessionClaims, reference: str | None) -> str:
        """Invalidate the caller's own reference token.

        A reference owned by another user is rejected and left intact.
        """
        if not reference or not reference.strip():
            raise InvalidInputError("Reference token is required")

        token = await self._references.resolve(reference)
        if token is None:
            raise UnauthenticatedError("Invalid reference token")

        result = self._codec.validate(token)
        if not isinstance(result, ValidClaims) or result.claims.subject != caller.subject:
            logger.warning("User %s tried to log out a foreign reference token", caller.user_id)
            raise UnauthenticatedError("Invalid JWT token")

        await self._references.invalidate(reference)
        logger.info("User %s logged out", caller.subject)
        return "Logged out successfully"

    # ========== Expert verification ==========

    async def request_expert_verification(self, caller: SessionClaims) -> str:
        """E-mail an ExpertVerification OTP to the caller."""
        account = await self._accounts.get_by_id(caller.user_id)
        if account is None:
            raise NotFoundError("User not found")

        await self._otp.issue(account.email, OTPPurpose.EXPERT_VERIFICATION)
        return f"OTP sent to {mask_email(account.email)}"

    async def verify_expert_otp(self, caller: SessionClaims, otp: str | None) -> str:
        if not otp:
            raise InvalidInputError("OTP is required")

        account = await self._accounts.get_by_id(caller.user_id)
        if account is None:
            raise NotFoundError("User not found")

        if not await self._otp.consume(account.email, otp, OTPPurpose.EXPERT_VERIFICATION):
            raise UnauthenticatedError("Invalid or expired OTP")

        logger.info("Expert e-mail verified for account %s", account.id)
        return "Expert verification OTP verified successfully"
