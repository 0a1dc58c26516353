# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for AuthService.

Tests the login, OTP login, password recovery, e-mail verification,
reference token and expert verification flows against in-memory doubles.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from src.core.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from src.domains.auth.blocklist import BlocklistCache
from src.domains.auth.jwt import SessionClaims, TokenCodec
from src.domains.auth.otp import OTPLedger, OTPPurpose
from src.domains.auth.password import PasswordHasher
from src.domains.auth.reference_token import ReferenceTokenService
from src.domains.auth.service import AuthService, mask_email, mask_phone_number
from src.infrastructure.database.models import VerificationToken
from src.models.auth import OTPDispatchResponse, TokenResponse
from src.models.common import AccountRole, AccountStatus, VerificationStatus
from tests.fakes import (
    TEST_PASSWORD,
    FakeClock,
    InMemoryAccountRepository,
    RecordingNotifier,
)


def claims_of(codec: TokenCodec, token: str) -> SessionClaims:
    result = codec.validate(token)
    assert result.ok
    return result.claims


class TestMasking:
    """Tests for identifier masking helpers."""

    def test_mask_phone_number(self) -> None:
        assert mask_phone_number("+254700001234") == "****1234"
        assert mask_phone_number("123") == "****"
        assert mask_phone_number(None) == "****"

    def test_mask_email(self) -> None:
        assert mask_email("amina@example.com") == "am***@example.com"
        assert mask_email("ab@example.com") == "**@example.com"
        assert mask_email("no-at-sign") == "****"


class TestPasswordLogin:
    """Tests for AuthService.login with a password."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["username", "email", "phone_number"])
    async def test_login_by_each_identifier(
        self, auth_service: AuthService, codec: TokenCodec, make_account, field: str
    ) -> None:
        """Test that username, e-mail and phone all identify the account."""
        account = await make_account(username="amina")

        result = await auth_service.login(
            **{field: getattr(account, field)}, password=TEST_PASSWORD
        )

        assert isinstance(result, TokenResponse)
        claims = claims_of(codec, result.jwt_token)
        assert claims.subject == "amina"
        assert claims.user_id == account.id
        assert claims.role is AccountRole.FARMER

    @pytest.mark.asyncio
    async def test_reference_resolves_to_issued_token(
        self,
        auth_service: AuthService,
        references: ReferenceTokenService,
        make_account,
    ) -> None:
        await make_account(username="amina")

        result = await auth_service.login(username="amina", password=TEST_PASSWORD)

        assert await references.resolve(result.reference_token) == result.jwt_token

    @pytest.mark.asyncio
    async def test_username_takes_precedence(self, auth_service: AuthService, codec: TokenCodec, make_account) -> None:
        await make_account(username="amina")
        other = await make_account(username="baraka")

        result = await auth_service.login(
            username="amina", email=other.email, password=TEST_PASSWORD
        )

        assert claims_of(codec, result.jwt_token).subject == "amina"

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth_service: AuthService) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            await auth_service.login(username="ghost", password=TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth_service: AuthService, make_account) -> None:
        await make_account(username="amina")

        with pytest.raises(UnauthenticatedError, match="Invalid credentials"):
            await auth_service.login(username="amina", password="Wr0ng!pass")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [{"username": "amina"}, {"password": TEST_PASSWORD}, {"email": "a@b.co", "password": ""}],
    )
    async def test_missing_fields(self, auth_service: AuthService, kwargs: dict) -> None:
        with pytest.raises(InvalidInputError):
            await auth_service.login(**kwargs)

    @pytest.mark.asyncio
    async def test_blocked_account_is_refused_and_cached(
        self, auth_service: AuthService, blocklist: BlocklistCache, make_account
    ) -> None:
        """Test that a Blocked account gets 403 and lands in the blocklist."""
        account = await make_account(username="amina", status=AccountStatus.BLOCKED)

        with pytest.raises(ForbiddenError, match="Account is blocked"):
            await auth_service.login(username="amina", password=TEST_PASSWORD)

        assert await blocklist.is_blocked(account.id)

    @pytest.mark.asyncio
    async def test_deleted_account_is_refused(self, auth_service: AuthService, make_account) -> None:
        await make_account(username="amina", status=AccountStatus.DELETED)

        with pytest.raises(ForbiddenError, match="Account is deleted"):
            await auth_service.login(username="amina", password=TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_pending_account_gets_tokens_and_new_verification_email(
        self,
        auth_service: AuthService,
        codec: TokenCodec,
        notifier: RecordingNotifier,
        make_account,
    ) -> None:
        """Test that an unverified login succeeds and re-sends verification."""
        await make_account(
            username="amina",
            status=AccountStatus.INACTIVE,
            verification=VerificationStatus.PENDING,
        )

        result = await auth_service.login(username="amina", password=TEST_PASSWORD)

        claims = claims_of(codec, result.jwt_token)
        assert claims.verification is VerificationStatus.PENDING
        assert not claims.is_active_and_verified
        assert len(notifier.links) == 1

    @pytest.mark.asyncio
    async def test_two_logins_get_independent_references(
        self,
        auth_service: AuthService,
        references: ReferenceTokenService,
        make_account,
    ) -> None:
        await make_account(username="amina")

        first = await auth_service.login(username="amina", password=TEST_PASSWORD)
        second = await auth_service.login(username="amina", password=TEST_PASSWORD)

        assert first.reference_token != second.reference_token
        await references.invalidate(first.reference_token)
        assert await references.resolve(second.reference_token) == second.jwt_token


class TestOTPLogin:
    """Tests for phone-only login."""

    @pytest.mark.asyncio
    async def test_phone_only_login_sends_code(
        self, auth_service: AuthService, notifier: RecordingNotifier, make_account
    ) -> None:
        account = await make_account(phone_number="+254700001234")

        result = await auth_service.login(phone_number=account.phone_number)

        assert isinstance(result, OTPDispatchResponse)
        assert result.phone_number == "****1234"
        assert result.verification_url == "http://agri.test/auth/verify-otp"
        assert notifier.otps[0][0] == account.phone_number

    @pytest.mark.asyncio
    async def test_unknown_phone(self, auth_service: AuthService) -> None:
        with pytest.raises(NotFoundError):
            await auth_service.login(phone_number="+254799999999")

    @pytest.mark.asyncio
    async def test_verify_login_otp_issues_tokens(
        self,
        auth_service: AuthService,
        codec: TokenCodec,
        notifier: RecordingNotifier,
        make_account,
    ) -> None:
        account = await make_account(username="amina")
        await auth_service.login(phone_number=account.phone_number)
        code = notifier.last_code_for(account.phone_number)

        result = await auth_service.verify_login_otp(account.phone_number, code)

        assert claims_of(codec, result.jwt_token).user_id == account.id

    @pytest.mark.asyncio
    async def test_login_code_is_single_use(
        self, auth_service: AuthService, notifier: RecordingNotifier, make_account
    ) -> None:
        account = await make_account()
        await auth_service.login(phone_number=account.phone_number)
        code = notifier.last_code_for(account.phone_number)
        await auth_service.verify_login_otp(account.phone_number, code)

        with pytest.raises(UnauthenticatedError, match="Invalid OTP or phone number"):
            await auth_service.verify_login_otp(account.phone_number, code)

    @pytest.mark.asyncio
    async def test_blocked_account_cannot_finish_otp_login(
        self,
        auth_service: AuthService,
        otp_ledger: OTPLedger,
        make_account,
    ) -> None:
        account = await make_account(status=AccountStatus.BLOCKED)
        code = await otp_ledger.generate(account.phone_number, OTPPurpose.LOGIN)

        with pytest.raises(ForbiddenError):
            await auth_service.verify_login_otp(account.phone_number, code)


class TestPasswordRecovery:
    """Tests for forget, verify and reset password."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_phone", [True, False])
    async def test_forget_password_emails_code(
        self,
        auth_service: AuthService,
        notifier: RecordingNotifier,
        make_account,
        use_phone: bool,
    ) -> None:
        """Test that the code always goes to the account's e-mail."""
        account = await make_account(username="amina")
        identifier = account.phone_number if use_phone else account.email

        result = await auth_service.forget_password(identifier)

        assert result.email == "am***@example.com"
        assert notifier.otps[-1][0] == account.email

    @pytest.mark.asyncio
    async def test_verify_reset_otp_does_not_consume(
        self, auth_service: AuthService, notifier: RecordingNotifier, make_account
    ) -> None:
        account = await make_account()
        await auth_service.forget_password(account.email)
        code = notifier.last_code_for(account.email)

        await auth_service.verify_reset_otp(account.phone_number, code)
        message = await auth_service.verify_reset_otp(account.email, code)

        assert message == "OTP verified successfully for password reset"

    @pytest.mark.asyncio
    async def test_reset_password(
        self,
        auth_service: AuthService,
        notifier: RecordingNotifier,
        accounts: InMemoryAccountRepository,
        hasher: PasswordHasher,
        make_account,
    ) -> None:
        account = await make_account()
        await auth_service.forget_password(account.email)
        code = notifier.last_code_for(account.email)

        message = await auth_service.reset_password(account.email, code, "N3w!password")

        assert message == "Password updated successfully"
        stored = await accounts.get_by_id(account.id)
        assert hasher.verify("N3w!password", stored.password_hash)
        assert notifier.confirmations == [account.email]

    @pytest.mark.asyncio
    async def test_reset_code_cannot_be_reused(
        self, auth_service: AuthService, notifier: RecordingNotifier, make_account
    ) -> None:
        account = await make_account()
        await auth_service.forget_password(account.email)
        code = notifier.last_code_for(account.email)
        await auth_service.reset_password(account.email, code, "N3w!password")

        with pytest.raises(UnauthenticatedError):
            await auth_service.reset_password(account.email, code, "An0ther!pass")

    @pytest.mark.asyncio
    async def test_reset_rejects_weak_password(
        self, auth_service: AuthService, notifier: RecordingNotifier, make_account
    ) -> None:
        account = await make_account()
        await auth_service.forget_password(account.email)
        code = notifier.last_code_for(account.email)

        with pytest.raises(InvalidInputError, match="uppercase"):
            await auth_service.reset_password(account.email, code, "weak!pass1")

    @pytest.mark.asyncio
    async def test_expired_reset_code(
        self,
        auth_service: AuthService,
        notifier: RecordingNotifier,
        clock: FakeClock,
        make_account,
    ) -> None:
        account = await make_account()
        await auth_service.forget_password(account.email)
        code = notifier.last_code_for(account.email)
        clock.advance(minutes=6)

        with pytest.raises(UnauthenticatedError, match="Invalid or expired OTP"):
            await auth_service.verify_reset_otp(account.email, code)


class TestVerifyUser:
    """Tests for e-mail verification."""

    @pytest_asyncio.fixture
    async def pending(self, make_account):
        return await make_account(
            username="amina",
            status=AccountStatus.INACTIVE,
            verification=VerificationStatus.PENDING,
        )

    @pytest.mark.asyncio
    async def test_verify_with_registration_otp(
        self,
        auth_service: AuthService,
        otp_ledger: OTPLedger,
        accounts: InMemoryAccountRepository,
        pending,
    ) -> None:
        """Test that a Registration OTP verifies and activates the account."""
        code = await otp_ledger.generate(pending.email, OTPPurpose.REGISTRATION)

        message = await auth_service.verify_user(pending.email, otp=code)

        assert message == "User verified successfully"
        stored = await accounts.get_by_id(pending.id)
        assert stored.verification_status == VerificationStatus.VERIFIED.value
        assert stored.status == AccountStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_verify_with_link_token(
        self,
        auth_service: AuthService,
        accounts: InMemoryAccountRepository,
        clock: FakeClock,
        pending,
    ) -> None:
        await accounts.add_verification_token(
            VerificationToken(token="tok-1", account_id=pending.id, expires_at=clock() + timedelta(hours=1))
        )

        await auth_service.verify_user(pending.email, token="tok-1")

        assert accounts.tokens == {}
        assert (await accounts.get_by_id(pending.id)).verification_status == "Verified"

    @pytest.mark.asyncio
    async def test_link_token_of_another_user(
        self,
        auth_service: AuthService,
        accounts: InMemoryAccountRepository,
        clock: FakeClock,
        make_account,
        pending,
    ) -> None:
        other = await make_account(verification=VerificationStatus.PENDING)
        await accounts.add_verification_token(
            VerificationToken(token="tok-2", account_id=other.id, expires_at=clock() + timedelta(hours=1))
        )

        with pytest.raises(UnauthenticatedError, match="Token does not belong to this user"):
            await auth_service.verify_user(pending.email, token="tok-2")

    @pytest.mark.asyncio
    async def test_rejected_link_token_leaves_otp_unspent(
        self,
        auth_service: AuthService,
        otp_ledger: OTPLedger,
        pending,
    ) -> None:
        """Test that a bad link token fails before the Registration OTP is used."""
        code = await otp_ledger.generate(pending.email, OTPPurpose.REGISTRATION)

        with pytest.raises(UnauthenticatedError, match="Invalid token"):
            await auth_service.verify_user(pending.email, token="nope", otp=code)

        assert await otp_ledger.verify(pending.email, code, OTPPurpose.REGISTRATION)
        assert await auth_service.verify_user(pending.email, otp=code) == "User verified successfully"

    @pytest.mark.asyncio
    async def test_expired_link_token(
        self,
        auth_service: AuthService,
        accounts: InMemoryAccountRepository,
        clock: FakeClock,
        pending,
    ) -> None:
        await accounts.add_verification_token(
            VerificationToken(token="tok-3", account_id=pending.id, expires_at=clock() + timedelta(hours=1))
        )
        clock.advance(hours=2)

        with pytest.raises(InvalidInputError, match="Token expired"):
            await auth_service.verify_user(pending.email, token="tok-3")

    @pytest.mark.asyncio
    async def test_unknown_link_token(self, auth_service: AuthService, pending) -> None:
        with pytest.raises(UnauthenticatedError, match="Invalid token"):
            await auth_service.verify_user(pending.email, token="nope")

    @pytest.mark.asyncio
    async def test_no_proof(self, auth_service: AuthService, pending) -> None:
        with pytest.raises(UnauthenticatedError, match="Invalid or expired OTP/token"):
            await auth_service.verify_user(pending.email, otp="123456")

    @pytest.mark.asyncio
    async def test_already_verified(self, auth_service: AuthService, make_account) -> None:
        account = await make_account()

        assert await auth_service.verify_user(account.email) == "Account already verified"

    @pytest.mark.asyncio
    async def test_verification_keeps_blocked_status(
        self, auth_service: AuthService, otp_ledger: OTPLedger, accounts: InMemoryAccountRepository, make_account
    ) -> None:
        """Test that only an Inactive account is promoted to Active."""
        account = await make_account(
            status=AccountStatus.BLOCKED, verification=VerificationStatus.PENDING
        )
        code = await otp_ledger.generate(account.email, OTPPurpose.REGISTRATION)

        await auth_service.verify_user(account.email, otp=code)

        assert (await accounts.get_by_id(account.id)).status == AccountStatus.BLOCKED.value


class TestReferenceTokensAndLogout:
    """Tests for validate_reference and logout."""

    @pytest.mark.asyncio
    async def test_validate_reference(self, auth_service: AuthService, make_account) -> None:
        await make_account(username="amina")
        tokens = await auth_service.login(username="amina", password=TEST_PASSWORD)

        result = await auth_service.validate_reference(tokens.reference_token)

        assert result.jwt_token == tokens.jwt_token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reference", [None, "", "   "])
    async def test_validate_reference_requires_value(self, auth_service: AuthService, reference) -> None:
        with pytest.raises(InvalidInputError, match="Reference token is required"):
            await auth_service.validate_reference(reference)

    @pytest.mark.asyncio
    async def test_validate_unknown_reference(self, auth_service: AuthService) -> None:
        with pytest.raises(UnauthenticatedError):
            await auth_service.validate_reference("unknown")

    @pytest.mark.asyncio
    async def test_logout_invalidates_reference(
        self, auth_service: AuthService, codec: TokenCodec, make_account
    ) -> None:
        await make_account(username="amina")
        tokens = await auth_service.login(username="amina", password=TEST_PASSWORD)
        caller = claims_of(codec, tokens.jwt_token)

        assert await auth_service.logout(caller, tokens.reference_token) == "Logged out successfully"

        with pytest.raises(UnauthenticatedError):
            await auth_service.validate_reference(tokens.reference_token)

    @pytest.mark.asyncio
    async def test_logout_of_foreign_reference_is_refused(
        self,
        auth_service: AuthService,
        references: ReferenceTokenService,
        codec: TokenCodec,
        make_account,
    ) -> None:
        """Test that a user cannot log out someone else's session."""
        await make_account(username="amina")
        await make_account(username="baraka")
        amina = await auth_service.login(username="amina", password=TEST_PASSWORD)
        baraka = await auth_service.login(username="baraka", password=TEST_PASSWORD)

        with pytest.raises(UnauthenticatedError, match="Invalid JWT token"):
            await auth_service.logout(claims_of(codec, baraka.jwt_token), amina.reference_token)

        assert await references.resolve(amina.reference_token) == amina.jwt_token


class TestExpertVerification:
    """Tests for the expert e-mail verification flow."""

    @pytest.mark.asyncio
    async def test_request_and_verify(
        self,
        auth_service: AuthService,
        codec: TokenCodec,
        notifier: RecordingNotifier,
        make_account,
    ) -> None:
        account = await make_account(username="juma", role=AccountRole.EXPERT)
        tokens = await auth_service.login(username="juma", password=TEST_PASSWORD)
        caller = claims_of(codec, tokens.jwt_token)

        message = await auth_service.request_expert_verification(caller)
        code = notifier.last_code_for(account.email)

        assert message == "OTP sent to ju**@example.com"
        assert await auth_service.verify_expert_otp(caller, code) == (
            "Expert verification OTP verified successfully"
        )

    @pytest.mark.asyncio
    async def test_wrong_code(
        self, auth_service: AuthService, codec: TokenCodec, make_account
    ) -> None:
        await make_account(username="juma", role=AccountRole.EXPERT)
        tokens = await auth_service.login(username="juma", password=TEST_PASSWORD)
        caller = claims_of(codec, tokens.jwt_token)
        await auth_service.request_expert_verification(caller)

        with pytest.raises(UnauthenticatedError):
            await auth_service.verify_expert_otp(caller, "000000")

    @pytest.mark.asyncio
    async def test_missing_code(self, auth_service: AuthService, codec: TokenCodec, make_account) -> None:
        await make_account(username="juma")
        tokens = await auth_service.login(username="juma", password=TEST_PASSWORD)

        with pytest.raises(InvalidInputError, match="OTP is required"):
            await auth_service.verify_expert_otp(claims_of(codec, tokens.jwt_token), None)
