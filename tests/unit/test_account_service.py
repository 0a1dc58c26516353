# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for AccountService."""

from urllib.parse import parse_qs, urlparse

import pytest
from pydantic import ValidationError

from src.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from src.domains.auth.otp import OTPLedger, OTPPurpose
from src.domains.auth.password import PasswordHasher
from src.domains.user.service import AccountService
from src.models.common import AccountRole, AccountStatus, VerificationStatus
from src.models.user import RegisterRequest
from tests.fakes import TEST_PASSWORD, InMemoryAccountRepository, RecordingNotifier


def register_request(**overrides) -> RegisterRequest:
    data = {
        "username": "amina",
        "fullName": "Amina Yusuf",
        "email": "amina@example.com",
        "phoneNumber": "+254700000001",
        "password": TEST_PASSWORD,
    }
    data.update(overrides)
    return RegisterRequest.model_validate(data)


class TestRegister:
    """Tests for AccountService.register."""

    @pytest.mark.asyncio
    async def test_register_creates_pending_account(
        self,
        account_service: AccountService,
        hasher: PasswordHasher,
    ) -> None:
        """Test that a new account starts Inactive and Pending."""
        account = await account_service.register(register_request())

        assert account.id is not None
        assert account.status == AccountStatus.INACTIVE.value
        assert account.verification_status == VerificationStatus.PENDING.value
        assert account.role == AccountRole.FARMER.value
        assert account.password_hash != TEST_PASSWORD
        assert hasher.verify(TEST_PASSWORD, account.password_hash)

    @pytest.mark.asyncio
    async def test_register_sends_link_and_code(
        self,
        account_service: AccountService,
        accounts: InMemoryAccountRepository,
        notifier: RecordingNotifier,
        otp_ledger: OTPLedger,
    ) -> None:
        """Test that the verification e-mail carries a working link and code."""
        account = await account_service.register(register_request())

        sent = notifier.links[0]
        query = parse_qs(urlparse(sent["link"]).query)
        assert sent["link"].startswith("http://agri.test/auth/verify?")
        assert query["email"] == ["amina@example.com"]
        assert query["token"][0] in accounts.tokens
        assert accounts.tokens[query["token"][0]].account_id == account.id
        assert await otp_ledger.verify(account.email, sent["code"], OTPPurpose.REGISTRATION)

    @pytest.mark.asyncio
    async def test_register_as_expert(self, account_service: AccountService) -> None:
        account = await account_service.register(register_request(role="EXPERT"))

        assert account.role == "EXPERT"

    def test_admin_cannot_self_register(self) -> None:
        with pytest.raises(ValidationError):
            register_request(role="ADMIN")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"username": "other"}, "Email already registered"),
            ({"username": "other", "email": "other@example.com"}, "Phone number already registered"),
            ({"email": "other@example.com", "phoneNumber": "+254700000099"}, "Username already taken"),
        ],
    )
    async def test_duplicates_rejected(
        self, account_service: AccountService, overrides: dict, message: str
    ) -> None:
        await account_service.register(register_request())

        with pytest.raises(ConflictError, match=message):
            await account_service.register(register_request(**overrides))

    @pytest.mark.asyncio
    async def test_weak_password_rejected(
        self, account_service: AccountService, accounts: InMemoryAccountRepository
    ) -> None:
        with pytest.raises(InvalidInputError, match="at least 8 characters"):
            await account_service.register(register_request(password="Sh0rt!"))

        assert accounts.accounts == {}

    @pytest.mark.asyncio
    async def test_resend_replaces_old_link_token(
        self,
        account_service: AccountService,
        accounts: InMemoryAccountRepository,
    ) -> None:
        account = await account_service.register(register_request())
        first = set(accounts.tokens)

        await account_service.send_verification_email(account)

        assert len(accounts.tokens) == 1
        assert set(accounts.tokens) != first


class TestChangePassword:
    """Tests for AccountService.change_password."""

    @pytest.mark.asyncio
    async def test_change_password(
        self,
        account_service: AccountService,
        accounts: InMemoryAccountRepository,
        hasher: PasswordHasher,
        notifier: RecordingNotifier,
        make_account,
    ) -> None:
        account = await make_account()

        await account_service.change_password(account.id, TEST_PASSWORD, "N3w!password", "N3w!password")

        stored = await accounts.get_by_id(account.id)
        assert hasher.verify("N3w!password", stored.password_hash)
        assert notifier.confirmations == [account.email]

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, account_service: AccountService, make_account) -> None:
        account = await make_account()

        with pytest.raises(UnauthenticatedError, match="Incorrect current password"):
            await account_service.change_password(account.id, "Wr0ng!pass", "N3w!password", "N3w!password")

    @pytest.mark.asyncio
    async def test_mismatched_confirmation(self, account_service: AccountService, make_account) -> None:
        account = await make_account()

        with pytest.raises(InvalidInputError, match="do not match"):
            await account_service.change_password(account.id, TEST_PASSWORD, "N3w!password", "N3w!passw0rd")

    @pytest.mark.asyncio
    async def test_missing_fields(self, account_service: AccountService, make_account) -> None:
        account = await make_account()

        with pytest.raises(InvalidInputError, match="All password fields are required"):
            await account_service.change_password(account.id, TEST_PASSWORD, None, None)


class TestLifecycle:
    """Tests for deactivate, soft delete and reactivate."""

    @pytest.mark.asyncio
    async def test_deactivate(
        self, account_service: AccountService, accounts: InMemoryAccountRepository, make_account
    ) -> None:
        account = await make_account()

        await account_service.deactivate(account.id, TEST_PASSWORD)

        assert (await accounts.get_by_id(account.id)).status == AccountStatus.INACTIVE.value

    @pytest.mark.asyncio
    async def test_soft_delete(
        self, account_service: AccountService, accounts: InMemoryAccountRepository, make_account
    ) -> None:
        """Test that deletion keeps the record with status Deleted."""
        account = await make_account()

        await account_service.soft_delete(account.id, TEST_PASSWORD)

        assert (await accounts.get_by_id(account.id)).status == AccountStatus.DELETED.value

    @pytest.mark.asyncio
    @pytest.mark.parametrize("confirm", [None, "  ", "Wr0ng!pass"])
    async def test_confirmation_required(
        self, account_service: AccountService, make_account, confirm: str | None
    ) -> None:
        account = await make_account()

        with pytest.raises((InvalidInputError, UnauthenticatedError)):
            await account_service.deactivate(account.id, confirm)

    @pytest.mark.asyncio
    async def test_reactivate_inactive(self, account_service: AccountService, make_account) -> None:
        account = await make_account(status=AccountStatus.INACTIVE)

        result = await account_service.reactivate(account.email, TEST_PASSWORD)

        assert result.status == AccountStatus.ACTIVE.value

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [AccountStatus.DELETED, AccountStatus.BLOCKED, AccountStatus.ACTIVE])
    async def test_reactivate_only_from_inactive(
        self, account_service: AccountService, make_account, status: AccountStatus
    ) -> None:
        account = await make_account(status=status)

        with pytest.raises(InvalidInputError, match="Only inactive accounts"):
            await account_service.reactivate(account.email, TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_reactivate_wrong_password(self, account_service: AccountService, make_account) -> None:
        account = await make_account(status=AccountStatus.INACTIVE)

        with pytest.raises(UnauthenticatedError):
            await account_service.reactivate(account.email, "Wr0ng!pass")

    @pytest.mark.asyncio
    async def test_profile_of_unknown_account(self, account_service: AccountService) -> None:
        with pytest.raises(NotFoundError):
            await account_service.get_profile(999)
