# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- In-memory Redis backend and OTP store
- In-memory account repository
- A controllable clock
- Pre-wired token codec, reference tokens, blocklist and OTP ledger
- Auth, account and moderation services over those doubles
"""

import itertools

import pytest
from pydantic import SecretStr

from src.core.config.settings import (
    JWTSettings,
    OTPSettings,
    ReferenceTokenSettings,
    VerificationSettings,
)
from src.domains.auth.blocklist import BlocklistCache
from src.domains.auth.jwt import TokenCodec
from src.domains.auth.otp import OTPLedger
from src.domains.auth.password import PasswordHasher
from src.domains.auth.reference_token import ReferenceTokenService
from src.domains.auth.service import AuthService
from src.domains.user.moderation import ModerationService
from src.domains.user.service import AccountService
from src.infrastructure.cache import ResilientCache
from src.infrastructure.database.models import Account
from src.models.common import AccountRole, AccountStatus, VerificationStatus
from tests.fakes import (
    TEST_PASSWORD,
    TEST_SECRET,
    FakeClock,
    InMemoryAccountRepository,
    InMemoryOTPStore,
    InMemoryRedis,
    RecordingNotifier,
)


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """JWT settings with a test key and 5-day lifetime."""
    return JWTSettings(secret_key=SecretStr(TEST_SECRET), algorithm="HS256", expire_minutes=7200)


@pytest.fixture
def reference_settings() -> ReferenceTokenSettings:
    return ReferenceTokenSettings(ttl_seconds=5 * 24 * 60 * 60, key_prefix="auth:ref:", token_bytes=32)


@pytest.fixture
def otp_settings() -> OTPSettings:
    return OTPSettings(expire_minutes=5, length=6)


@pytest.fixture
def verification_settings() -> VerificationSettings:
    return VerificationSettings(token_expire_minutes=60, base_url="http://agri.test")


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def redis_backend() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def cache(redis_backend: InMemoryRedis) -> ResilientCache:
    return ResilientCache(redis_backend, operation_timeout=0.5)


@pytest.fixture
def codec(jwt_settings: JWTSettings, clock: FakeClock) -> TokenCodec:
    return TokenCodec(jwt_settings, clock=clock)


@pytest.fixture
def references(
    cache: ResilientCache,
    codec: TokenCodec,
    reference_settings: ReferenceTokenSettings,
    clock: FakeClock,
) -> ReferenceTokenService:
    return ReferenceTokenService(cache, codec, reference_settings, clock=clock)


@pytest.fixture
def blocklist(cache: ResilientCache) -> BlocklistCache:
    return BlocklistCache(cache)


@pytest.fixture
def otp_store() -> InMemoryOTPStore:
    return InMemoryOTPStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def otp_ledger(
    otp_store: InMemoryOTPStore,
    notifier: RecordingNotifier,
    otp_settings: OTPSettings,
    clock: FakeClock,
) -> OTPLedger:
    return OTPLedger(otp_store, notifier, otp_settings, clock=clock)


@pytest.fixture
def hasher() -> PasswordHasher:
    """Low-cost hasher to keep tests fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def accounts(clock: FakeClock) -> InMemoryAccountRepository:
    return InMemoryAccountRepository(clock)


@pytest.fixture
def make_account(accounts: InMemoryAccountRepository, hasher: PasswordHasher):
    """Factory that stores an account and returns it."""
    counter = itertools.count(1)

    async def _make(
        username: str | None = None,
        status: AccountStatus = AccountStatus.ACTIVE,
        verification: VerificationStatus = VerificationStatus.VERIFIED,
        role: AccountRole = AccountRole.FARMER,
        password: str = TEST_PASSWORD,
        email: str | None = None,
        phone_number: str | None = None,
    ) -> Account:
        n = next(counter)
        username = username or f"farmer{n}"
        account = Account(
            username=username,
            full_name=f"{username.title()} Test",
            email=email or f"{username}@example.com",
            phone_number=phone_number or f"+25570000{n:04d}",
            password_hash=hasher.hash(password),
            status=status.value,
            verification_status=verification.value,
            role=role.value,
        )
        return await accounts.add(account)

    return _make


@pytest.fixture
def account_service(
    accounts: InMemoryAccountRepository,
    otp_ledger: OTPLedger,
    notifier: RecordingNotifier,
    hasher: PasswordHasher,
    verification_settings: VerificationSettings,
    clock: FakeClock,
) -> AccountService:
    return AccountService(accounts, otp_ledger, notifier, hasher, verification_settings, clock=clock)


@pytest.fixture
def auth_service(
    accounts: InMemoryAccountRepository,
    codec: TokenCodec,
    references: ReferenceTokenService,
    otp_ledger: OTPLedger,
    blocklist: BlocklistCache,
    account_service: AccountService,
    notifier: RecordingNotifier,
    hasher: PasswordHasher,
    clock: FakeClock,
) -> AuthService:
    return AuthService(
        accounts,
        codec,
        references,
        otp_ledger,
        blocklist,
        account_service,
        notifier,
        hasher=hasher,
        verification_base_url="http://agri.test",
        clock=clock,
    )


@pytest.fixture
def moderation(accounts: InMemoryAccountRepository, blocklist: BlocklistCache) -> ModerationService:
    return ModerationService(accounts, blocklist)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
