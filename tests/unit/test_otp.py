# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the OTP ledger."""

from unittest.mock import patch

import pytest

from src.core.errors import InvalidInputError, UnavailableError
from src.domains.auth.otp import (
    OTPLedger,
    OTPPurpose,
    identifier_matches,
    is_email,
    is_phone,
)
from src.infrastructure.notifications.channels.base import DeliveryStatus
from tests.fakes import FakeClock, InMemoryOTPStore, RecordingNotifier

PHONE = "+254700000001"
EMAIL = "amina@example.com"


class TestIdentifierShapes:
    """Tests for identifier classification."""

    @pytest.mark.parametrize("value", [EMAIL, "a.b+c@farm.co.ke"])
    def test_emails(self, value: str) -> None:
        assert is_email(value)
        assert not is_phone(value)

    @pytest.mark.parametrize("value", [PHONE, "0712345678", "+1 (555) 010-9999"])
    def test_phones(self, value: str) -> None:
        assert is_phone(value)
        assert not is_email(value)

    def test_purpose_shapes(self) -> None:
        assert identifier_matches(PHONE, OTPPurpose.LOGIN)
        assert not identifier_matches(EMAIL, OTPPurpose.LOGIN)
        assert identifier_matches(EMAIL, OTPPurpose.REGISTRATION)
        assert not identifier_matches(PHONE, OTPPurpose.FORGOT_PASSWORD)
        assert identifier_matches(EMAIL, OTPPurpose.EXPERT_VERIFICATION)


class TestOTPLedger:
    """Tests for OTPLedger."""

    @pytest.mark.asyncio
    async def test_generate_six_digits(self, otp_ledger: OTPLedger) -> None:
        """Test that codes are six digits without a leading zero."""
        for _ in range(20):
            code = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"

    @pytest.mark.asyncio
    async def test_generate_then_verify(self, otp_ledger: OTPLedger) -> None:
        code = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)

        assert await otp_ledger.verify(PHONE, code, OTPPurpose.LOGIN) is True

    @pytest.mark.asyncio
    async def test_verify_does_not_consume(self, otp_ledger: OTPLedger) -> None:
        code = await otp_ledger.generate(EMAIL, OTPPurpose.FORGOT_PASSWORD)

        assert await otp_ledger.verify(EMAIL, code, OTPPurpose.FORGOT_PASSWORD)
        assert await otp_ledger.verify(EMAIL, code, OTPPurpose.FORGOT_PASSWORD)

    @pytest.mark.asyncio
    async def test_consume_is_single_use(self, otp_ledger: OTPLedger) -> None:
        """Test that a consumed code cannot be replayed."""
        code = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)

        assert await otp_ledger.consume(PHONE, code, OTPPurpose.LOGIN) is True
        assert await otp_ledger.consume(PHONE, code, OTPPurpose.LOGIN) is False

    @pytest.mark.asyncio
    async def test_wrong_code_rejected(self, otp_ledger: OTPLedger) -> None:
        code = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)
        wrong = "100000" if code != "100000" else "100001"

        assert await otp_ledger.verify(PHONE, wrong, OTPPurpose.LOGIN) is False

    @pytest.mark.asyncio
    async def test_purposes_are_isolated(self, otp_ledger: OTPLedger) -> None:
        """Test that a code for one purpose does not verify another."""
        code = await otp_ledger.generate(EMAIL, OTPPurpose.REGISTRATION)

        assert await otp_ledger.verify(EMAIL, code, OTPPurpose.FORGOT_PASSWORD) is False
        assert await otp_ledger.verify(EMAIL, code, OTPPurpose.REGISTRATION) is True

    @pytest.mark.asyncio
    async def test_regenerate_replaces_previous(
        self, otp_ledger: OTPLedger, otp_store: InMemoryOTPStore
    ) -> None:
        """Test that a second generate supersedes the first code."""
        with patch.object(OTPLedger, "_new_code", side_effect=["111111", "222222"]):
            first = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)
            second = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)

        assert await otp_ledger.verify(PHONE, first, OTPPurpose.LOGIN) is False
        assert await otp_ledger.verify(PHONE, second, OTPPurpose.LOGIN) is True
        assert len(otp_store.entries) == 1

    @pytest.mark.asyncio
    async def test_valid_until_expiry(self, otp_ledger: OTPLedger, clock: FakeClock) -> None:
        code = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)

        clock.advance(minutes=4, seconds=59)

        assert await otp_ledger.verify(PHONE, code, OTPPurpose.LOGIN) is True

    @pytest.mark.asyncio
    async def test_expired_code_rejected_and_purged(
        self,
        otp_ledger: OTPLedger,
        otp_store: InMemoryOTPStore,
        clock: FakeClock,
    ) -> None:
        """Test that a code is rejected after five minutes and removed."""
        code = await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)

        clock.advance(minutes=5, seconds=1)

        assert await otp_ledger.verify(PHONE, code, OTPPurpose.LOGIN) is False
        assert otp_store.entries == {}
        assert otp_store.purged == [(PHONE, OTPPurpose.LOGIN)]

    @pytest.mark.asyncio
    async def test_wrong_identifier_shape(self, otp_ledger: OTPLedger) -> None:
        """Test that a Registration code cannot target a phone number."""
        with pytest.raises(InvalidInputError, match="expected email"):
            await otp_ledger.generate(PHONE, OTPPurpose.REGISTRATION)

        with pytest.raises(InvalidInputError, match="expected phone"):
            await otp_ledger.generate(EMAIL, OTPPurpose.LOGIN)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["", None, 123456])
    async def test_non_string_codes_rejected(self, otp_ledger: OTPLedger, code) -> None:
        await otp_ledger.generate(PHONE, OTPPurpose.LOGIN)

        assert await otp_ledger.verify(PHONE, code, OTPPurpose.LOGIN) is False

    @pytest.mark.asyncio
    async def test_delete_all_purposes(
        self, otp_ledger: OTPLedger, otp_store: InMemoryOTPStore
    ) -> None:
        await otp_ledger.generate(EMAIL, OTPPurpose.REGISTRATION)
        await otp_ledger.generate(EMAIL, OTPPurpose.FORGOT_PASSWORD)

        await otp_ledger.delete(EMAIL)
        await otp_ledger.delete("nobody@example.com")

        assert otp_store.entries == {}
        assert otp_store.purged == [(PHONE, OTPPurpose.LOGIN)]

    @pytest.mark.asyncio
    async def test_issue_sends_code(
        self, otp_ledger: OTPLedger, notifier: RecordingNotifier
    ) -> None:
        code = await otp_ledger.issue(PHONE, OTPPurpose.LOGIN)

        assert notifier.otps == [(PHONE, code)]

    @pytest.mark.asyncio
    async def test_failed_delivery_raises(
        self, otp_ledger: OTPLedger, notifier: RecordingNotifier
    ) -> None:
        notifier.status = DeliveryStatus.FAILED

        with pytest.raises(UnavailableError, match="Failed to send OTP"):
            await otp_ledger.issue(EMAIL, OTPPurpose.FORGOT_PASSWORD)
