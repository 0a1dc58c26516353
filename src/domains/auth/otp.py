# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Purpose-scoped one-time codes.

Each code is tied to an identifier (e-mail or phone) and a purpose, and
expires a fixed number of minutes after creation. At most one code exists
per (identifier, purpose): generating again replaces the previous code.
Expired codes are purged lazily when a verification finds them.

Example:
    >>> store = SQLAlchemyOTPStore(session, get_central_sessionmaker())
    >>> ledger = OTPLedger(store, notifier, settings.otp)
    >>> code = await ledger.generate("+254700000001", OTPPurpose.LOGIN)
    >>> await ledger.send("+254700000001", code)
    >>> await ledger.consume("+254700000001", code, OTPPurpose.LOGIN)
    True
"""

import hmac
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config.settings import OTPSettings
from src.core.errors import InvalidInputError, UnavailableError
from src.infrastructure.database.models import OTPRecord
from src.infrastructure.notifications import NotificationService
from src.utils.datetime import Clock, ensure_utc, is_expired, utc_now

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@(.+)$")
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ()-]{5,19}$")


class OTPPurpose(str, Enum):
    """What a one-time code may be used for."""

    LOGIN = "Login"
    REGISTRATION = "Registration"
    FORGOT_PASSWORD = "ForgotPassword"
    EXPERT_VERIFICATION = "ExpertVerification"


class IdentifierKind(str, Enum):
    """Shape of an OTP identifier."""

    EMAIL = "email"
    PHONE = "phone"


PURPOSE_IDENTIFIER_KIND: dict[OTPPurpose, IdentifierKind] = {
    OTPPurpose.LOGIN: IdentifierKind.PHONE,
    OTPPurpose.REGISTRATION: IdentifierKind.EMAIL,
    OTPPurpose.FORGOT_PASSWORD: IdentifierKind.EMAIL,
    OTPPurpose.EXPERT_VERIFICATION: IdentifierKind.EMAIL,
}


def is_email(identifier: str) -> bool:
    """Check whether an identifier is e-mail shaped."""
    return bool(identifier) and EMAIL_PATTERN.match(identifier) is not None


def is_phone(identifier: str) -> bool:
    """Check whether an identifier is phone shaped."""
    return bool(identifier) and "@" not in identifier and PHONE_PATTERN.match(identifier) is not None


def identifier_matches(identifier: str, purpose: OTPPurpose) -> bool:
    """Check an identifier against the shape its purpose requires."""
    if PURPOSE_IDENTIFIER_KIND[purpose] is IdentifierKind.EMAIL:
        return is_email(identifier)
    return is_phone(identifier)


@dataclass(frozen=True)
class OTPEntry:
    """A stored one-time code."""

    identifier: str
    purpose: OTPPurpose
    code: str
    expires_at: datetime


class OTPStore(Protocol):
    """Persistence for one-time codes.

    Each method is a single-key operation on (identifier, purpose).
    """

    async def upsert(self, entry: OTPEntry) -> None: ...

    async def find(self, identifier: str, purpose: OTPPurpose) -> OTPEntry | None: ...

    async def delete(self, identifier: str, purpose: OTPPurpose | None = None) -> int: ...

    async def purge_expired(
        self, identifier: str, purpose: OTPPurpose, now: datetime
    ) -> int: ...


class SQLAlchemyOTPStore:
    """OTP store backed by the otp_records table.

    Reads and writes go through the request session and commit with it.
    Purging expired codes uses its own short transaction, since the request
    that finds an expired code usually fails and rolls back.
    """

    def __init__(
        self,
        db: AsyncSession,
        purge_sessions: async_sessionmaker[AsyncSession],
    ) -> None:
        self._db = db
        self._purge_sessions = purge_sessions

    async def upsert(self, entry: OTPEntry) -> None:
        await self._db.execute(
            delete(OTPRecord).where(
                OTPRecord.identifier == entry.identifier,
                OTPRecord.purpose == entry.purpose.value,
            )
        )
        self._db.add(
            OTPRecord(
                identifier=entry.identifier,
                purpose=entry.purpose.value,
                code=entry.code,
                expires_at=entry.expires_at,
            )
        )
        await self._db.flush()

    async def find(self, identifier: str, purpose: OTPPurpose) -> OTPEntry | None:
        result = await self._db.execute(
            select(OTPRecord)
            .where(
                OTPRecord.identifier == identifier,
                OTPRecord.purpose == purpose.value,
            )
            .order_by(OTPRecord.created_at.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None
        return OTPEntry(
            identifier=record.identifier,
            purpose=purpose,
            code=record.code,
            expires_at=ensure_utc(record.expires_at),
        )

    async def delete(self, identifier: str, purpose: OTPPurpose | None = None) -> int:
        stmt = delete(OTPRecord).where(OTPRecord.identifier == identifier)
        if purpose is not None:
            stmt = stmt.where(OTPRecord.purpose == purpose.value)
        result = await self._db.execute(stmt)
        return result.rowcount or 0

    async def purge_expired(self, identifier: str, purpose: OTPPurpose, now: datetime) -> int:
        """Delete a code that expired before `now` and commit immediately."""
        async with self._purge_sessions.begin() as session:
            result = await session.execute(
                delete(OTPRecord).where(
                    OTPRecord.identifier == identifier,
                    OTPRecord.purpose == purpose.value,
                    OTPRecord.expires_at < now,
                )
            )
        return result.rowcount or 0


class OTPLedger:
    """Generates, verifies, expires and delivers one-time codes.

    Attributes:
        _store: Backing OTP store.
        _notifier: Outbound delivery for codes.
        _settings: OTP configuration.
        _clock: Source of the current UTC time.
    """

    def __init__(
        self,
        store: OTPStore,
        notifier: NotificationService,
        settings: OTPSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._settings = settings
        self._clock = clock

    def _new_code(self) -> str:
        low = 10 ** (self._settings.length - 1)
        high = 10 ** self._settings.length
        return str(low + secrets.randbelow(high - low))

    async def generate(self, identifier: str, purpose: OTPPurpose) -> str:
        """Create and store a new code, replacing any existing one.

        Args:
            identifier: E-mail or phone, as the purpose requires.
            purpose: What the code will be used for.

        Returns:
            The generated code.

        Raises:
            InvalidInputError: If the identifier has the wrong shape.
        """
        if not identifier_matches(identifier, purpose):
            expected = PURPOSE_IDENTIFIER_KIND[purpose].value
            raise InvalidInputError(
                f"Invalid identifier for {purpose.value} OTP: expected {expected}"
            )

        code = self._new_code()
        expires_at = self._clock() + timedelta(minutes=self._settings.expire_minutes)
        await self._store.upsert(OTPEntry(identifier, purpose, code, expires_at))

        logger.info("Generated %s OTP for %s", purpose.value, identifier)
        return code

    async def verify(self, identifier: str, code: str, purpose: OTPPurpose) -> bool:
        """Check a code without consuming it.

        An expired record is deleted on sight.

        Returns:
            True if a live record matches the code.
        """
        if not identifier or not isinstance(code, str) or not code:
            return False

        entry = await self._store.find(identifier, purpose)
        if entry is None:
            return False

        now = self._clock()
        if is_expired(entry.expires_at, now):
            await self._store.purge_expired(identifier, purpose, now)
            logger.info("Expired %s OTP purged for %s", purpose.value, identifier)
            return False

        return hmac.compare_digest(entry.code.encode(), code.encode())

    async def consume(self, identifier: str, code: str, purpose: OTPPurpose) -> bool:
        """Verify a code and delete it on success so it cannot be replayed."""
        if not await self.verify(identifier, code, purpose):
            return False
        await self._store.delete(identifier, purpose)
        return True

    async def delete(self, identifier: str, purpose: OTPPurpose | None = None) -> None:
        """Delete one purpose, or every purpose, for an identifier.

        Deleting a missing record is a no-op.
        """
        await self._store.delete(identifier, purpose)

    async def send(self, identifier: str, code: str) -> None:
        """Deliver a code by e-mail or SMS.

        Raises:
            UnavailableError: If the provider rejected the message.
        """
        result = await self._notifier.send_otp(identifier, code)
        if result.failed:
            logger.error("OTP delivery to %s failed: %s", identifier, result.error_message)
            raise UnavailableError("Failed to send OTP")

    async def issue(self, identifier: str, purpose: OTPPurpose) -> str:
        """Generate a code and deliver it."""
        code = await self.generate(identifier, purpose)
        await self.send(identifier, code)
        return code
