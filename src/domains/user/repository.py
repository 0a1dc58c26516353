# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credential store access for accounts and verification link tokens."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import Account, VerificationToken


class AccountRepository:
    """Account lookups and writes on the current session.

    Writes are flushed, not committed; the session owner commits.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_by_id(self, account_id: int) -> Account | None:
        return await self._db.get(Account, account_id)

    async def get_by_username(self, username: str) -> Account | None:
        result = await self._db.execute(select(Account).where(Account.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Account | None:
        result = await self._db.execute(select(Account).where(Account.email == email))
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone_number: str) -> Account | None:
        result = await self._db.execute(
            select(Account).where(Account.phone_number == phone_number)
        )
        return result.scalar_one_or_none()

    async def exists_username(self, username: str) -> bool:
        return await self.get_by_username(username) is not None

    async def exists_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def exists_phone(self, phone_number: str) -> bool:
        return await self.get_by_phone(phone_number) is not None

    async def add(self, account: Account) -> Account:
        """Insert an account and populate its id."""
        self._db.add(account)
        await self._db.flush()
        return account

    async def save(self, account: Account) -> None:
        """Flush pending changes to an account."""
        self._db.add(account)
        await self._db.flush()

    async def add_verification_token(self, token: VerificationToken) -> None:
        self._db.add(token)
        await self._db.flush()

    async def get_verification_token(self, token: str) -> VerificationToken | None:
        return await self._db.get(VerificationToken, token)

    async def delete_verification_tokens(self, account_id: int) -> None:
        """Drop every outstanding link token for an account."""
        await self._db.execute(
            delete(VerificationToken).where(VerificationToken.account_id == account_id)
        )
