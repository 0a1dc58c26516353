# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin block and unblock operations.

A Hard block marks the account Blocked in the credential store and adds it
to the blocklist cache. A Soft block only adds it to the cache, so it lasts
until the cache entry is removed or lost.
"""

import logging
from enum import Enum
from typing import Any

from src.core.errors import InvalidInputError, NotFoundError
from src.domains.auth.blocklist import BlocklistCache
from src.domains.user.repository import AccountRepository
from src.infrastructure.database.models import Account
from src.models.common import AccountStatus

logger = logging.getLogger(__name__)


class BlockMode(str, Enum):
    HARD = "Hard"
    SOFT = "Soft"

    @classmethod
    def parse(cls, raw: str | None) -> "BlockMode | None":
        """Case-insensitive lookup; None for unknown values."""
        if not raw:
            return None
        return {member.value.lower(): member for member in cls}.get(raw.strip().lower())


class ModerationService:
    """Blocks and unblocks accounts.

    Attributes:
        _accounts: Credential store repository.
        _blocklist: Shared blocklist cache.
    """

    def __init__(self, accounts: AccountRepository, blocklist: BlocklistCache) -> None:
        self._accounts = accounts
        self._blocklist = blocklist

    async def _get_account(self, user_id: int) -> Account:
        account = await self._accounts.get_by_id(user_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def block(self, user_id: int, mode: str | None) -> BlockMode:
        """Block an account.

        Raises:
            InvalidInputError: If mode is neither Hard nor Soft.
            NotFoundError: If the account does not exist.
        """
        block_mode = BlockMode.parse(mode)
        if block_mode is None:
            raise InvalidInputError("Invalid flag. Allowed values are 'Hard' or 'Soft'")

        account = await self._get_account(user_id)
        if block_mode is BlockMode.HARD:
            account.status = AccountStatus.BLOCKED.value
            await self._accounts.save(account)

        cached = await self._blocklist.add(user_id)
        logger.info(
            "User %s blocked (%s, cache updated: %s)", user_id, block_mode.value, cached
        )
        return block_mode

    async def unblock(self, user_id: int) -> None:
        """Lift a block in the store and the cache.

        Only a Blocked account is moved back to Active; other statuses are
        left alone so unblocking cannot resurrect a deleted account.
        """
        account = await self._get_account(user_id)
        if account.status == AccountStatus.BLOCKED.value:
            account.status = AccountStatus.ACTIVE.value
            await self._accounts.save(account)

        await self._blocklist.remove(user_id)
        logger.info("User %s unblocked", user_id)

    async def check_blocked(self, user_id: int) -> dict[str, Any]:
        account = await self._get_account(user_id)
        return {
            "userId": user_id,
            "isBlockedInCache": await self._blocklist.is_blocked(user_id),
            "databaseStatus": account.status,
        }

    async def blocked_summary(self) -> dict[str, Any]:
        members = await self._blocklist.list_all()
        return {
            "count": len(members),
            "blockedUsers": sorted(members),
        }
