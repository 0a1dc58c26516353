# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin moderation endpoints.

All endpoints require the ADMIN role; other callers get 403.

- POST /users/block - Hard or Soft block
- POST /users/unblock - Lift a block
- GET /users/{user_id}/blocked - Cache and store status for one account
- GET /users/blocked - All ids in the blocklist cache
"""

import logging

from fastapi import APIRouter

from src.api.dependencies import AdminUser, ModerationSvc
from src.models.common import MessageResponse
from src.models.user import (
    BlockedCheckResponse,
    BlockedSummaryResponse,
    BlockRequest,
    UnblockRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/users/block",
    response_model=MessageResponse,
    summary="Block an account",
    description=(
        "Hard marks the account Blocked in the credential store and adds it "
        "to the blocklist cache. Soft only adds it to the cache."
    ),
)
async def block_user(
    data: BlockRequest,
    admin: AdminUser,
    moderation: ModerationSvc,
) -> MessageResponse:
    """Block an account.

    Args:
        data: Target account id and block mode.
        admin: Authenticated admin.
        moderation: Moderation service.
    """
    mode = await moderation.block(data.user_id, data.mode)
    logger.info("Admin %s blocked user %s (%s)", admin.id, data.user_id, mode.value)
    return MessageResponse(message=f"User {data.user_id} blocked successfully ({mode.value})")


@router.post(
    "/users/unblock",
    response_model=MessageResponse,
    summary="Unblock an account",
)
async def unblock_user(
    data: UnblockRequest,
    admin: AdminUser,
    moderation: ModerationSvc,
) -> MessageResponse:
    await moderation.unblock(data.user_id)
    logger.info("Admin %s unblocked user %s", admin.id, data.user_id)
    return MessageResponse(message=f"User {data.user_id} unblocked successfully")


@router.get(
    "/users/blocked",
    response_model=BlockedSummaryResponse,
    summary="List blocked accounts",
)
async def list_blocked_users(
    admin: AdminUser,
    moderation: ModerationSvc,
) -> BlockedSummaryResponse:
    return BlockedSummaryResponse.model_validate(await moderation.blocked_summary())


@router.get(
    "/users/{user_id}/blocked",
    response_model=BlockedCheckResponse,
    summary="Check whether an account is blocked",
)
async def check_blocked_user(
    user_id: int,
    admin: AdminUser,
    moderation: ModerationSvc,
) -> BlockedCheckResponse:
    return BlockedCheckResponse.model_validate(await moderation.check_blocked(user_id))
