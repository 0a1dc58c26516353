# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account self-service API endpoints.

- POST /register - Create an account (public)
- GET /me - Current account profile
- POST /me/change-password - Change password
- POST /me/deactivate - Deactivate own account
- POST /me/delete - Soft delete own account
- POST /reactivate - Reactivate an Inactive account (public)
"""

import logging

from fastapi import APIRouter, Request, status

from src.api.dependencies import AccountSvc, AuthenticatedUser
from src.api.middleware.rate_limit import RATE_LIMIT_AUTH, get_ip_only, limiter
from src.models.common import MessageResponse
from src.models.user import (
    AccountResponse,
    ChangePasswordRequest,
    ConfirmPasswordRequest,
    ReactivateRequest,
    RegisterRequest,
    RegisterResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description=(
        "Create an Inactive, Pending account and e-mail a verification link "
        "and code. Admin accounts cannot self-register."
    ),
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def register(
    request: Request,
    data: RegisterRequest,
    account_service: AccountSvc,
) -> RegisterResponse:
    """Register a Farmer or Expert account.

    Args:
        request: HTTP request.
        data: Registration payload.
        account_service: Account service.

    Returns:
        RegisterResponse with the new account id.
    """
    account = await account_service.register(data)
    return RegisterResponse(
        message="User registered successfully. Please verify your email.",
        user_id=account.id,
    )


@router.get(
    "/me",
    response_model=AccountResponse,
    summary="Get current account",
)
async def get_me(
    current_user: AuthenticatedUser,
    account_service: AccountSvc,
) -> AccountResponse:
    account = await account_service.get_profile(current_user.id)
    return AccountResponse.model_validate(account)


@router.post(
    "/me/change-password",
    response_model=MessageResponse,
    summary="Change password",
)
@limiter.limit(RATE_LIMIT_AUTH)
async def change_password(
    request: Request,
    data: ChangePasswordRequest,
    current_user: AuthenticatedUser,
    account_service: AccountSvc,
) -> MessageResponse:
    await account_service.change_password(
        current_user.id,
        data.current_password,
        data.new_password,
        data.confirm_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.post(
    "/me/deactivate",
    response_model=MessageResponse,
    summary="Deactivate own account",
)
async def deactivate(
    data: ConfirmPasswordRequest,
    current_user: AuthenticatedUser,
    account_service: AccountSvc,
) -> MessageResponse:
    """Set the caller's account Inactive.

    Existing session tokens stop passing the gate only when they expire;
    the account can come back through /users/reactivate.
    """
    await account_service.deactivate(current_user.id, data.confirm_password)
    return MessageResponse(message="Account deactivated successfully")


@router.post(
    "/me/delete",
    response_model=MessageResponse,
    summary="Delete own account",
)
async def delete_account(
    data: ConfirmPasswordRequest,
    current_user: AuthenticatedUser,
    account_service: AccountSvc,
) -> MessageResponse:
    await account_service.soft_delete(current_user.id, data.confirm_password)
    return MessageResponse(message="Account deleted successfully")


@router.post(
    "/reactivate",
    response_model=MessageResponse,
    summary="Reactivate an inactive account",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def reactivate(
    request: Request,
    data: ReactivateRequest,
    account_service: AccountSvc,
) -> MessageResponse:
    await account_service.reactivate(data.email, data.password)
    return MessageResponse(message="Account reactivated successfully")
