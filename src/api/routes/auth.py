# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for user authentication:
- POST /login - Password login, or OTP login start with a phone number only
- GET /verify - E-mail verification with a link token and/or OTP
- POST /verify-otp - Complete OTP login
- POST /forget-password, /verify-otp-for-reset, /reset-password - Recovery
- GET /validateReferenceToken - Resolve a reference token
- POST /logout - Invalidate a reference token
- POST /expert/request-verification, /expert/verify - Expert e-mail check

Failures are raised as AppError and rendered as ``{"error": ...}`` by the
application's exception handler.

Example:
    POST /auth/login
    Body:
        {"username": "amina", "password": "S3cure!pass"}
"""

import logging

from fastapi import APIRouter, Query, Request

from src.api.dependencies import AuthenticatedUser, AuthSvc
from src.api.middleware.rate_limit import RATE_LIMIT_AUTH, get_ip_only, limiter
from src.models.auth import (
    ExpertOTPRequest,
    ForgetPasswordRequest,
    ForgetPasswordResponse,
    JWTResponse,
    LoginRequest,
    LogoutRequest,
    OTPDispatchResponse,
    OTPVerifyRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from src.models.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=TokenResponse | OTPDispatchResponse,
    summary="Log in",
    description=(
        "Authenticate with username, e-mail or phone number and a password. "
        "A phone number without a password starts OTP login instead."
    ),
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def login(
    request: Request,
    data: LoginRequest,
    auth_service: AuthSvc,
) -> TokenResponse | OTPDispatchResponse:
    """Log in and receive a session token plus a reference token.

    Args:
        request: HTTP request.
        data: Login request.
        auth_service: Authentication service.

    Returns:
        TokenResponse, or OTPDispatchResponse when an OTP was sent.
    """
    return await auth_service.login(
        username=data.username,
        email=data.email,
        phone_number=data.phone_number,
        password=data.password,
    )


@router.get(
    "/verify",
    response_model=MessageResponse,
    summary="Verify e-mail",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def verify_user(
    request: Request,
    auth_service: AuthSvc,
    email: str | None = Query(default=None),
    token: str | None = Query(default=None),
    otp: str | None = Query(default=None),
) -> MessageResponse:
    """Verify an account with the e-mailed link token or Registration OTP."""
    message = await auth_service.verify_user(email, token=token, otp=otp)
    return MessageResponse(message=message)


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    summary="Complete OTP login",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def verify_login_otp(
    request: Request,
    data: OTPVerifyRequest,
    auth_service: AuthSvc,
) -> TokenResponse:
    return await auth_service.verify_login_otp(data.phone_number, data.otp)


@router.post(
    "/forget-password",
    response_model=ForgetPasswordResponse,
    summary="Request a password reset OTP",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def forget_password(
    request: Request,
    data: ForgetPasswordRequest,
    auth_service: AuthSvc,
) -> ForgetPasswordResponse:
    """E-mail a ForgotPassword OTP to the account's address.

    Args:
        request: HTTP request.
        data: Phone number or e-mail identifying the account.
        auth_service: Authentication service.

    Returns:
        Confirmation with the masked e-mail address.
    """
    return await auth_service.forget_password(data.identifier)


@router.post(
    "/verify-otp-for-reset",
    response_model=MessageResponse,
    summary="Check a password reset OTP",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def verify_reset_otp(
    request: Request,
    data: OTPVerifyRequest,
    auth_service: AuthSvc,
) -> MessageResponse:
    message = await auth_service.verify_reset_otp(data.identifier, data.otp)
    return MessageResponse(message=message)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with an OTP",
)
@limiter.limit(RATE_LIMIT_AUTH, key_func=get_ip_only)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    auth_service: AuthSvc,
) -> MessageResponse:
    message = await auth_service.reset_password(
        data.identifier, data.otp, data.new_password
    )
    return MessageResponse(message=message)


@router.get(
    "/validateReferenceToken",
    response_model=JWTResponse,
    summary="Resolve a reference token",
    description="Exchange a reference token for the session token it maps to.",
)
async def validate_reference_token(
    current_user: AuthenticatedUser,
    auth_service: AuthSvc,
    reference_token: str | None = Query(default=None, alias="referenceToken"),
) -> JWTResponse:
    return await auth_service.validate_reference(reference_token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
    description="Invalidate the caller's reference token.",
)
async def logout(
    data: LogoutRequest,
    current_user: AuthenticatedUser,
    auth_service: AuthSvc,
) -> MessageResponse:
    """Invalidate a reference token owned by the caller.

    Args:
        data: Logout request.
        current_user: Authenticated user.
        auth_service: Authentication service.
    """
    message = await auth_service.logout(current_user.claims, data.reference_token)
    return MessageResponse(message=message)


@router.post(
    "/expert/request-verification",
    response_model=MessageResponse,
    summary="Send an expert verification OTP",
)
async def request_expert_verification(
    current_user: AuthenticatedUser,
    auth_service: AuthSvc,
) -> MessageResponse:
    message = await auth_service.request_expert_verification(current_user.claims)
    return MessageResponse(message=message)


@router.post(
    "/expert/verify",
    response_model=MessageResponse,
    summary="Check an expert verification OTP",
)
async def verify_expert_otp(
    data: ExpertOTPRequest,
    current_user: AuthenticatedUser,
    auth_service: AuthSvc,
) -> MessageResponse:
    message = await auth_service.verify_expert_otp(current_user.claims, data.otp)
    return MessageResponse(message=message)
