# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

This package provides the authentication core:
- Session token issuance and validation (TokenCodec)
- Revocable reference tokens (ReferenceTokenService)
- Purpose-scoped one-time codes (OTPLedger)
- Blocked account cache (BlocklistCache)
- Password hashing and policy
- Login, recovery and verification flows (AuthService)

Exports:
    TokenCodec: Session token creation and validation.
    ReferenceTokenService: Reference token wrap / resolve / invalidate.
    OTPLedger: One-time code generation and verification.
    BlocklistCache: Best-effort blocked user id set.
    PasswordHasher: Secure password hashing using bcrypt.
    AuthService: Authentication use cases.
"""

from src.domains.auth.blocklist import BlocklistCache
from src.domains.auth.jwt import (
    RejectedClaims,
    RejectionReason,
    SessionClaims,
    TokenCodec,
    ValidClaims,
)
from src.domains.auth.otp import OTPLedger, OTPPurpose, SQLAlchemyOTPStore
from src.domains.auth.password import PasswordHasher
from src.domains.auth.reference_token import ReferenceTokenService
from src.domains.auth.service import AuthService

__all__ = [
    "AuthService",
    "BlocklistCache",
    "OTPLedger",
    "OTPPurpose",
    "PasswordHasher",
    "ReferenceTokenService",
    "RejectedClaims",
    "RejectionReason",
    "SQLAlchemyOTPStore",
    "SessionClaims",
    "TokenCodec",
    "ValidClaims",
]
