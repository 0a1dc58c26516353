# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the credential store."""

from src.infrastructure.database.models.account import Account
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.otp import OTPRecord
from src.infrastructure.database.models.verification_token import VerificationToken

__all__ = [
    "Base",
    "TimestampMixin",
    "Account",
    "OTPRecord",
    "VerificationToken",
]
