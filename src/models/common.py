# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and response models.

The enum values are the wire values carried in session token claims and
stored in the credential store.
"""

from enum import Enum

from pydantic import BaseModel, Field


class AccountStatus(str, Enum):
    """Account lifecycle status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DELETED = "Deleted"
    BLOCKED = "Blocked"


class VerificationStatus(str, Enum):
    """Account verification status."""

    VERIFIED = "Verified"
    PENDING = "Pending"
    REJECTED = "Rejected"


class AccountRole(str, Enum):
    """Account role."""

    FARMER = "FARMER"
    EXPERT = "EXPERT"
    ADMIN = "ADMIN"


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str = Field(description="Human-readable result")


class ErrorResponse(BaseModel):
    """Uniform error body."""

    error: str = Field(description="Error description")
