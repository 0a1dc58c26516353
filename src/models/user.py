# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for account and moderation endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.models.common import AccountRole

_CAMEL = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RegisterRequest(BaseModel):
    """New account registration."""

    model_config = _CAMEL

    username: str = Field(min_length=3, max_length=100)
    full_name: str = Field(alias="fullName", min_length=1, max_length=255)
    email: EmailStr
    phone_number: str = Field(alias="phoneNumber", min_length=6, max_length=32)
    password: str = Field(max_length=128)
    role: AccountRole = AccountRole.FARMER

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: AccountRole) -> AccountRole:
        """Admins cannot self-register."""
        if v is AccountRole.ADMIN:
            raise ValueError("Role must be FARMER or EXPERT")
        return v


class RegisterResponse(BaseModel):
    model_config = _CAMEL

    message: str
    user_id: int = Field(alias="userId")


class AccountResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int = Field(serialization_alias="userId")
    username: str
    full_name: str = Field(serialization_alias="fullName")
    email: str
    phone_number: str = Field(serialization_alias="phoneNumber")
    status: str
    verification_status: str = Field(serialization_alias="verificationStatus")
    role: str
    created_at: datetime = Field(serialization_alias="createdAt")


class ChangePasswordRequest(BaseModel):
    model_config = _CAMEL

    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword", max_length=128)
    confirm_password: str | None = Field(default=None, alias="confirmPassword")


class ConfirmPasswordRequest(BaseModel):
    """Password confirmation for deactivate and delete."""

    model_config = _CAMEL

    confirm_password: str | None = Field(default=None, alias="confirmPassword")


class ReactivateRequest(BaseModel):
    model_config = _CAMEL

    email: str | None = None
    password: str | None = None


class BlockRequest(BaseModel):
    """Admin block; mode is Hard (store + cache) or Soft (cache only)."""

    model_config = _CAMEL

    user_id: int = Field(alias="userId")
    mode: str = "Hard"


class UnblockRequest(BaseModel):
    model_config = _CAMEL

    user_id: int = Field(alias="userId")


class BlockedCheckResponse(BaseModel):
    model_config = _CAMEL

    user_id: int = Field(alias="userId")
    is_blocked_in_cache: bool = Field(alias="isBlockedInCache")
    database_status: str = Field(alias="databaseStatus")


class BlockedSummaryResponse(BaseModel):
    model_config = _CAMEL

    count: int
    blocked_users: list[int] = Field(alias="blockedUsers")
