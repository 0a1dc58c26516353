# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for /auth endpoints.

Wire names are camelCase (phoneNumber, jwtToken, ...); Python attributes
are snake_case and either form is accepted on input.
"""

from pydantic import BaseModel, ConfigDict, Field

_CAMEL = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class LoginRequest(BaseModel):
    """Password or OTP login.

    Send one of username, email or phoneNumber with a password. Sending only
    phoneNumber starts the OTP login flow.
    """

    model_config = _CAMEL

    username: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, alias="phoneNumber", max_length=32)
    password: str | None = Field(default=None, max_length=128)


class TokenResponse(BaseModel):
    """Session token and its reference handle."""

    model_config = _CAMEL

    jwt_token: str = Field(alias="jwtToken")
    reference_token: str = Field(alias="referenceToken")


class JWTResponse(BaseModel):
    """Session token resolved from a reference token."""

    model_config = _CAMEL

    jwt_token: str = Field(alias="jwtToken")


class OTPDispatchResponse(BaseModel):
    """Returned when a login OTP was sent by SMS."""

    model_config = _CAMEL

    message: str
    phone_number: str = Field(alias="phoneNumber", description="Masked phone number")
    verification_url: str = Field(alias="verificationUrl")


class OTPVerifyRequest(BaseModel):
    """A one-time code addressed by phone number or e-mail."""

    model_config = _CAMEL

    phone_number: str | None = Field(default=None, alias="phoneNumber")
    email: str | None = None
    otp: str | None = None

    @property
    def identifier(self) -> str | None:
        return self.phone_number or self.email


class ForgetPasswordRequest(BaseModel):
    model_config = _CAMEL

    phone_number: str | None = Field(default=None, alias="phoneNumber")
    email: str | None = None

    @property
    def identifier(self) -> str | None:
        return self.phone_number or self.email


class ForgetPasswordResponse(BaseModel):
    model_config = _CAMEL

    message: str
    email: str = Field(description="Masked e-mail the code was sent to")


class ResetPasswordRequest(BaseModel):
    """New password, proven by a ForgotPassword OTP."""

    model_config = _CAMEL

    phone_number: str | None = Field(default=None, alias="phoneNumber")
    email: str | None = None
    otp: str | None = None
    new_password: str | None = Field(default=None, alias="newPassword", max_length=128)

    @property
    def identifier(self) -> str | None:
        return self.phone_number or self.email


class LogoutRequest(BaseModel):
    model_config = _CAMEL

    reference_token: str | None = Field(default=None, alias="referenceToken")


class ExpertOTPRequest(BaseModel):
    """ExpertVerification code for the signed-in account."""

    otp: str | None = None
