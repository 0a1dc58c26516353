# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Session token creation and validation.

Session tokens are HS256-signed JWTs (python-jose) carrying a snapshot of
the account: username as the subject plus numeric id, full name, status,
verification status and role. The signing key comes from configuration, so
tokens survive restarts and every replica verifies the same signatures.

Claims are decoded once into a typed SessionClaims value. validate() never
raises: malformed or unexpected claim values come back as a RejectedClaims
data case so the authorization middleware can branch on them.

Example:
    >>> from src.core.config import get_settings
    >>> codec = TokenCodec(get_settings().jwt)
    >>> issued = codec.issue("amina", 42, "Amina Yusuf", AccountStatus.ACTIVE,
    ...                      VerificationStatus.VERIFIED, AccountRole.FARMER)
    >>> result = codec.validate(issued.token)
    >>> result.claims.user_id
    42
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, TypeVar, Union

from jose import JWTError as JoseJWTError
from jose import jwt

from src.core.config.settings import JWTSettings
from src.models.common import AccountRole, AccountStatus, VerificationStatus
from src.utils.datetime import Clock, utc_from_timestamp, utc_now

logger = logging.getLogger(__name__)

# Claim names on the wire
CLAIM_SUBJECT = "sub"
CLAIM_USER_ID = "userId"
CLAIM_FULL_NAME = "fullName"
CLAIM_STATUS = "status"
CLAIM_VERIFICATION = "verificationStatus"
CLAIM_ROLE = "role"
CLAIM_ISSUED_AT = "iat"
CLAIM_EXPIRES_AT = "exp"

E = TypeVar("E", bound=Enum)


class JWTError(Exception):
    """Base exception for session token operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is malformed or its signature does not verify."""

    pass


class RejectionReason(str, Enum):
    """Why a token failed validation."""

    EXPIRED = "expired"
    INVALID_TOKEN = "invalid_token"
    MALFORMED_CLAIMS = "malformed_claims"


@dataclass(frozen=True)
class SessionClaims:
    """Typed snapshot of the account carried by a session token.

    Attributes:
        subject: Username.
        user_id: Numeric account id.
        full_name: Display name.
        status: Account status at issuance.
        verification: Verification status at issuance.
        role: Account role at issuance.
        issued_at: Issuance time (UTC).
        expires_at: Expiry time (UTC).
    """

    subject: str
    user_id: int
    full_name: str
    status: AccountStatus
    verification: VerificationStatus
    role: AccountRole
    issued_at: datetime
    expires_at: datetime

    @property
    def is_active_and_verified(self) -> bool:
        """Whether the snapshot allows access to protected routes."""
        return (
            self.status is AccountStatus.ACTIVE
            and self.verification is VerificationStatus.VERIFIED
        )


@dataclass(frozen=True)
class ValidClaims:
    """Successful validation result."""

    claims: SessionClaims
    ok: bool = True


@dataclass(frozen=True)
class RejectedClaims:
    """Failed validation result.

    Attributes:
        reason: Category of failure.
        detail: Log-only description, never sent to clients.
    """

    reason: RejectionReason
    detail: str = ""
    ok: bool = False


ClaimParseResult = Union[ValidClaims, RejectedClaims]


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed session token and its expiry."""

    token: str
    expires_at: datetime


def _parse_enum(enum_cls: type[E], raw: Any) -> E | None:
    """Look up an enum member by value without raising."""
    if not isinstance(raw, str):
        return None
    return {member.value: member for member in enum_cls}.get(raw)


def parse_claims(payload: dict[str, Any]) -> ClaimParseResult:
    """Convert a verified JWT payload into typed claims.

    Every claim is required. Unknown status, verification or role strings
    reject the token instead of falling back to a default.

    Args:
        payload: Decoded JWT payload (signature already verified).

    Returns:
        ValidClaims or RejectedClaims with reason MALFORMED_CLAIMS.
    """
    subject = payload.get(CLAIM_SUBJECT)
    if not isinstance(subject, str) or not subject:
        return RejectedClaims(RejectionReason.MALFORMED_CLAIMS, "missing subject")

    user_id = payload.get(CLAIM_USER_ID)
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        return RejectedClaims(RejectionReason.MALFORMED_CLAIMS, "missing or non-integer userId")

    full_name = payload.get(CLAIM_FULL_NAME)
    if not isinstance(full_name, str):
        return RejectedClaims(RejectionReason.MALFORMED_CLAIMS, "missing fullName")

    status = _parse_enum(AccountStatus, payload.get(CLAIM_STATUS))
    verification = _parse_enum(VerificationStatus, payload.get(CLAIM_VERIFICATION))
    role = _parse_enum(AccountRole, payload.get(CLAIM_ROLE))
    if status is None or verification is None or role is None:
        return RejectedClaims(
            RejectionReason.MALFORMED_CLAIMS,
            "unexpected status, verification status or role",
        )

    issued_at = payload.get(CLAIM_ISSUED_AT)
    expires_at = payload.get(CLAIM_EXPIRES_AT)
    if not isinstance(issued_at, (int, float)) or not isinstance(expires_at, (int, float)):
        return RejectedClaims(RejectionReason.MALFORMED_CLAIMS, "missing iat or exp")

    return ValidClaims(
        SessionClaims(
            subject=subject,
            user_id=user_id,
            full_name=full_name,
            status=status,
            verification=verification,
            role=role,
            issued_at=utc_from_timestamp(issued_at),
            expires_at=utc_from_timestamp(expires_at),
        )
    )


class TokenCodec:
    """Signs and verifies session tokens.

    Expiry is checked against the codec's clock rather than python-jose's
    wall clock so tests can move time deterministically. A token is valid up
    to and including its exp second.

    Attributes:
        _settings: JWT configuration settings.
        _clock: Source of the current UTC time.
    """

    def __init__(self, settings: JWTSettings, clock: Clock = utc_now) -> None:
        """Initialize the codec.

        Args:
            settings: JWT configuration settings.
            clock: Callable returning the current UTC time.
        """
        self._settings = settings
        self._clock = clock

    @property
    def lifetime(self) -> timedelta:
        """Configured session token lifetime."""
        return timedelta(minutes=self._settings.expire_minutes)

    def issue(
        self,
        subject: str,
        user_id: int,
        full_name: str,
        status: AccountStatus,
        verification: VerificationStatus,
        role: AccountRole,
    ) -> IssuedToken:
        """Create a signed session token.

        Args:
            subject: Username.
            user_id: Numeric account id.
            full_name: Display name.
            status: Current account status.
            verification: Current verification status.
            role: Current role.

        Returns:
            IssuedToken with the compact JWT and its expiry.
        """
        now = self._clock()
        issued_at = int(now.timestamp())
        expires_at = issued_at + int(self.lifetime.total_seconds())

        payload = {
            CLAIM_SUBJECT: subject,
            CLAIM_USER_ID: user_id,
            CLAIM_FULL_NAME: full_name,
            CLAIM_STATUS: status.value,
            CLAIM_VERIFICATION: verification.value,
            CLAIM_ROLE: role.value,
            CLAIM_ISSUED_AT: issued_at,
            CLAIM_EXPIRES_AT: expires_at,
        }

        token = jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )
        return IssuedToken(token=token, expires_at=utc_from_timestamp(expires_at))

    def decode(self, token: str) -> dict[str, Any]:
        """Verify the signature and expiry and return the raw payload.

        Args:
            token: Compact JWT string.

        Returns:
            The decoded payload.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed or tampered with.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
                options={"verify_exp": False},
            )
        except JoseJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        exp = payload.get(CLAIM_EXPIRES_AT)
        if not isinstance(exp, (int, float)):
            raise InvalidTokenError("Invalid token: missing exp claim")
        if self._clock().timestamp() > exp:
            raise TokenExpiredError("Token has expired")

        return payload

    def validate(self, token: str) -> ClaimParseResult:
        """Validate a token and decode its claims without raising.

        Args:
            token: Compact JWT string.

        Returns:
            ValidClaims on success, otherwise RejectedClaims.
        """
        if not token:
            return RejectedClaims(RejectionReason.INVALID_TOKEN, "empty token")

        try:
            payload = self.decode(token)
        except TokenExpiredError as e:
            return RejectedClaims(RejectionReason.EXPIRED, str(e))
        except InvalidTokenError as e:
            logger.debug("Token validation failed: %s", e)
            return RejectedClaims(RejectionReason.INVALID_TOKEN, str(e))

        return parse_claims(payload)

    def is_valid(self, token: str) -> bool:
        """Check whether a token validates with well-formed claims."""
        return self.validate(token).ok
