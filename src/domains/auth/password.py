# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Password hashing and password policy.

Hashing uses the bcrypt library directly. The policy requires at least 8
characters with an uppercase letter, a lowercase letter, a digit and one
of @$!%*?&, and reports the first rule a password breaks.

Example:
    >>> hasher = PasswordHasher()
    >>> hashed = hasher.hash("my_password")
    >>> hasher.verify("my_password", hashed)
    True
"""

import logging
import re

import bcrypt

from src.core.errors import InvalidInputError

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Secure password hashing using bcrypt.

    Uses bcrypt for secure password hashing with automatic salt generation.
    The default rounds value of 12 provides a good balance between security
    and performance.

    Attributes:
        _rounds: Number of bcrypt rounds for hashing.

    Example:
        >>> hasher = PasswordHasher()
        >>> hashed = hasher.hash("secure_password")
        >>> hasher.verify("secure_password", hashed)
        True
        >>> hasher.verify("wrong_password", hashed)
        False
    """

    def __init__(self, rounds: int = 12) -> None:
        """Initialize the password hasher.

        Args:
            rounds: Number of bcrypt rounds. Higher is more secure but slower.
                   Default is 12 which takes ~250ms on modern hardware.
        """
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password to hash.

        Returns:
            Bcrypt hash string with salt embedded.

        Raises:
            ValueError: If password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        salt = bcrypt.gensalt(rounds=self._rounds)
        hashed = bcrypt.hashpw(_encode(password), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password to verify.
            password_hash: Bcrypt hash to verify against.

        Returns:
            True if password matches the hash, False otherwise.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(
                _encode(password),
                password_hash.encode("utf-8"),
            )
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False


PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"
PASSWORD_MIN_LENGTH = 8

_POLICY_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
    (
        re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARACTERS)}]"),
        "Password must contain at least one special character (@, $, !, %, *, ?, &)",
    ),
)


def password_policy_error(password: str | None) -> str | None:
    """Return the first policy rule a password breaks, or None if it passes."""
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"

    for pattern, message in _POLICY_RULES:
        if not pattern.search(password):
            return message
    return None


def validate_password_policy(password: str | None) -> None:
    """Enforce the password policy.

    Raises:
        InvalidInputError: With the message of the first failed rule.
    """
    error = password_policy_error(password)
    if error is not None:
        raise InvalidInputError(error)
