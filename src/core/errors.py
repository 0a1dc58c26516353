# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed application errors.

Use-case code raises AppError subclasses carrying an HTTP-equivalent status
and a client-safe message. The API layer renders them uniformly as
``{"error": message}``.

Example:
    >>> raise NotFoundError("User not found")
"""

from fastapi import status


class AppError(Exception):
    """Application error with an HTTP-equivalent status.

    Attributes:
        status_code: HTTP status code to render.
        message: Client-safe error description.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize the application error.

        Args:
            message: Client-safe error description.
            status_code: Overrides the class default status when given.
        """
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class InvalidInputError(AppError):
    """Malformed request, password policy failure, or bad identifier shape."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthenticatedError(AppError):
    """Missing, invalid, or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    """Role or ownership mismatch, or a blocked/deleted account."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Unknown identifier."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Duplicate registration field."""

    status_code = status.HTTP_409_CONFLICT


class UnavailableError(AppError):
    """A downstream store, cache, or transport failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
