# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User domain package.

This package provides account management functionality:
- AccountRepository: credential store access
- AccountService: registration and self-service account changes
- ModerationService: admin block / unblock

Example:
    >>> from src.domains.user import AccountRepository, ModerationService
    >>> service = ModerationService(AccountRepository(db), blocklist)
    >>> await service.block(42, "Hard")
"""

from src.domains.user.moderation import BlockMode, ModerationService
from src.domains.user.repository import AccountRepository
from src.domains.user.service import AccountService

__all__ = [
    "AccountRepository",
    "AccountService",
    "BlockMode",
    "ModerationService",
]
