# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the AgriConnect authentication service.

Settings are Pydantic-based and loaded from environment variables.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from src.core.config.settings import (
    APISettings,
    CentralDatabaseSettings,
    CORSSettings,
    JWTSettings,
    OTPSettings,
    RateLimitSettings,
    RedisSettings,
    ReferenceTokenSettings,
    Settings,
    SMTPSettings,
    TwilioSettings,
    VerificationSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "CentralDatabaseSettings",
    "RedisSettings",
    "JWTSettings",
    "ReferenceTokenSettings",
    "OTPSettings",
    "VerificationSettings",
    "SMTPSettings",
    "TwilioSettings",
    "RateLimitSettings",
    "CORSSettings",
    "APISettings",
]
