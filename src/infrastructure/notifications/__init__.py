# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Outbound notifications for AgriConnect authentication flows.

Key Components:
- NotificationService: renders OTP, verification and password notices
- Channels: EmailChannel (SMTP), SMSChannel (Twilio)

Usage:
    from src.infrastructure.notifications import get_notification_service

    service = get_notification_service(settings)
    result = await service.send_otp("+254700000001", "123456")

Configuration (environment variables):
- SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, SMTP_USE_TLS,
  SMTP_FROM_EMAIL, SMTP_FROM_NAME
- TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER
"""

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
    SMSChannel,
)
from src.infrastructure.notifications.service import (
    NotificationService,
    get_notification_service,
    reset_notification_service,
)

__all__ = [
    # Service
    "NotificationService",
    "get_notification_service",
    "reset_notification_service",
    # Channel types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "SMSChannel",
]
