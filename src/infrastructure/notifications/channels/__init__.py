# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels for delivering messages.

- EmailChannel: Sends e-mail via SMTP (aiosmtplib)
- SMSChannel: Sends SMS via Twilio

Usage:
    from src.infrastructure.notifications.channels import (
        EmailChannel,
        NotificationPayload,
    )

    email = EmailChannel(settings.smtp)
    result = await email.send(
        NotificationPayload(
            notification_type="otp",
            title="Your verification code",
            message="Your OTP is: 123456 (valid for 5 minutes).",
            recipient_email="farmer@example.com",
        )
    )
"""

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from src.infrastructure.notifications.channels.email import EmailChannel
from src.infrastructure.notifications.channels.sms import SMSChannel

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "SMSChannel",
]
