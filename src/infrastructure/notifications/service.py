# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for account messages.

Renders the messages sent during authentication flows and routes them to
the right channel: e-mail identifiers go through SMTP, everything else is
treated as a phone number and goes through SMS.
"""

import logging

from src.core.config.settings import Settings
from src.infrastructure.notifications.channels import (
    ChannelResult,
    EmailChannel,
    NotificationPayload,
    SMSChannel,
)

logger = logging.getLogger(__name__)

OTP_MESSAGE = "Your OTP is: {code} (valid for {minutes} minutes)."


class NotificationService:
    """Sends OTPs, verification links and account notices.

    Channel results are returned as-is; callers decide whether a failed
    delivery should abort the request.
    """

    def __init__(
        self,
        email_channel: EmailChannel,
        sms_channel: SMSChannel,
        otp_expire_minutes: int = 5,
    ) -> None:
        self._email = email_channel
        self._sms = sms_channel
        self._otp_expire_minutes = otp_expire_minutes

    async def send_otp(self, identifier: str, code: str) -> ChannelResult:
        """Deliver a one-time code by e-mail or SMS.

        Args:
            identifier: E-mail address or phone number.
            code: The one-time code.

        Returns:
            Result from the channel that handled the identifier.
        """
        text = OTP_MESSAGE.format(code=code, minutes=self._otp_expire_minutes)

        if "@" in identifier:
            payload = NotificationPayload(
                notification_type="otp",
                title="Your AgriConnect verification code",
                message=text,
                recipient_email=identifier,
            )
            return await self._email.send(payload)

        payload = NotificationPayload(
            notification_type="otp",
            title="OTP",
            message=text,
            recipient_phone=identifier,
        )
        return await self._sms.send(payload)

    async def send_verification_link(
        self,
        email: str,
        full_name: str,
        link: str,
        code: str,
    ) -> ChannelResult:
        """Send the account verification e-mail with a link and an OTP."""
        message = (
            "Thank you for registering with AgriConnect.\n"
            "Please verify your e-mail address using the link below, or enter "
            f"this code in the app: {code}\n"
            "The link expires in 1 hour and the code in "
            f"{self._otp_expire_minutes} minutes."
        )
        payload = NotificationPayload(
            notification_type="verification_link",
            title="Verify your AgriConnect account",
            message=message,
            recipient_email=email,
            recipient_name=full_name,
            action_url=link,
            action_label="Verify account",
        )
        return await self._email.send(payload)

    async def send_password_update_confirmation(
        self,
        email: str,
        full_name: str,
    ) -> ChannelResult:
        """Tell the account owner their password changed."""
        payload = NotificationPayload(
            notification_type="password_updated",
            title="Your AgriConnect password was changed",
            message=(
                "Your password was updated successfully. If you did not make "
                "this change, reset your password immediately and contact support."
            ),
            recipient_email=email,
            recipient_name=full_name,
        )
        return await self._email.send(payload)


_service_instance: NotificationService | None = None


def get_notification_service(settings: Settings) -> NotificationService:
    """Get or create the notification service singleton.

    Args:
        settings: Application settings.

    Returns:
        NotificationService instance.
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = NotificationService(
            EmailChannel(settings.smtp),
            SMSChannel(settings.twilio),
            otp_expire_minutes=settings.otp.expire_minutes,
        )
    return _service_instance


def reset_notification_service() -> None:
    """Drop the singleton (used by tests and on shutdown)."""
    global _service_instance
    _service_instance = None
