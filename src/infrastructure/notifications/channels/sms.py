# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SMS notification channel using the Twilio REST API.

The Twilio client is synchronous, so each send runs in a worker thread to
keep the event loop free.

Configuration (via TwilioSettings / environment variables):
- TWILIO_ACCOUNT_SID
- TWILIO_AUTH_TOKEN
- TWILIO_FROM_NUMBER
"""

import asyncio

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from src.core.config.settings import TwilioSettings
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class SMSChannel(BaseChannel):
    """SMS channel backed by Twilio."""

    def __init__(self, settings: TwilioSettings, client: TwilioClient | None = None) -> None:
        """Initialize the SMS channel.

        Args:
            settings: Twilio configuration.
            client: Pre-built Twilio client; created lazily when omitted.
        """
        super().__init__()
        self._settings = settings
        self._client = client
        self._warned = False

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.SMS

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self._settings.is_configured

    def _get_client(self) -> TwilioClient:
        if self._client is None:
            self._client = TwilioClient(
                self._settings.account_sid,
                self._settings.auth_token.get_secret_value(),
            )
        return self._client

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send an SMS.

        Args:
            payload: The notification payload; only message and
                recipient_phone are used.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.is_configured:
            if not self._warned:
                self.logger.warning(
                    "SMS notifications disabled: TWILIO_ACCOUNT_SID, "
                    "TWILIO_AUTH_TOKEN, or TWILIO_FROM_NUMBER not set"
                )
                self._warned = True
            return self.create_skipped_result("SMS channel not configured")

        if not payload.recipient_phone:
            return self.create_skipped_result("No recipient phone number")

        try:
            client = self._get_client()
            message = await asyncio.to_thread(
                client.messages.create,
                to=payload.recipient_phone,
                from_=self._settings.from_number,
                body=payload.message,
            )
        except TwilioException as e:
            self.logger.error(
                "Failed to send SMS to %s: %s",
                payload.recipient_phone,
                str(e),
            )
            return self.create_failure_result(
                f"Twilio error: {str(e)}",
                metadata={"recipient": payload.recipient_phone},
            )

        self.logger.info("SMS sent to %s (sid=%s)", payload.recipient_phone, message.sid)
        return self.create_success_result(
            message_id=message.sid,
            metadata={"recipient": payload.recipient_phone},
        )
