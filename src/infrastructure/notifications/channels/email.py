# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

This channel sends e-mails with aiosmtplib. Each message carries both a
plain text and an HTML part.

Configuration (via SMTPSettings / environment variables):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from html import escape

import aiosmtplib

from src.core.config.settings import SMTPSettings
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email notification channel using async SMTP.

    An incomplete SMTP configuration disables the channel: sends are
    reported as skipped and a warning is logged once.
    """

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email channel.

        Args:
            settings: SMTP configuration.
        """
        super().__init__()
        self._settings = settings
        self._warned = False

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send an e-mail via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.is_configured:
            if not self._warned:
                self.logger.warning(
                    "Email notifications disabled: SMTP_HOST, SMTP_USERNAME, "
                    "SMTP_PASSWORD, or SMTP_FROM_EMAIL not set"
                )
                self._warned = True
            return self.create_skipped_result("Email channel not configured")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        try:
            message = self._build_email_message(payload)
            password = self._settings.password.get_secret_value() if self._settings.password else None

            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=password,
                start_tls=self._settings.use_tls,
            )

            self.logger.info(
                "Email sent to %s: %s",
                payload.recipient_email,
                payload.title,
            )

            return self.create_success_result(
                message_id=message["Message-ID"],
                metadata={"recipient": payload.recipient_email},
            )

        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                payload.recipient_email,
                str(e),
                exc_info=True,
            )
            return self.create_failure_result(
                f"SMTP error: {str(e)}",
                metadata={"recipient": payload.recipient_email},
            )

    def _build_email_message(self, payload: NotificationPayload) -> MIMEMultipart:
        """Build a multipart/alternative message."""
        message = MIMEMultipart("alternative")

        message["From"] = f"{self._settings.from_name} <{self._settings.from_email}>"
        message["To"] = payload.recipient_email
        message["Subject"] = payload.title
        message["Message-ID"] = make_msgid(domain=self._settings.from_email.split("@")[-1])

        message.attach(MIMEText(self._build_plain_text(payload), "plain", "utf-8"))
        message.attach(MIMEText(self._build_html(payload), "html", "utf-8"))

        return message

    def _build_plain_text(self, payload: NotificationPayload) -> str:
        lines = []
        if payload.recipient_name:
            lines.extend([f"Dear {payload.recipient_name},", ""])

        lines.extend([payload.message, ""])

        if payload.action_url:
            action_text = payload.action_label or "Open link"
            lines.extend([f"{action_text}: {payload.action_url}", ""])

        lines.extend([
            "---",
            f"This message was sent by {self._settings.from_name}.",
            "If you did not request it, you can ignore this e-mail.",
        ])

        return "\n".join(lines)

    def _build_html(self, payload: NotificationPayload) -> str:
        title = escape(payload.title)
        message = escape(payload.message).replace("\n", "<br>")
        sender = escape(self._settings.from_name)

        greeting = ""
        if payload.recipient_name:
            greeting = f'<p style="margin: 0 0 16px 0;">Dear {escape(payload.recipient_name)},</p>'

        action_button = ""
        if payload.action_url:
            action_label = escape(payload.action_label or "Open link")
            action_button = f"""
            <div style="margin: 24px 0;">
                <a href="{escape(payload.action_url)}"
                   style="background-color: #2E7D32; color: white;
                          padding: 12px 24px; text-decoration: none;
                          border-radius: 6px; font-weight: 500;">
                    {action_label}
                </a>
            </div>
            """

        html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6;
             color: #1F2937; margin: 0; padding: 0; background-color: #F3F4F6;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background-color: white; border-radius: 8px; padding: 32px;">
            <h1 style="color: #2E7D32; font-size: 22px; margin: 0 0 24px 0;">{title}</h1>
            <div style="font-size: 16px; color: #374151;">
                {greeting}
                <p style="margin: 0 0 16px 0;">{message}</p>
            </div>
            {action_button}
            <div style="border-top: 1px solid #E5E7EB; padding-top: 16px;
                        margin-top: 24px; font-size: 12px; color: #9CA3AF;">
                <p style="margin: 0;">This message was sent by {sender}.</p>
            </div>
        </div>
    </div>
</body>
</html>
        """

        return html.strip()
