"""Email delivery over SMTP.

The account workflow only depends on the ``EmailSender`` protocol. Delivery
is best effort: transport failures are logged and never raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


class EmailSender(Protocol):
    """Anything that can deliver an HTML email."""

    async def send_email(self, to: str, subject: str, body: str) -> None:
        """Send an email.

        :param to: Recipient address
        :param subject: Subject line
        :param body: HTML body
        """


@dataclass
class SmtpSettings:
    """Connection settings for the SMTP relay.

    :param str server: SMTP host; an empty value disables delivery
    :param int port: SMTP port
    :param str username: Login user, skipped when empty
    :param str password: Login password
    :param str from_address: Address placed in the From header
    :param bool use_tls: Upgrade the connection with STARTTLS
    :param int timeout: Socket timeout in seconds
    """

    DEFAULT_PORT = 587
    DEFAULT_TIMEOUT_SECONDS = 10

    server: str = ""
    port: int = DEFAULT_PORT
    username: str = ""
    password: str = ""
    from_address: str = ""
    use_tls: bool = True
    timeout: int = DEFAULT_TIMEOUT_SECONDS

    @property
    def enabled(self) -> bool:
        return bool(self.server and self.from_address)


class SmtpEmailSender:
    """Sends emails through an SMTP relay in a worker thread."""

    def __init__(self, settings: SmtpSettings) -> None:
        self.settings = settings

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        """Build an HTML message with a plain-text fallback."""
        message = EmailMessage()
        message["From"] = self.settings.from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(body, subtype="html")
        return message

    async def send_email(self, to: str, subject: str, body: str) -> None:
        if not self.settings.enabled:
            LOGGER.warning("SMTP is not configured; dropping email to %s", to)
            return

        message = self.build_message(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError):
            LOGGER.exception("Error sending email to %s", to)
            return
        LOGGER.info("Sent email '%s' to %s", subject, to)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(
            self.settings.server,
            self.settings.port,
            timeout=self.settings.timeout,
        ) as smtp:
            if self.settings.use_tls:
                smtp.starttls(context=ssl.create_default_context())
            if self.settings.username:
                smtp.login(self.settings.username, self.settings.password)
            smtp.send_message(message)
