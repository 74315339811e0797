"""
Magic link email delivery.
"""
import logging
from email.message import EmailMessage
from typing import Optional, Protocol

import aiosmtplib

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send_magic_link(self, email: str, url: str, host: str) -> None:
        ...


def build_magic_link_message(email: str, url: str, host: str, sender: str) -> EmailMessage:
    """
    Build the sign-in email.

    Args:
        email: Recipient address
        url: Magic link callback URL
        host: Site host shown to the user
        sender: From address

    Returns:
        EmailMessage with plain text and HTML parts
    """
    message = EmailMessage()
    message["Subject"] = f"Sign in to {host}"
    message["From"] = sender
    message["To"] = email
    message.set_content(f"Sign in to {host}\n{url}\n\nIf you did not request this email you can safely ignore it.\n")
    message.add_alternative(
        f"""\
<html>
  <body>
    <p>Sign in to <strong>{host}</strong></p>
    <p><a href="{url}">Sign in</a></p>
    <p>If you did not request this email you can safely ignore it.</p>
  </body>
</html>
""",
        subtype="html",
    )
    return message


class SMTPEmailSender:
    """Sends magic links through an SMTP relay."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def send_magic_link(self, email: str, url: str, host: str) -> None:
        settings = self.settings
        message = build_magic_link_message(email, url, host, settings.smtp_from)
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user or None,
            password=(settings.smtp_password or "") if settings.smtp_user else None,
            start_tls=settings.smtp_use_tls,
            timeout=30,
        )
        logger.info("Magic link email sent to %s", email)


class ConsoleEmailSender:
    """Development sender: logs the link instead of mailing it."""

    async def send_magic_link(self, email: str, url: str, host: str) -> None:
        logger.warning("SMTP not configured, magic link for %s on %s: %s", email, host, url)


def get_email_sender(settings: Optional[Settings] = None) -> EmailSender:
    """Pick the SMTP sender when a host is configured."""
    settings = settings or get_settings()
    if settings.smtp_host:
        return SMTPEmailSender(settings)
    return ConsoleEmailSender()
