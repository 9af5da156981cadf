"""
Outgoing email.

Mail goes out over SMTP with STARTTLS. Without SMTP_SERVER configured the
app runs with a mailer that refuses to send, so features that depend on
email report 503 instead of failing silently.
"""
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from fitmate.core.config import settings
from fitmate.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

MAIL_NOT_CONFIGURED = "Email service is not configured"
MAIL_FAILED = "Failed to send email"


class Mailer:
    """Interface for sending plain-text email."""

    configured: bool = True

    async def send(self, *, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class SmtpMailer(Mailer):
    def __init__(
        self,
        server: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = settings.MAIL_FROM,
    ):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.server, self.port, timeout=30) as server:
            server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)

    async def send(self, *, to: str, subject: str, body: str) -> None:
        """Send one message.

        Raises:
            ServiceUnavailableError: If the SMTP exchange fails
        """
        message = self.build_message(to, subject, body)
        try:
            # smtplib blocks, keep it off the event loop
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Sending mail to {to} failed: {str(e)}")
            raise ServiceUnavailableError(MAIL_FAILED) from e
        logger.info(f"Mail '{subject}' sent to {to}")


class DisabledMailer(Mailer):
    configured = False

    async def send(self, *, to: str, subject: str, body: str) -> None:
        raise ServiceUnavailableError(MAIL_NOT_CONFIGURED)


def get_mailer() -> Mailer:
    """Dependency returning the mailer for the current settings."""
    if not settings.SMTP_SERVER:
        return DisabledMailer()
    return SmtpMailer(
        settings.SMTP_SERVER,
        settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        sender=settings.MAIL_FROM,
    )
