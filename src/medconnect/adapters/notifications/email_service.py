"""
Outbound doctor mail.

Two backends: ``log`` (default; renders the message and writes it to the
application log, suitable for development and tests) and ``smtp`` (delivers
through a configured relay). Templates are plain text with ``{Name}`` and
``{Link}`` placeholders.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, Optional, Tuple

from medconnect.application.ports.services.notification_service import NotificationService
from medconnect.core.config import MailSettings, get_settings
from medconnect.core.exceptions import NotificationError

logger = logging.getLogger(__name__)

# template name -> (subject, body)
TEMPLATES: Dict[str, Tuple[str, str]] = {
    "welcomeMail": (
        "Welcome to MedConnect - Doctor Portal",
        "Hello {Name},\n\n"
        "Welcome to MedConnect. Your doctor account has been created.\n"
        "Verify your email address to start using the portal:\n{Link}\n",
    ),
    "verificationLinkMail": (
        "Verify Your Doctor Account",
        "Hello {Name},\n\n"
        "Please confirm your email address by opening the link below:\n{Link}\n\n"
        "If you did not create a MedConnect account you can ignore this message.\n",
    ),
    "forgotPasswordMail": (
        "Reset Your Password",
        "Hello {Name},\n\n"
        "We received a request to reset your password. Use the link below to choose a new one:\n"
        "{Link}\n\nThe link expires shortly. If you did not ask for a reset, no action is needed.\n",
    ),
    "sessionBookedMail": (
        "Your Session Is Booked",
        "Hello {Name},\n\nYour session has been booked. Join here at the scheduled time:\n{Link}\n",
    ),
    "sessionCancelledMail": (
        "Your Session Was Cancelled",
        "Hello {Name},\n\nYour session has been cancelled by the doctor.\n{Link}\n",
    ),
}


def render_template(template: str, variables: Dict[str, str]) -> Tuple[str, str]:
    """Return ``(subject, body)`` for ``template``."""
    if template not in TEMPLATES:
        raise NotificationError(f"Unknown mail template: {template}")
    subject, body = TEMPLATES[template]
    values = {"Name": "", "Link": "", **variables}
    return subject, body.format(**values)


class LoggingEmailService(NotificationService):
    """Renders mail and logs it instead of sending."""

    def __init__(self, settings: Optional[MailSettings] = None):
        self._settings = settings or get_settings().mail

    async def send(self, template: str, recipient: str, variables: Dict[str, str]) -> None:
        subject, body = render_template(template, variables)
        logger.info(
            f"📧 [{template}] to={recipient} subject={subject!r}",
            extra={"extra_data": {"template": template, "recipient": recipient, "body": body}},
        )


class SmtpEmailService(NotificationService):
    """Delivers mail through an SMTP relay."""

    def __init__(self, settings: Optional[MailSettings] = None):
        self._settings = settings or get_settings().mail

    def _build_message(self, template: str, recipient: str, variables: Dict[str, str]) -> EmailMessage:
        subject, body = render_template(template, variables)
        message = EmailMessage()
        message["From"] = self._settings.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        s = self._settings
        with smtplib.SMTP(s.host, s.port, timeout=s.timeout_seconds) as smtp:
            if s.use_tls:
                smtp.starttls()
            if s.username:
                smtp.login(s.username, s.password)
            smtp.send_message(message)

    async def send(self, template: str, recipient: str, variables: Dict[str, str]) -> None:
        message = self._build_message(template, recipient, variables)
        try:
            # smtplib is blocking; keep it off the event loop.
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"Failed to deliver {template} to {recipient}",
                details={"template": template, "recipient": recipient},
                cause=e,
            ) from e
        logger.info(f"✅ Sent {template} to {recipient}")


def create_notification_service(settings: Optional[MailSettings] = None) -> NotificationService:
    """Pick the mail backend configured by ``MAIL_BACKEND``."""
    settings = settings or get_settings().mail
    if settings.backend == "smtp":
        return SmtpEmailService(settings)
    return LoggingEmailService(settings)
