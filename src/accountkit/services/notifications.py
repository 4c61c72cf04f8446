"""Email notification service.

Sends templated emails for signup, welcome, login alerts and password
resets over SMTP. Delivery is best effort: failures are logged and reported
as ``False``, never raised. Collaborators start sends with ``send_later`` so a
response never waits on SMTP.
"""

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Optional

from accountkit.config import Settings, get_settings
from accountkit.services.base import MailType, Notifier

logger = logging.getLogger(__name__)

# Strong references to in-flight sends so they are not garbage collected
_pending_sends: set[asyncio.Task] = set()


def send_later(notifier: Notifier, mail_type: MailType, to: str, *args: Any) -> asyncio.Task:
    """Start an email send on the running loop without waiting for it.

    Failures are logged when the task finishes; the caller never sees them.
    """
    task = asyncio.create_task(notifier.send_email(mail_type, to, *args))
    _pending_sends.add(task)
    task.add_done_callback(lambda done: _finish_send(done, mail_type, to))
    return task


def _finish_send(task: asyncio.Task, mail_type: MailType, to: str) -> None:
    _pending_sends.discard(task)
    if task.cancelled():
        logger.warning("Cancelled %s email to %s", mail_type.value, to)
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background %s email to %s failed: %s", mail_type.value, to, exc)


async def wait_for_pending_sends() -> None:
    """Wait for every email started with ``send_later`` to finish."""
    if _pending_sends:
        await asyncio.gather(*list(_pending_sends), return_exceptions=True)


def render(mail_type: MailType, data: Any, domain: str, api_name: str) -> tuple[str, str]:
    """Build (subject, body) for a mail type."""
    if mail_type == MailType.SIGNUP:
        link = f"{domain}/verify?verification_code={data}"
        return (
            f"{api_name} Sign Up",
            f"Thank you for signing up to {api_name}.\n\n"
            f"Confirm your email by following this link:\n{link}\n",
        )
    if mail_type == MailType.WELCOME:
        return (
            f"Welcome to {api_name}",
            f"Your email has been verified. You can now log in at {domain}/login\n",
        )
    if mail_type == MailType.LOGIN:
        data = data or {}
        return (
            f"{api_name} Login",
            "A new login to your account was detected.\n\n"
            f"Time: {data.get('time')}\n"
            f"IP: {data.get('ip')}\n"
            f"Device: {data.get('device')}\n\n"
            "If this was not you, reset your password immediately.\n",
        )
    if mail_type == MailType.RESET_PASSWORD:
        data = data or {}
        link = f"{domain}/reset-password/{data.get('code')}"
        return (
            f"{api_name} Reset Password Request",
            "A password reset was requested for your account"
            f" from IP {data.get('ip')}.\n\n"
            f"Follow this link to choose a new password:\n{link}\n\n"
            "If you did not request it, ignore this email.\n",
        )
    raise ValueError(f"Unknown mail type: {mail_type}")


class MailNotifier(Notifier):
    """SMTP-backed notifier."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def send_email(
        self,
        mail_type: MailType,
        to: str,
        data: Any = None,
        user_settings: Optional[dict] = None,
        domain: Optional[str] = None,
    ) -> bool:
        """Send an email.

        Args:
            mail_type: Template to render
            to: Recipient address
            data: Template payload (code, login details, ...)
            user_settings: Recipient's settings; login alerts are skipped when
                ``notification.login_email`` is False
            domain: Web origin used for links (defaults to config)

        Returns:
            True if the message was handed to the SMTP server
        """
        if not self.settings.smtp_configured:
            logger.warning("SMTP not configured - skipping %s email to %s", mail_type.value, to)
            return False

        notification = (user_settings or {}).get("notification") or {}
        if mail_type == MailType.LOGIN and notification.get("login_email") is False:
            logger.debug("Login alerts disabled for %s", to)
            return False

        try:
            subject, body = render(
                mail_type,
                data,
                domain or self.settings.default_domain,
                self.settings.api_name,
            )
            await asyncio.to_thread(self._deliver, to, subject, body)
            logger.info("Sent %s email to %s", mail_type.value, to)
            return True
        except Exception as e:
            logger.error("Failed to send %s email to %s: %s", mail_type.value, to, e)
            return False

    def _deliver(self, to: str, subject: str, body: str) -> None:
        settings = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.smtp_from
        msg["To"] = to
        msg.attach(MIMEText(body, "plain", "utf-8"))

        if settings.smtp_port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=10) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to], msg.as_string())
