"""Fire-and-forget notification scheduling for handlers."""

from typing import Any, Optional

from fastapi import BackgroundTasks

from accountkit.services import MailType, Notifier


async def _send_quietly(
    notifier: Notifier,
    log,
    mail_type: MailType,
    to: str,
    data: Any,
    user_settings: Optional[dict],
    domain: Optional[str],
) -> None:
    try:
        await notifier.send_email(mail_type, to, data, user_settings, domain)
    except Exception as e:
        log.error("notification %s to %s failed: %s", mail_type.value, to, e)


def schedule_email(
    background: BackgroundTasks,
    notifier: Notifier,
    log,
    mail_type: MailType,
    to: str,
    data: Any = None,
    user_settings: Optional[dict] = None,
    domain: Optional[str] = None,
) -> None:
    """Queue an email to go out after the response is sent."""
    background.add_task(_send_quietly, notifier, log, mail_type, to, data, user_settings, domain)
