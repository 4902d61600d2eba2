from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from calmanage.core.config import settings
from calmanage.core.exceptions import TransientDispatchFailure

logger = logging.getLogger(__name__)


def _smtp_send(to: str, subject: str, html: str) -> None:
    msg = MIMEText(html, "html", "utf-8")
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM or settings.SMTP_USERNAME
    msg["To"] = to

    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
    try:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(msg["From"], [to], msg.as_string())
    finally:
        server.quit()


def send_email(to: str, subject: str, html: str) -> bool:
    """Send one HTML email. Returns False instead of raising on failure."""
    if not settings.EMAIL_ENABLED or not settings.SMTP_HOST:
        logger.warning(f"Email disabled or SMTP not configured, skipping email to {to}")
        return False

    try:
        _smtp_send(to, subject, html)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error(str(TransientDispatchFailure(to, str(exc))))
        return False

    logger.info(f"Email sent to {to}: {subject}")
    return True
