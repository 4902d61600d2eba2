"""Celery tasks for outgoing email."""

from __future__ import annotations

import logging

from calmanage.celery_app import celery_app
from calmanage.services.mailer import send_email

logger = logging.getLogger(__name__)


@celery_app.task(name="calmanage.tasks.notifications.send_email_task", max_retries=0)
def send_email_task(to: str, subject: str, html: str) -> dict:
    """
    Deliver one email. Failures are logged by the mailer and never retried.

    Args:
        to: Recipient address
        subject: Email subject
        html: Rendered HTML body

    Returns:
        dict: Delivery result for the recipient
    """
    sent = send_email(to, subject, html)
    if not sent:
        logger.warning(f"Email to {to} was not delivered: {subject}")
    return {"success": sent, "to": to}
