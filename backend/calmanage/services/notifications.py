"""Audience computation and best-effort email fan-out."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional
from uuid import UUID

from sqlmodel import Session, select

from calmanage.core.celery_utils import safe_celery_delay
from calmanage.core.exceptions import TransientDispatchFailure
from calmanage.models import Calendar, CalendarShare, Notification, ShareStatus, User

logger = logging.getLogger(__name__)

EmailEnqueue = Callable[[str, str, str], Any]


def get_calendar_audience(session: Session, calendar: Calendar) -> List[UUID]:
    """
    Owner plus every user with an accepted share, owner first.

    Recomputed on every call; share status changes take effect immediately.
    """
    shared_user_ids = session.exec(
        select(CalendarShare.user_id).where(
            CalendarShare.calendar_id == calendar.id,
            CalendarShare.status == ShareStatus.ACCEPTED,
        )
    ).all()

    audience: List[UUID] = [calendar.owner_id]
    for user_id in shared_user_ids:
        if user_id not in audience:
            audience.append(user_id)
    return audience


def create_notification(
    session: Session,
    user_id: UUID,
    type: str,
    message: str,
    related_id: UUID | None = None,
) -> Notification:
    """Stage an in-app notification for a user."""
    notification = Notification(
        user_id=user_id,
        type=type,
        message=message,
        related_id=related_id,
    )
    session.add(notification)
    return notification


def _enqueue_email_task(to: str, subject: str, html: str) -> Any:
    from calmanage.tasks.notifications import send_email_task

    return safe_celery_delay(send_email_task, to, subject, html)


class NotificationDispatcher:
    """Resolves email recipients and hands each email off without waiting."""

    def __init__(self, enqueue: Optional[EmailEnqueue] = None) -> None:
        self._enqueue = enqueue or _enqueue_email_task

    def recipient_set(self, session: Session, calendar: Calendar) -> List[str]:
        audience = get_calendar_audience(session, calendar)
        users = session.exec(select(User).where(User.id.in_(audience))).all()
        by_id = {user.id: user for user in users}

        recipients: List[str] = []
        for user_id in audience:
            user = by_id.get(user_id)
            if user and user.email and user.wants_email and user.email not in recipients:
                recipients.append(user.email)
        return recipients

    def send(self, recipients: Iterable[str], subject: str, html: str) -> int:
        """
        Queue one email per recipient and return how many were handed off.

        A failure for one recipient is logged and does not affect the others.
        """
        queued = 0
        for recipient in recipients:
            try:
                if self._enqueue(recipient, subject, html) is None:
                    raise TransientDispatchFailure(recipient, "email task was not queued")
                queued += 1
            except TransientDispatchFailure as exc:
                logger.warning(str(exc))
            except Exception as exc:
                logger.error(
                    str(TransientDispatchFailure(recipient, str(exc))),
                    exc_info=True,
                )
        return queued
