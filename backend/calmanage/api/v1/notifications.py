from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlmodel import select

from calmanage.api.deps import get_current_user
from calmanage.core.timeutils import utc_now
from calmanage.db import SessionDep
from calmanage.models import Notification, User
from calmanage.schemas import NotificationRead, NotificationUpdate

router = APIRouter()


def _get_own_notification(
    session: SessionDep, notification_id: UUID, user: User
) -> Notification:
    notification = session.get(Notification, notification_id)
    if not notification or notification.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    return notification


@router.get("/", response_model=List[NotificationRead], summary="List notifications")
def list_notifications(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
    unread_only: bool = Query(default=False, description="Show only unread notifications"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum number of notifications"),
) -> List[Notification]:
    """Get user's notifications, newest first."""
    statement = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        statement = statement.where(Notification.is_read == False)
    statement = statement.order_by(Notification.created_at.desc()).limit(limit)
    return session.exec(statement).all()


@router.get("/unread-count", summary="Get unread notifications count")
def get_unread_count(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    count = session.exec(
        select(func.count()).select_from(Notification).where(
            Notification.user_id == current_user.id,
            Notification.is_read == False,
        )
    ).one()
    return {"count": count}


@router.patch("/mark-all-read", summary="Mark all notifications as read")
def mark_all_read(
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    notifications = session.exec(
        select(Notification).where(
            Notification.user_id == current_user.id,
            Notification.is_read == False,
        )
    ).all()

    now = utc_now()
    for notification in notifications:
        notification.is_read = True
        notification.read_at = now
        session.add(notification)

    session.commit()
    return {"marked": len(notifications)}


@router.patch(
    "/{notification_id}",
    response_model=NotificationRead,
    summary="Mark notification read or unread",
)
def update_notification(
    notification_id: UUID,
    data: NotificationUpdate,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> Notification:
    notification = _get_own_notification(session, notification_id, current_user)
    notification.is_read = data.is_read
    notification.read_at = utc_now() if data.is_read else None
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


@router.delete("/{notification_id}", summary="Delete notification")
def delete_notification(
    notification_id: UUID,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    notification = _get_own_notification(session, notification_id, current_user)
    session.delete(notification)
    session.commit()
    return {"id": str(notification_id)}
