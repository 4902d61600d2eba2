from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from calmanage.core.timeutils import utc_now


class NotificationType:
    EVENT_CREATED = "event_created"
    EVENT_DELETED = "event_deleted"
    REMINDER = "reminder"
    EVENT_START = "event_start"
    EVENT_END = "event_end"


class Notification(SQLModel, table=True):
    """In-app notification."""

    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    message: str = Field(max_length=1000)
    type: str = Field(max_length=50, index=True)
    # Not a foreign key: deletion notices outlive the event they describe.
    related_id: UUID | None = Field(default=None, nullable=True, index=True)
    is_read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False, index=True)
    read_at: datetime | None = Field(default=None, nullable=True)
