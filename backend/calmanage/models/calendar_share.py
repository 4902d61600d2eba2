from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from calmanage.core.timeutils import utc_now


class ShareRole:
    EDITOR = "editor"
    VIEWER = "viewer"


class ShareStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class CalendarShare(SQLModel, table=True):
    """Invitation of a user onto a calendar with an editor or viewer role."""

    __tablename__ = "calendar_shares"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    calendar_id: UUID = Field(foreign_key="calendars.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    role: str = Field(default=ShareRole.VIEWER, max_length=32)
    status: str = Field(default=ShareStatus.PENDING, max_length=32, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
