from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, Field, SQLModel

from calmanage.core.timeutils import utc_now


class Event(SQLModel, table=True):
    """Calendar event."""

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    calendar_id: UUID = Field(foreign_key="calendars.id", nullable=False, index=True)
    created_by_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    starts_at: datetime = Field(nullable=False, index=True)
    ends_at: datetime = Field(nullable=False, index=True)
    all_day: bool = Field(default=False)
    recurrence: Optional[str] = Field(default=None, max_length=255)
    # User ids and free-form attendee addresses, stored as JSON lists of strings
    participants: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    attendees: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_meeting: bool = Field(default=False, nullable=False)
    meeting_link: Optional[str] = Field(default=None, max_length=1000)
    meeting_platform: Optional[str] = Field(default=None, max_length=64)
    # Written only through calmanage.services.lifecycle
    start_notification_sent: bool = Field(default=False, nullable=False, index=True)
    end_notification_sent: bool = Field(default=False, nullable=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


class EventReminder(SQLModel, table=True):
    """A reminder `offset_minutes` before the event start."""

    __tablename__ = "event_reminders"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    event_id: UUID = Field(
        foreign_key="events.id", nullable=False, index=True
    )
    offset_minutes: int = Field(nullable=False)
    sent: bool = Field(default=False, nullable=False, index=True)
