from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field

from calmanage.core.timeutils import ensure_utc

# Incoming instants are stored as aware UTC.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class ReminderIn(BaseModel):
    offset_minutes: int = Field(
        ge=0, validation_alias=AliasChoices("offset_minutes", "minutes", "time")
    )


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    starts_at: UtcDatetime = Field(validation_alias=AliasChoices("starts_at", "start"))
    ends_at: UtcDatetime = Field(validation_alias=AliasChoices("ends_at", "end"))
    all_day: bool = Field(default=False, validation_alias=AliasChoices("all_day", "allDay"))
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    recurrence: Optional[str] = Field(default=None, max_length=255)
    participants: List[str] = []
    attendees: List[str] = []
    is_meeting: bool = Field(default=False, validation_alias=AliasChoices("is_meeting", "isMeeting"))
    meeting_link: Optional[str] = Field(
        default=None, max_length=1000, validation_alias=AliasChoices("meeting_link", "meetingLink")
    )
    meeting_platform: Optional[str] = Field(
        default=None,
        max_length=64,
        validation_alias=AliasChoices("meeting_platform", "meetingPlatform"),
    )
    reminders: List[ReminderIn] = []


class EventUpdate(BaseModel):
    """Partial update. Only fields present in the request are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    starts_at: Optional[UtcDatetime] = Field(
        default=None, validation_alias=AliasChoices("starts_at", "start")
    )
    ends_at: Optional[UtcDatetime] = Field(
        default=None, validation_alias=AliasChoices("ends_at", "end")
    )
    all_day: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("all_day", "allDay")
    )
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    recurrence: Optional[str] = Field(default=None, max_length=255)
    participants: Optional[List[str]] = None
    attendees: Optional[List[str]] = None
    is_meeting: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_meeting", "isMeeting")
    )
    meeting_link: Optional[str] = Field(
        default=None, max_length=1000, validation_alias=AliasChoices("meeting_link", "meetingLink")
    )
    meeting_platform: Optional[str] = Field(
        default=None,
        max_length=64,
        validation_alias=AliasChoices("meeting_platform", "meetingPlatform"),
    )
    reminders: Optional[List[ReminderIn]] = None


class ReminderRead(BaseModel):
    id: UUID
    offset_minutes: int
    sent: bool

    model_config = ConfigDict(from_attributes=True)


class CreatorRead(BaseModel):
    id: UUID
    full_name: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)


class EventRead(BaseModel):
    id: UUID
    calendar_id: UUID
    created_by_id: UUID
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    starts_at: datetime
    ends_at: datetime
    all_day: bool
    recurrence: Optional[str] = None
    participants: List[str] = []
    attendees: List[str] = []
    is_meeting: bool = False
    meeting_link: Optional[str] = None
    meeting_platform: Optional[str] = None
    start_notification_sent: bool
    end_notification_sent: bool
    created_at: datetime
    updated_at: datetime
    reminders: List[ReminderRead] = []
    created_by: Optional[CreatorRead] = None

    model_config = ConfigDict(from_attributes=True)
