from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from calmanage.core.timeutils import utc_now


class ActivityAction:
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class Activity(SQLModel, table=True):
    """Append-only audit record shown in a user's activity feed."""

    __tablename__ = "activities"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    action: str = Field(max_length=32, index=True)
    target: str = Field(max_length=64)
    details: str = Field(max_length=2000)
    created_at: datetime = Field(default_factory=utc_now, nullable=False, index=True)
