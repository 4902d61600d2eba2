from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class NotificationRead(BaseModel):
    id: UUID
    user_id: UUID
    message: str
    type: str
    related_id: UUID | None
    is_read: bool
    created_at: datetime
    read_at: datetime | None

    model_config = {"from_attributes": True}


class NotificationUpdate(BaseModel):
    is_read: bool = Field(validation_alias=AliasChoices("is_read", "isRead"))
