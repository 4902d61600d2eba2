from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ActivityRead(BaseModel):
    id: UUID
    user_id: UUID
    action: str
    target: str
    details: str
    created_at: datetime

    model_config = {"from_attributes": True}
