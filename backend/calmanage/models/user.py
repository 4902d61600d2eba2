from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from calmanage.core.timeutils import utc_now


class User(SQLModel, table=True):
    """Calendar user record."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    email: str = Field(index=True, unique=True, max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=255)
    is_active: bool = Field(default=True)
    # NULL means the user never opted out; only an explicit False disables email.
    email_notifications: Optional[bool] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def wants_email(self) -> bool:
        return self.email_notifications is not False
