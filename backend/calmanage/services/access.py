from __future__ import annotations

from typing import NamedTuple, Optional
from uuid import UUID

from sqlmodel import Session, select

from calmanage.models import Calendar, CalendarShare, ShareStatus


class Role:
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    NONE = "none"


ROLE_HIERARCHY = {Role.NONE: 0, Role.VIEWER: 1, Role.EDITOR: 2, Role.OWNER: 3}


class CalendarAccess(NamedTuple):
    calendar: Optional[Calendar]
    role: str
    is_owner: bool

    @property
    def found(self) -> bool:
        return self.calendar is not None

    def at_least(self, required_role: str) -> bool:
        return ROLE_HIERARCHY[self.role] >= ROLE_HIERARCHY[required_role]


def resolve_calendar_access(
    session: Session,
    calendar_id: UUID,
    user_id: UUID,
) -> CalendarAccess:
    """Resolve the caller's role on a calendar. Pure read."""
    calendar = session.get(Calendar, calendar_id)
    if not calendar:
        return CalendarAccess(None, Role.NONE, False)

    if calendar.owner_id == user_id:
        return CalendarAccess(calendar, Role.OWNER, True)

    share = session.exec(
        select(CalendarShare).where(
            CalendarShare.calendar_id == calendar_id,
            CalendarShare.user_id == user_id,
            CalendarShare.status == ShareStatus.ACCEPTED,
        )
    ).first()
    return CalendarAccess(calendar, share.role if share else Role.NONE, False)
