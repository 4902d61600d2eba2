"""Guarded create/update/delete of calendar events with audit fan-out."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Sequence, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from calmanage.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from calmanage.core.timeutils import utc_now
from calmanage.models import (
    Activity,
    ActivityAction,
    Calendar,
    Event,
    EventReminder,
    Notification,
    NotificationType,
    User,
)
from calmanage.schemas import EventCreate, EventUpdate, ReminderIn
from calmanage.services.access import CalendarAccess, Role, resolve_calendar_access
from calmanage.services.notifications import get_calendar_audience

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Request aliases reported under the stored column name.
_FIELD_NAMES = {
    "start": "starts_at",
    "end": "ends_at",
    "allDay": "all_day",
    "isMeeting": "is_meeting",
    "meetingLink": "meeting_link",
    "meetingPlatform": "meeting_platform",
}
_REQUIRED_COLUMNS = ("title", "starts_at", "ends_at", "all_day", "is_meeting")
# Explicit null on these clears the list.
_LIST_COLUMNS = ("participants", "attendees")


def _parse_payload(schema: Type[SchemaT], payload: Any) -> SchemaT:
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        loc = error.get("loc") or ("body",)
        field = _FIELD_NAMES.get(str(loc[0]), str(loc[0]))
        raise ValidationError(field, f"Invalid {field}: {error['msg']}") from None


def _check_time_order(starts_at: datetime, ends_at: datetime) -> None:
    if ends_at < starts_at:
        raise ValidationError("ends_at", "ends_at must be greater than or equal to starts_at")


def _require_calendar(access: CalendarAccess) -> Calendar:
    if not access.found:
        raise NotFoundError("Calendar")
    return access.calendar


def _require_editor(access: CalendarAccess) -> Calendar:
    calendar = _require_calendar(access)
    if not access.at_least(Role.EDITOR):
        raise UnauthorizedError()
    return calendar


def _get_event(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event")
    return event


def _reminder_rows(event_id: UUID, reminders: Sequence[ReminderIn]) -> List[EventReminder]:
    return [
        EventReminder(event_id=event_id, offset_minutes=reminder.offset_minutes)
        for reminder in reminders
    ]


def _bulk_insert(session: Session, rows: Sequence[SQLModel], label: str) -> bool:
    """
    Commit one batch of audit rows on its own.

    The event write is already committed; a failure here is logged and rolled
    back without touching it.
    """
    if not rows:
        return True
    try:
        session.add_all(rows)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Failed to write {len(rows)} {label} rows: {exc}", exc_info=True)
        return False
    return True


def _fan_out(
    session: Session,
    *,
    audience: Sequence[UUID],
    actor: User,
    verb: str,
    action: str,
    notification_type: str,
    related_id: UUID,
    details: Callable[[str], str],
    message: Callable[[str], str],
) -> None:
    """
    Write one Activity and one Notification per audience member.

    ``details`` and ``message`` receive the sentence prefix: "You <verb>" for
    the actor and "<actor name> <verb>" for everyone else.
    """
    activities: List[Activity] = []
    notifications: List[Notification] = []
    for user_id in audience:
        prefix = f"You {verb}" if user_id == actor.id else f"{actor.display_name} {verb}"
        activities.append(
            Activity(
                user_id=user_id,
                action=action,
                target="Event",
                details=details(prefix),
            )
        )
        notifications.append(
            Notification(
                user_id=user_id,
                type=notification_type,
                message=message(prefix),
                related_id=related_id,
            )
        )

    _bulk_insert(session, activities, "activity")
    _bulk_insert(session, notifications, "notification")


def list_events(session: Session, calendar_id: UUID, actor: User) -> List[Event]:
    access = resolve_calendar_access(session, calendar_id, actor.id)
    _require_calendar(access)
    if not access.at_least(Role.VIEWER):
        raise UnauthorizedError()
    return list(
        session.exec(
            select(Event)
            .where(Event.calendar_id == calendar_id)
            .order_by(Event.starts_at)
        ).all()
    )


def get_event_reminders(session: Session, event_id: UUID) -> List[EventReminder]:
    return list(
        session.exec(
            select(EventReminder)
            .where(EventReminder.event_id == event_id)
            .order_by(EventReminder.offset_minutes.desc())
        ).all()
    )


def get_event_creator(session: Session, event: Event) -> User | None:
    return session.get(User, event.created_by_id)


def create_event(
    session: Session,
    calendar_id: UUID,
    actor: User,
    payload: Mapping[str, Any],
) -> Event:
    """
    Create an event in a calendar the actor owns or edits.

    Every audience member gets an Activity and an event_created Notification.
    No email is sent on creation.
    """
    data = _parse_payload(EventCreate, payload)
    _check_time_order(data.starts_at, data.ends_at)

    access = resolve_calendar_access(session, calendar_id, actor.id)
    calendar = _require_editor(access)

    event = Event(
        calendar_id=calendar.id,
        created_by_id=actor.id,
        **data.model_dump(exclude={"reminders"}),
    )
    session.add(event)
    session.flush()
    session.add_all(_reminder_rows(event.id, data.reminders))
    event_id, title, calendar_name = event.id, event.title, calendar.name
    session.commit()

    audience = get_calendar_audience(session, calendar)
    _fan_out(
        session,
        audience=audience,
        actor=actor,
        verb="created",
        action=ActivityAction.CREATED,
        notification_type=NotificationType.EVENT_CREATED,
        related_id=event_id,
        details=lambda prefix: f'{prefix} event "{title}" in calendar "{calendar_name}" ({event_id})',
        message=lambda prefix: f'{prefix} "{title}" in {calendar_name}',
    )
    logger.info(
        f"Event {event_id} created by {actor.id} in calendar {calendar.id}, "
        f"fanned out to {len(audience)} users"
    )

    session.refresh(event)
    return event


def update_event(
    session: Session,
    event_id: UUID,
    actor: User,
    patch: Mapping[str, Any],
) -> Event:
    """
    Apply a partial update. Fields absent from ``patch`` keep their values.

    Only an Activity for the actor is recorded; the audience is not notified
    of updates.
    """
    event = _get_event(session, event_id)
    access = resolve_calendar_access(session, event.calendar_id, actor.id)
    _require_editor(access)

    changes = _parse_payload(EventUpdate, patch).model_dump(exclude_unset=True)
    for field in _REQUIRED_COLUMNS:
        if field in changes and changes[field] is None:
            raise ValidationError(field, f"{field} cannot be null")
    for field in _LIST_COLUMNS:
        if field in changes and changes[field] is None:
            changes[field] = []
    _check_time_order(
        changes.get("starts_at", event.starts_at),
        changes.get("ends_at", event.ends_at),
    )

    replace_reminders = "reminders" in changes
    reminders = changes.pop("reminders", None) or []

    # Column-level write; the lifecycle flags are never part of the statement.
    session.exec(
        update(Event)
        .where(Event.id == event_id)
        .values(**changes, updated_at=utc_now())
    )
    if replace_reminders:
        session.exec(delete(EventReminder).where(EventReminder.event_id == event_id))
        session.add_all(
            _reminder_rows(event_id, [ReminderIn.model_validate(r) for r in reminders])
        )
    session.commit()

    _bulk_insert(
        session,
        [
            Activity(
                user_id=actor.id,
                action=ActivityAction.UPDATED,
                target="Event",
                details=f"{event.title} ({event.id})",
            )
        ],
        "activity",
    )
    session.refresh(event)
    return event


def delete_event(session: Session, event_id: UUID, actor: User) -> UUID:
    """
    Delete an event. Allowed for the calendar owner, or for an editor who
    created the event.
    """
    event = _get_event(session, event_id)
    access = resolve_calendar_access(session, event.calendar_id, actor.id)
    calendar = _require_editor(access)
    if not access.is_owner and event.created_by_id != actor.id:
        raise UnauthorizedError()

    title, calendar_name = event.title, calendar.name
    audience = get_calendar_audience(session, calendar)

    session.exec(delete(EventReminder).where(EventReminder.event_id == event_id))
    session.delete(event)
    session.commit()

    _fan_out(
        session,
        audience=audience,
        actor=actor,
        verb="deleted",
        action=ActivityAction.DELETED,
        notification_type=NotificationType.EVENT_DELETED,
        related_id=event_id,
        details=lambda prefix: f'{prefix} event "{title}" from calendar "{calendar_name}"',
        message=lambda prefix: f'{prefix} "{title}" from {calendar_name}',
    )
    logger.info(f"Event {event_id} deleted by {actor.id}, fanned out to {len(audience)} users")
    return event_id
