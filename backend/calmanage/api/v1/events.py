from __future__ import annotations

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from calmanage.api.deps import get_current_user
from calmanage.db import SessionDep
from calmanage.models import Event, User
from calmanage.schemas import CreatorRead, EventRead, ReminderRead
from calmanage.services import events as event_service

router = APIRouter()


def _serialize_event(session: SessionDep, event: Event) -> EventRead:
    reminders = [
        ReminderRead.model_validate(reminder)
        for reminder in event_service.get_event_reminders(session, event.id)
    ]
    creator = event_service.get_event_creator(session, event)
    return EventRead.model_validate(event).model_copy(
        update={
            "reminders": reminders,
            "created_by": CreatorRead.model_validate(creator) if creator else None,
        }
    )


@router.get(
    "/calendars/{calendar_id}/events",
    response_model=List[EventRead],
    summary="List events in a calendar",
)
def list_events(
    calendar_id: UUID,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> List[EventRead]:
    events = event_service.list_events(session, calendar_id, current_user)
    return [_serialize_event(session, event) for event in events]


@router.post(
    "/calendars/{calendar_id}/events",
    response_model=EventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
def create_event(
    calendar_id: UUID,
    session: SessionDep,
    payload: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
) -> EventRead:
    event = event_service.create_event(session, calendar_id, current_user, payload)
    return _serialize_event(session, event)


@router.patch("/events/{event_id}", response_model=EventRead, summary="Update event")
def update_event(
    event_id: UUID,
    session: SessionDep,
    patch: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
) -> EventRead:
    event = event_service.update_event(session, event_id, current_user, patch)
    return _serialize_event(session, event)


@router.delete("/events/{event_id}", summary="Delete event")
def delete_event(
    event_id: UUID,
    session: SessionDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    deleted_id = event_service.delete_event(session, event_id, current_user)
    return {"id": str(deleted_id)}
