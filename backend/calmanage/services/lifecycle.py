"""
One-way lifecycle transitions for events.

Every idempotency flag (a reminder's ``sent``, ``start_notification_sent``,
``end_notification_sent``) is a two-state machine PENDING -> FIRED. The
functions here are the only writers of those columns; each performs a
conditional single-column UPDATE and reports whether this caller won the
transition, so a flag can never be written back to False and a second
writer observes the transition as already taken.
"""

from __future__ import annotations

from enum import Enum
from sqlalchemy import or_, update
from sqlmodel import Session

from calmanage.models import Event, EventReminder


class Transition(str, Enum):
    REMINDER_DUE = "reminder_due"
    EVENT_STARTED = "event_started"
    EVENT_ENDED = "event_ended"


class TransitionState(str, Enum):
    PENDING = "pending"
    FIRED = "fired"

    @classmethod
    def of(cls, flag: bool | None) -> "TransitionState":
        return cls.FIRED if flag else cls.PENDING

    def advance(self) -> "TransitionState":
        if self is TransitionState.FIRED:
            raise TransitionAlreadyFired(self)
        return TransitionState.FIRED


class TransitionAlreadyFired(Exception):
    pass


_EVENT_FLAGS = {
    Transition.EVENT_STARTED: Event.start_notification_sent,
    Transition.EVENT_ENDED: Event.end_notification_sent,
}


def event_transition_state(event: Event, transition: Transition) -> TransitionState:
    column = _EVENT_FLAGS[transition]
    return TransitionState.of(getattr(event, column.key))


def fire_event_transition(
    session: Session,
    event: Event,
    transition: Transition,
) -> bool:
    """
    Flip the event's flag for ``transition``.

    Raises TransitionAlreadyFired if the loaded row already shows the flag set;
    returns False if another writer set it after the row was loaded.
    """
    event_transition_state(event, transition).advance()
    column = _EVENT_FLAGS[transition]
    result = session.exec(
        update(Event)
        .where(Event.id == event.id, or_(column.is_(None), column == False))
        .values({column.key: True})
    )
    return result.rowcount == 1


def fire_reminder(session: Session, reminder: EventReminder) -> bool:
    """Flip one reminder's ``sent`` flag, same contract as fire_event_transition."""
    TransitionState.of(reminder.sent).advance()
    result = session.exec(
        update(EventReminder)
        .where(EventReminder.id == reminder.id, EventReminder.sent == False)
        .values(sent=True)
    )
    return result.rowcount == 1
