"""Shared fixtures: in-memory database, users, a shared calendar, a clock."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Tuple

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from calmanage.models import (
    Calendar,
    CalendarShare,
    Event,
    EventReminder,
    Notification,
    ShareRole,
    ShareStatus,
    User,
)
from calmanage.services.notifications import NotificationDispatcher

T0 = datetime(2026, 5, 4, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def session_factory(engine) -> Callable[[], Session]:
    return lambda: Session(engine)


def _make_user(session: Session, email: str, full_name: str, **kwargs) -> User:
    user = User(email=email, full_name=full_name, **kwargs)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def owner(session) -> User:
    return _make_user(session, "olivia@example.com", "Olivia Owner")


@pytest.fixture
def editor(session) -> User:
    return _make_user(session, "eddie@example.com", "Eddie Editor", email_notifications=True)


@pytest.fixture
def viewer(session) -> User:
    return _make_user(session, "vera@example.com", "Vera Viewer")


@pytest.fixture
def pending_user(session) -> User:
    return _make_user(session, "paul@example.com", "Paul Pending")


@pytest.fixture
def stranger(session) -> User:
    return _make_user(session, "sam@example.com", "Sam Stranger")


@pytest.fixture
def calendar(session, owner, editor, viewer, pending_user) -> Calendar:
    """Owner O; accepted editor A and viewer B; pending editor C."""
    calendar = Calendar(name="Team", owner_id=owner.id)
    session.add(calendar)
    session.commit()
    session.add_all(
        [
            CalendarShare(
                calendar_id=calendar.id,
                user_id=editor.id,
                role=ShareRole.EDITOR,
                status=ShareStatus.ACCEPTED,
            ),
            CalendarShare(
                calendar_id=calendar.id,
                user_id=viewer.id,
                role=ShareRole.VIEWER,
                status=ShareStatus.ACCEPTED,
            ),
            CalendarShare(
                calendar_id=calendar.id,
                user_id=pending_user.id,
                role=ShareRole.EDITOR,
                status=ShareStatus.PENDING,
            ),
        ]
    )
    session.commit()
    session.refresh(calendar)
    return calendar


@pytest.fixture
def make_event(session, calendar, owner):
    """Insert an event directly, bypassing the mutation service."""

    def _make_event(
        starts_at: datetime = T0,
        duration: timedelta = timedelta(hours=1),
        reminders: Tuple[int, ...] = (),
        title: str = "Planning",
        **kwargs,
    ) -> Event:
        event = Event(
            calendar_id=calendar.id,
            created_by_id=owner.id,
            title=title,
            starts_at=starts_at,
            ends_at=starts_at + duration,
            **kwargs,
        )
        session.add(event)
        session.flush()
        session.add_all(
            EventReminder(event_id=event.id, offset_minutes=minutes) for minutes in reminders
        )
        session.commit()
        session.refresh(event)
        return event

    return _make_event


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0 - timedelta(hours=1))


@dataclass
class SentEmail:
    to: str
    subject: str
    html: str


class RecordingEnqueue:
    """Stands in for the Celery hand-off and records every email."""

    def __init__(self) -> None:
        self.sent: List[SentEmail] = []
        self.fail_for: set[str] = set()

    def __call__(self, to: str, subject: str, html: str) -> str:
        if to in self.fail_for:
            raise ConnectionError(f"broker refused {to}")
        self.sent.append(SentEmail(to, subject, html))
        return f"task-{len(self.sent)}"

    def recipients(self, subject_prefix: str = "") -> List[str]:
        return [mail.to for mail in self.sent if mail.subject.startswith(subject_prefix)]


@pytest.fixture
def outbox() -> RecordingEnqueue:
    return RecordingEnqueue()


@pytest.fixture
def dispatcher(outbox) -> NotificationDispatcher:
    return NotificationDispatcher(enqueue=outbox)


@pytest.fixture
def notifications_of(session):
    def _notifications_of(type: str) -> List[Notification]:
        session.expire_all()
        return list(
            session.exec(select(Notification).where(Notification.type == type)).all()
        )

    return _notifications_of
