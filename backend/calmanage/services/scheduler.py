"""
Periodic scan that fires event lifecycle transitions.

Each tick runs three independent passes:

* reminders: events starting within the look-ahead window with unsent
  reminders; a due reminder notifies the calendar owner only.
* starts: events whose start lies within the look-back window and whose
  start notification has not fired; the owner gets an in-app notification
  and the calendar audience gets an email.
* ends: same as starts, keyed on the event end.

Every event is processed in its own session and transaction, so a failure on
one event is logged and the scan moves on. The flag write and the in-app
Notification commit together; email is handed to the dispatcher only after
that commit and is never awaited.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, List, Optional, Set
from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, select

from calmanage.core.config import settings
from calmanage.core.timeutils import ensure_utc, utc_now
from calmanage.models import Calendar, Event, EventReminder, NotificationType
from calmanage.services.email_templates import event_ended_email, event_started_email
from calmanage.services.lifecycle import (
    Transition,
    TransitionAlreadyFired,
    fire_event_transition,
    fire_reminder,
)
from calmanage.services.notifications import NotificationDispatcher, create_notification

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]
Clock = Callable[[], datetime]


@dataclass
class TickSummary:
    events_checked: int = 0
    reminders_fired: int = 0
    starts_fired: int = 0
    ends_fired: int = 0
    emails_queued: int = 0
    failures: int = 0
    _checked_ids: Set[UUID] = field(default_factory=set, repr=False)

    def mark_checked(self, event_id: UUID) -> None:
        """Count an event once per tick, however many passes scan it."""
        self._checked_ids.add(event_id)
        self.events_checked = len(self._checked_ids)

    def as_dict(self) -> dict[str, int]:
        counters = asdict(self)
        counters.pop("_checked_ids")
        return counters


@dataclass(frozen=True)
class _BoundaryPass:
    transition: Transition
    column: object
    flag: object
    notification_type: str
    label: str
    render_email: Callable


_START_PASS = _BoundaryPass(
    transition=Transition.EVENT_STARTED,
    column=Event.starts_at,
    flag=Event.start_notification_sent,
    notification_type=NotificationType.EVENT_START,
    label="Event Started",
    render_email=event_started_email,
)
_END_PASS = _BoundaryPass(
    transition=Transition.EVENT_ENDED,
    column=Event.ends_at,
    flag=Event.end_notification_sent,
    notification_type=NotificationType.EVENT_END,
    label="Event Ended",
    render_email=event_ended_email,
)


class ReminderScheduler:
    """Runs lifecycle ticks against an injected store, clock and dispatcher."""

    def __init__(
        self,
        session_factory: SessionFactory,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utc_now,
        lookahead: Optional[timedelta] = None,
        lookback: Optional[timedelta] = None,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher = dispatcher or NotificationDispatcher()
        self._clock = clock
        self._lookahead = lookahead or timedelta(hours=settings.SCHEDULER_LOOKAHEAD_HOURS)
        self._lookback = lookback or timedelta(hours=settings.SCHEDULER_LOOKBACK_HOURS)
        self._tick_lock = threading.Lock()
        self.last_summary: Optional[TickSummary] = None

    def tick(self) -> None:
        """Run the three passes once. Skips if a tick is already running."""
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("[Scheduler] Previous tick still running, skipping")
            return
        try:
            now = ensure_utc(self._clock())
            summary = TickSummary()
            for run_pass in (
                self._reminder_pass,
                partial(self._boundary_pass, boundary=_START_PASS),
                partial(self._boundary_pass, boundary=_END_PASS),
            ):
                try:
                    run_pass(now, summary)
                except Exception:
                    summary.failures += 1
                    logger.exception("[Scheduler] Pass failed, continuing with next pass")
            self.last_summary = summary
            logger.info(
                f"[Scheduler] Tick at {now.isoformat()}: "
                f"{summary.reminders_fired} reminders, {summary.starts_fired} starts, "
                f"{summary.ends_fired} ends fired, {summary.emails_queued} emails queued, "
                f"{summary.failures} failures, {summary.events_checked} events checked"
            )
        finally:
            self._tick_lock.release()

    # ------------------------------------------------------------------
    # Reminder pass
    # ------------------------------------------------------------------

    def _reminder_pass(self, now: datetime, summary: TickSummary) -> None:
        with self._session_factory() as session:
            pending = select(EventReminder.event_id).where(EventReminder.sent == False)
            event_ids = session.exec(
                select(Event.id).where(
                    Event.starts_at >= now,
                    Event.starts_at <= now + self._lookahead,
                    Event.id.in_(pending),
                )
            ).all()

        for event_id in event_ids:
            summary.mark_checked(event_id)
            try:
                with self._session_factory() as session:
                    summary.reminders_fired += self._fire_due_reminders(session, event_id, now)
            except Exception:
                summary.failures += 1
                logger.exception(f"[Scheduler] Reminder processing failed for event {event_id}")

    def _fire_due_reminders(self, session: Session, event_id: UUID, now: datetime) -> int:
        event = session.get(Event, event_id)
        if not event:
            return 0
        calendar = session.get(Calendar, event.calendar_id)
        if not calendar:
            logger.warning(f"[Scheduler] Event {event_id} has no calendar, skipping reminders")
            return 0

        reminders: List[EventReminder] = session.exec(
            select(EventReminder).where(
                EventReminder.event_id == event_id,
                EventReminder.sent == False,
            )
        ).all()

        fired = 0
        for reminder in reminders:
            trigger_at = event.starts_at - timedelta(minutes=reminder.offset_minutes)
            if trigger_at > now:
                continue
            if not fire_reminder(session, reminder):
                continue
            create_notification(
                session,
                user_id=calendar.owner_id,
                type=NotificationType.REMINDER,
                message=f"Reminder: {event.title} starts in {reminder.offset_minutes} minutes",
                related_id=event.id,
            )
            fired += 1

        session.commit()
        if fired:
            logger.info(f"[Reminder] Fired {fired} reminders for event {event_id}")
        return fired

    # ------------------------------------------------------------------
    # Start / end passes
    # ------------------------------------------------------------------

    def _boundary_pass(self, now: datetime, summary: TickSummary, boundary: _BoundaryPass) -> None:
        with self._session_factory() as session:
            event_ids = session.exec(
                select(Event.id).where(
                    boundary.column >= now - self._lookback,
                    boundary.column <= now,
                    or_(boundary.flag == False, boundary.flag.is_(None)),
                )
            ).all()

        for event_id in event_ids:
            summary.mark_checked(event_id)
            try:
                with self._session_factory() as session:
                    queued = self._fire_boundary(session, event_id, boundary)
            except Exception:
                summary.failures += 1
                logger.exception(
                    f"[Scheduler] {boundary.label} processing failed for event {event_id}"
                )
                continue
            if queued is None:
                continue
            summary.emails_queued += queued
            if boundary.transition is Transition.EVENT_STARTED:
                summary.starts_fired += 1
            else:
                summary.ends_fired += 1

    def _fire_boundary(
        self,
        session: Session,
        event_id: UUID,
        boundary: _BoundaryPass,
    ) -> Optional[int]:
        """Fire one start/end transition. Returns emails queued, None if not fired."""
        event = session.get(Event, event_id)
        if not event:
            return None
        calendar = session.get(Calendar, event.calendar_id)
        if not calendar:
            logger.warning(f"[Scheduler] Event {event_id} has no calendar, skipping")
            return None

        try:
            if not fire_event_transition(session, event, boundary.transition):
                return None
        except TransitionAlreadyFired:
            return None
        create_notification(
            session,
            user_id=calendar.owner_id,
            type=boundary.notification_type,
            message=f"{boundary.label}: {event.title}",
            related_id=event.id,
        )
        session.commit()

        # The transition is recorded; email is best effort from here on.
        try:
            recipients = self._dispatcher.recipient_set(session, calendar)
            if not recipients:
                return 0
            subject, html = boundary.render_email(event, calendar.name)
            return self._dispatcher.send(recipients, subject, html)
        except Exception:
            logger.error(
                f"[Scheduler] Error preparing {boundary.label.lower()} emails for event {event_id}",
                exc_info=True,
            )
            return 0
