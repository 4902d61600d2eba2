"""Tests for audience computation and email hand-off."""

from __future__ import annotations

import pytest
from sqlmodel import select

from calmanage.models import CalendarShare, ShareStatus
from calmanage.services import notifications as notification_service
from calmanage.services.notifications import NotificationDispatcher, get_calendar_audience

pytestmark = pytest.mark.unit


class TestCalendarAudience:
    def test_owner_first_then_accepted_shares(self, session, calendar, owner, editor, viewer):
        audience = get_calendar_audience(session, calendar)

        assert audience[0] == owner.id
        assert set(audience) == {owner.id, editor.id, viewer.id}

    def test_pending_and_declined_shares_excluded(
        self, session, calendar, viewer, pending_user, stranger
    ):
        session.add(
            CalendarShare(
                calendar_id=calendar.id,
                user_id=stranger.id,
                status=ShareStatus.DECLINED,
            )
        )
        session.commit()

        audience = get_calendar_audience(session, calendar)

        assert pending_user.id not in audience
        assert stranger.id not in audience
        assert viewer.id in audience

    def test_owner_with_a_share_row_appears_once(self, session, calendar, owner):
        session.add(
            CalendarShare(
                calendar_id=calendar.id,
                user_id=owner.id,
                status=ShareStatus.ACCEPTED,
            )
        )
        session.commit()

        audience = get_calendar_audience(session, calendar)

        assert audience.count(owner.id) == 1

    def test_share_status_change_applies_immediately(self, session, calendar, pending_user):
        row = session.exec(
            select(CalendarShare).where(CalendarShare.user_id == pending_user.id)
        ).one()
        row.status = ShareStatus.ACCEPTED
        session.add(row)
        session.commit()

        assert pending_user.id in get_calendar_audience(session, calendar)


class TestRecipientSet:
    def test_emails_of_audience(self, session, calendar, dispatcher):
        recipients = dispatcher.recipient_set(session, calendar)

        assert recipients[0] == "olivia@example.com"
        assert sorted(recipients) == [
            "eddie@example.com",
            "olivia@example.com",
            "vera@example.com",
        ]

    def test_unset_preference_counts_as_opted_in(self, session, calendar, dispatcher, viewer):
        assert viewer.email_notifications is None
        assert "vera@example.com" in dispatcher.recipient_set(session, calendar)

    def test_opted_out_users_excluded(self, session, calendar, dispatcher, editor):
        editor.email_notifications = False
        session.add(editor)
        session.commit()

        assert "eddie@example.com" not in dispatcher.recipient_set(session, calendar)


class TestSend:
    def test_one_email_per_recipient(self, dispatcher, outbox):
        queued = dispatcher.send(["a@example.com", "b@example.com"], "Hi", "<p>hi</p>")

        assert queued == 2
        assert outbox.recipients() == ["a@example.com", "b@example.com"]
        assert outbox.sent[0].subject == "Hi"
        assert outbox.sent[0].html == "<p>hi</p>"

    def test_failure_for_one_recipient_is_isolated(self, dispatcher, outbox, caplog):
        outbox.fail_for.add("b@example.com")

        queued = dispatcher.send(
            ["a@example.com", "b@example.com", "c@example.com"], "Hi", "<p>hi</p>"
        )

        assert queued == 2
        assert outbox.recipients() == ["a@example.com", "c@example.com"]
        assert "Email to b@example.com failed" in caplog.text

    def test_unqueued_task_is_not_counted(self):
        dispatcher = NotificationDispatcher(enqueue=lambda to, subject, html: None)

        assert dispatcher.send(["a@example.com"], "Hi", "<p>hi</p>") == 0

    def test_default_enqueue_goes_through_celery(self, monkeypatch):
        calls = []

        def fake_delay(task, *args, **kwargs):
            calls.append((task.name, args))
            return "queued"

        monkeypatch.setattr(notification_service, "safe_celery_delay", fake_delay)

        queued = NotificationDispatcher().send(["a@example.com"], "Hi", "<p>hi</p>")

        assert queued == 1
        assert calls == [
            (
                "calmanage.tasks.notifications.send_email_task",
                ("a@example.com", "Hi", "<p>hi</p>"),
            )
        ]
