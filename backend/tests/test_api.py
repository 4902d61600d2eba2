"""HTTP-level tests for the event, notification and activity routes."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlmodel import select

from calmanage.api.v1 import health
from calmanage.core.security import create_access_token
from calmanage.db import get_session
from calmanage.main import app
from calmanage.models import Activity, Event, Notification, NotificationType

pytestmark = pytest.mark.unit


@pytest.fixture
def client(session):
    def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def _event_body(**overrides):
    body = {
        "title": "Planning",
        "start": "2026-05-04T09:00:00Z",
        "end": "2026-05-04T10:00:00Z",
        "reminders": [{"minutes": 10}],
    }
    body.update(overrides)
    return body


class TestEventRoutes:
    def test_create_list_update_delete(self, client, calendar, owner, session):
        created = client.post(
            f"/api/v1/calendars/{calendar.id}/events",
            json=_event_body(),
            headers=auth(owner),
        )
        assert created.status_code == 201
        data = created.json()
        assert data["title"] == "Planning"
        assert data["starts_at"].startswith("2026-05-04T09:00:00")
        assert data["start_notification_sent"] is False
        assert [r["offset_minutes"] for r in data["reminders"]] == [10]
        assert data["created_by"] == {
            "id": str(owner.id),
            "full_name": "Olivia Owner",
            "email": "olivia@example.com",
        }
        assert data["is_meeting"] is False

        listed = client.get(f"/api/v1/calendars/{calendar.id}/events", headers=auth(owner))
        assert listed.status_code == 200
        assert [e["id"] for e in listed.json()] == [data["id"]]
        assert listed.json()[0]["created_by"]["email"] == "olivia@example.com"

        patched = client.patch(
            f"/api/v1/events/{data['id']}",
            json={"title": "Retro"},
            headers=auth(owner),
        )
        assert patched.status_code == 200
        assert patched.json()["title"] == "Retro"
        assert patched.json()["ends_at"] == data["ends_at"]
        assert patched.json()["created_by"]["id"] == str(owner.id)

        deleted = client.delete(f"/api/v1/events/{data['id']}", headers=auth(owner))
        assert deleted.status_code == 200
        assert deleted.json() == {"id": data["id"]}
        session.expire_all()
        assert session.exec(select(Event)).all() == []

    def test_viewer_cannot_create(self, client, calendar, viewer):
        response = client.post(
            f"/api/v1/calendars/{calendar.id}/events",
            json=_event_body(),
            headers=auth(viewer),
        )

        assert response.status_code == 403
        assert response.json() == {"detail": "Not authorized"}

    def test_unknown_calendar_is_404(self, client, owner):
        response = client.post(
            f"/api/v1/calendars/{uuid4()}/events",
            json=_event_body(),
            headers=auth(owner),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Calendar not found"

    def test_validation_error_names_the_field(self, client, calendar, owner):
        response = client.post(
            f"/api/v1/calendars/{calendar.id}/events",
            json=_event_body(end="2026-05-04T08:00:00Z"),
            headers=auth(owner),
        )

        assert response.status_code == 400
        assert response.json()["field"] == "ends_at"

    def test_missing_token_is_401(self, client, calendar):
        response = client.get(f"/api/v1/calendars/{calendar.id}/events")

        assert response.status_code == 401

    def test_garbage_token_is_401(self, client, calendar):
        response = client.get(
            f"/api/v1/calendars/{calendar.id}/events",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_stranger_cannot_list(self, client, calendar, stranger):
        response = client.get(
            f"/api/v1/calendars/{calendar.id}/events", headers=auth(stranger)
        )

        assert response.status_code == 403


class TestNotificationRoutes:
    @pytest.fixture
    def created(self, client, calendar, owner):
        client.post(
            f"/api/v1/calendars/{calendar.id}/events",
            json=_event_body(),
            headers=auth(owner),
        )

    def test_audience_sees_created_notification(self, client, created, editor):
        response = client.get("/api/v1/notifications/", headers=auth(editor))

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 1
        assert items[0]["type"] == NotificationType.EVENT_CREATED
        assert items[0]["message"] == 'Olivia Owner created "Planning" in Team'
        assert items[0]["is_read"] is False

    def test_read_flow(self, client, created, editor):
        count = client.get("/api/v1/notifications/unread-count", headers=auth(editor))
        assert count.json() == {"count": 1}

        notification_id = client.get("/api/v1/notifications/", headers=auth(editor)).json()[0]["id"]
        marked = client.patch(
            f"/api/v1/notifications/{notification_id}",
            json={"is_read": True},
            headers=auth(editor),
        )
        assert marked.status_code == 200
        assert marked.json()["is_read"] is True

        count = client.get("/api/v1/notifications/unread-count", headers=auth(editor))
        assert count.json() == {"count": 0}

    def test_camel_case_read_toggle(self, client, created, viewer):
        notification_id = client.get("/api/v1/notifications/", headers=auth(viewer)).json()[0]["id"]

        response = client.patch(
            f"/api/v1/notifications/{notification_id}",
            json={"isRead": True},
            headers=auth(viewer),
        )

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert response.json()["read_at"] is not None

    def test_mark_all_read(self, client, created, owner):
        response = client.patch("/api/v1/notifications/mark-all-read", headers=auth(owner))

        assert response.json() == {"marked": 1}
        unread = client.get(
            "/api/v1/notifications/", params={"unread_only": True}, headers=auth(owner)
        )
        assert unread.json() == []

    def test_other_users_notification_is_404(self, client, created, session, editor, viewer):
        foreign = session.exec(
            select(Notification).where(Notification.user_id == editor.id)
        ).one()

        response = client.delete(f"/api/v1/notifications/{foreign.id}", headers=auth(viewer))

        assert response.status_code == 404

    def test_delete_own_notification(self, client, created, session, viewer):
        own = session.exec(
            select(Notification).where(Notification.user_id == viewer.id)
        ).one()

        response = client.delete(f"/api/v1/notifications/{own.id}", headers=auth(viewer))

        assert response.status_code == 200
        session.expire_all()
        assert session.get(Notification, own.id) is None


class TestActivityRoute:
    def test_actor_sees_own_activity(self, client, calendar, owner, session):
        client.post(
            f"/api/v1/calendars/{calendar.id}/events",
            json=_event_body(),
            headers=auth(owner),
        )

        response = client.get("/api/v1/activity/", headers=auth(owner))

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 1
        assert items[0]["details"].startswith('You created event "Planning" in calendar "Team"')
        assert len(session.exec(select(Activity)).all()) == 3


class _PingingRedis:
    def __init__(self, error=None):
        self.error = error

    def ping(self):
        if self.error:
            raise self.error
        return True


class TestHealth:
    def test_health(self, client):
        assert client.get("/api/v1/health/").json() == {"status": "ok"}

    def test_ready_when_database_and_redis_answer(self, client, engine, monkeypatch):
        monkeypatch.setattr(health, "engine", engine)
        monkeypatch.setattr(health, "get_redis_client", lambda: _PingingRedis())

        response = client.get("/api/v1/health/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "database": "connected",
            "redis": "connected",
        }

    def test_not_ready_without_redis(self, client, engine, monkeypatch):
        monkeypatch.setattr(health, "engine", engine)
        monkeypatch.setattr(
            health,
            "get_redis_client",
            lambda: _PingingRedis(RedisConnectionError("connection refused")),
        )

        response = client.get("/api/v1/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["database"] == "connected"
        assert body["redis"] == "disconnected"
        assert "connection refused" in body["errors"]["redis"]
