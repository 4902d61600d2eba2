from __future__ import annotations

from html import escape

from calmanage.core.config import settings
from calmanage.models import Event

_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: 'Segoe UI', Tahoma, sans-serif; background-color: #f8fafc;">
  <div style="max-width: 480px; margin: 0 auto; background: #ffffff; border-radius: 16px;">
    <div style="background: {color}; padding: 32px; text-align: center; color: #ffffff;">
      <h1 style="margin: 0; font-size: 24px;">{heading}</h1>
      <p style="margin: 8px 0 0;">{calendar}</p>
    </div>
    <div style="padding: 32px;">
      <h2 style="margin: 0 0 16px; text-align: center;">{title}</h2>
      <p><strong>When:</strong> {starts} &ndash; {ends}</p>
      {location}
      <p style="text-align: center;"><a href="{link}">View in CalManage</a></p>
    </div>
    <p style="padding: 16px 32px; font-size: 12px; color: #94a3b8; text-align: center;">
      You're receiving this because you have access to "{calendar}"
    </p>
  </div>
</body>
</html>
"""


def _render(event: Event, calendar_name: str, heading: str, color: str) -> str:
    location = (
        f"<p><strong>Where:</strong> {escape(event.location)}</p>"
        if event.location
        else ""
    )
    return _TEMPLATE.format(
        color=color,
        heading=heading,
        calendar=escape(calendar_name),
        title=escape(event.title),
        starts=event.starts_at.strftime("%Y-%m-%d %H:%M UTC"),
        ends=event.ends_at.strftime("%Y-%m-%d %H:%M UTC"),
        location=location,
        link=escape(settings.FRONTEND_URL),
    )


def event_started_email(event: Event, calendar_name: str) -> tuple[str, str]:
    """Return (subject, html) for the event-started email."""
    return (
        f"Event Started: {event.title}",
        _render(event, calendar_name, "Event Started!", "#10b981"),
    )


def event_ended_email(event: Event, calendar_name: str) -> tuple[str, str]:
    """Return (subject, html) for the event-ended email."""
    return (
        f"Event Ended: {event.title}",
        _render(event, calendar_name, "Event Ended", "#ef4444"),
    )
