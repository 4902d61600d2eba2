from .activity import ActivityRead
from .event import CreatorRead, EventCreate, EventRead, EventUpdate, ReminderIn, ReminderRead
from .notification import NotificationRead, NotificationUpdate

__all__ = [
    "ActivityRead",
    "CreatorRead",
    "EventCreate",
    "EventRead",
    "EventUpdate",
    "NotificationRead",
    "NotificationUpdate",
    "ReminderIn",
    "ReminderRead",
]
