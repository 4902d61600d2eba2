from .activity import Activity, ActivityAction
from .calendar import Calendar
from .calendar_share import CalendarShare, ShareRole, ShareStatus
from .event import Event, EventReminder
from .notification import Notification, NotificationType
from .user import User

__all__ = [
    "Activity",
    "ActivityAction",
    "Calendar",
    "CalendarShare",
    "Event",
    "EventReminder",
    "Notification",
    "NotificationType",
    "ShareRole",
    "ShareStatus",
    "User",
]
