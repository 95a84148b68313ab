from app.models.academic import (
    Course,
    Assignment,
    Submission,
    StudySession,
    CalendarEvent,
    MoodCheck,
)
from app.models.notification_template import NotificationTemplate, TriggerCategory
from app.models.notification_preferences import NotificationPreferences
from app.models.notification_queue import (
    QueuedNotification,
    NotificationStatus,
    NotificationChannel,
)
from app.models.notification_trigger_log import NotificationTriggerLog

__all__ = [
    "Course",
    "Assignment",
    "Submission",
    "StudySession",
    "CalendarEvent",
    "MoodCheck",
    "NotificationTemplate",
    "TriggerCategory",
    "NotificationPreferences",
    "QueuedNotification",
    "NotificationStatus",
    "NotificationChannel",
    "NotificationTriggerLog",
]
