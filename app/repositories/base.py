"""Read/write interfaces the trigger engine is constructed with.

SQLAlchemy implementations live in app.repositories.sql; tests substitute
in-memory fakes.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import AsyncContextManager, Optional, Protocol

from app.models.notification_preferences import NotificationPreferences
from app.models.notification_template import NotificationTemplate
from app.services.mood_analyzer import MoodSample
from app.services.trigger_context import (
    AssignmentInfo,
    CourseInfo,
    SubmissionInfo,
    StudySessionInfo,
    CalendarEventInfo,
)


class NotificationStorageError(Exception):
    """Raised when a queue insert fails for a reason other than a dedup conflict."""


@dataclass
class NotificationRecord:
    """Fields written to the notification queue for one admitted candidate."""
    user_id: uuid.UUID
    template_key: str
    notification_type: str
    dedup_key: str
    dedup_bucket: int
    title: str
    body: str
    priority: int
    scheduled_for: datetime
    created_at: datetime
    channels: list[str] = field(default_factory=list)
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    data: dict = field(default_factory=dict)
    status: str = "pending"

    def as_payload(self) -> dict:
        """JSON-friendly view for logs."""
        payload = asdict(self)
        payload["user_id"] = str(self.user_id)
        payload["scheduled_for"] = self.scheduled_for.isoformat()
        payload["created_at"] = self.created_at.isoformat()
        return payload


@dataclass
class TriggerLogRecord:
    """One audit entry: why a notification was or was not created."""
    user_id: uuid.UUID
    trigger_type: str
    reason: str
    notification_created: bool = False
    template_key: Optional[str] = None
    trigger_data: dict = field(default_factory=dict)
    notification_id: Optional[uuid.UUID] = None


class ContextRepository(Protocol):
    async def get_upcoming_assignments(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> list[AssignmentInfo]: ...

    async def get_courses(self, user_id: uuid.UUID) -> list[CourseInfo]: ...

    async def get_submissions(self, user_id: uuid.UUID) -> list[SubmissionInfo]: ...

    async def get_missing_assignments(self, user_id: uuid.UUID) -> list[AssignmentInfo]: ...

    async def get_late_submissions(self, user_id: uuid.UUID) -> list[SubmissionInfo]: ...

    async def get_upcoming_sessions(
        self, user_id: uuid.UUID, after: datetime
    ) -> list[StudySessionInfo]: ...

    async def get_upcoming_events(
        self, user_id: uuid.UUID, after: datetime
    ) -> list[CalendarEventInfo]: ...

    async def get_mood_samples(self, user_id: uuid.UUID, limit: int) -> list[MoodSample]: ...


class PreferencesRepository(Protocol):
    async def get(self, user_id: uuid.UUID) -> Optional[NotificationPreferences]: ...

    async def list_active_user_ids(self) -> list[uuid.UUID]: ...


class TemplateRepository(Protocol):
    async def get_active(self, template_key: str) -> Optional[NotificationTemplate]: ...


class QueueRepository(Protocol):
    def locked(self, user_id: uuid.UUID) -> AsyncContextManager[None]:
        """Critical section around the per-user gate checks and insert."""
        ...

    async def has_recent(
        self, user_id: uuid.UUID, dedup_key: str, since: datetime
    ) -> bool: ...

    async def count_scheduled_between(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> int:
        """Pending or sent rows delivered (or due to be) in [start, end)."""
        ...

    async def insert(self, record: NotificationRecord) -> Optional[uuid.UUID]:
        """Conditionally insert; returns None when the dedup key/bucket already exists."""
        ...


class AuditRepository(Protocol):
    async def record(self, entry: TriggerLogRecord) -> None: ...
