"""SQLAlchemy implementations of the trigger engine repositories."""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func, and_, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.academic import (
    Assignment,
    CalendarEvent,
    Course,
    MoodCheck,
    StudySession,
    Submission,
)
from app.models.notification_preferences import NotificationPreferences
from app.models.notification_queue import DEDUP_ACTIVE_WHERE, NotificationStatus, QueuedNotification
from app.models.notification_template import NotificationTemplate
from app.models.notification_trigger_log import NotificationTriggerLog
from app.repositories.base import (
    NotificationRecord,
    NotificationStorageError,
    TriggerLogRecord,
)
from app.services.mood_analyzer import MoodSample, sentiment_for_emotion
from app.services.time_helpers import as_utc
from app.services.trigger_context import (
    AssignmentInfo,
    CalendarEventInfo,
    CourseInfo,
    StudySessionInfo,
    SubmissionInfo,
)

logger = logging.getLogger(__name__)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def _assignment_info(a: Assignment) -> AssignmentInfo:
    return AssignmentInfo(
        id=a.id,
        name=a.name,
        due_at=_utc(a.due_at),
        course_id=a.course_id,
        points_possible=a.points_possible,
        assignment_type=a.assignment_type,
        is_missing=a.is_missing,
    )


def _submission_info(s: Submission, a: Assignment) -> SubmissionInfo:
    return SubmissionInfo(
        id=s.id,
        assignment_id=s.assignment_id,
        course_id=s.course_id or a.course_id,
        score=s.score,
        submitted_at=_utc(s.submitted_at),
        graded_at=_utc(s.graded_at),
        is_late=s.is_late,
        is_missing=s.is_missing,
        assignment_name=a.name,
        assignment_type=a.assignment_type,
        points_possible=a.points_possible,
    )


class SqlContextRepository:
    """Reads academic and mood records for one user.

    Each read opens its own short-lived session so the aggregator can run
    them concurrently; a single AsyncSession does not allow that.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _scalars(self, stmt) -> list:
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def _rows(self, stmt) -> list:
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return list(result.all())

    async def get_upcoming_assignments(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> list[AssignmentInfo]:
        assignments = await self._scalars(
            select(Assignment).where(
                and_(
                    Assignment.user_id == user_id,
                    Assignment.due_at.isnot(None),
                    Assignment.due_at > start,
                    Assignment.due_at <= end,
                )
            ).order_by(Assignment.due_at.asc())
        )
        return [_assignment_info(a) for a in assignments]

    async def get_courses(self, user_id: uuid.UUID) -> list[CourseInfo]:
        courses = await self._scalars(
            select(Course).where(Course.user_id == user_id).order_by(Course.name)
        )
        return [
            CourseInfo(
                id=c.id,
                name=c.name,
                current_grade=c.current_grade,
                previous_grade=c.previous_grade,
            )
            for c in courses
        ]

    async def get_submissions(self, user_id: uuid.UUID) -> list[SubmissionInfo]:
        rows = await self._rows(
            select(Submission, Assignment)
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .where(Submission.user_id == user_id)
        )
        return [_submission_info(s, a) for s, a in rows]

    async def get_missing_assignments(self, user_id: uuid.UUID) -> list[AssignmentInfo]:
        missing_submissions = select(Submission.assignment_id).where(
            and_(
                Submission.user_id == user_id,
                Submission.is_missing == True,
            )
        )
        assignments = await self._scalars(
            select(Assignment).where(
                and_(
                    Assignment.user_id == user_id,
                    or_(
                        Assignment.is_missing == True,
                        Assignment.id.in_(missing_submissions),
                    ),
                )
            )
        )
        return [_assignment_info(a) for a in assignments]

    async def get_late_submissions(self, user_id: uuid.UUID) -> list[SubmissionInfo]:
        rows = await self._rows(
            select(Submission, Assignment)
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .where(
                and_(
                    Submission.user_id == user_id,
                    Submission.is_late == True,
                )
            )
        )
        return [_submission_info(s, a) for s, a in rows]

    async def get_upcoming_sessions(
        self, user_id: uuid.UUID, after: datetime
    ) -> list[StudySessionInfo]:
        sessions = await self._scalars(
            select(StudySession).where(
                and_(
                    StudySession.user_id == user_id,
                    StudySession.start_time >= after,
                )
            ).order_by(StudySession.start_time.asc())
        )
        return [
            StudySessionInfo(
                id=s.id,
                title=s.title,
                start_time=as_utc(s.start_time),
                end_time=as_utc(s.end_time),
                course_id=s.course_id,
            )
            for s in sessions
        ]

    async def get_upcoming_events(
        self, user_id: uuid.UUID, after: datetime
    ) -> list[CalendarEventInfo]:
        events = await self._scalars(
            select(CalendarEvent).where(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.start_at >= after,
                )
            ).order_by(CalendarEvent.start_at.asc())
        )
        return [
            CalendarEventInfo(
                id=e.id,
                title=e.title,
                start_at=as_utc(e.start_at),
                event_type=e.event_type,
                end_at=_utc(e.end_at),
                course_id=e.course_id,
            )
            for e in events
        ]

    async def get_mood_samples(self, user_id: uuid.UUID, limit: int) -> list[MoodSample]:
        checks = await self._scalars(
            select(MoodCheck)
            .where(MoodCheck.user_id == user_id)
            .order_by(MoodCheck.check_date.desc())
            .limit(limit)
        )
        return [
            MoodSample(
                emotion=m.emotion,
                sentiment=sentiment_for_emotion(m.emotion),
                intensity=m.intensity,
                check_date=m.check_date,
            )
            for m in checks
        ]


class SqlPreferencesRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: uuid.UUID) -> Optional[NotificationPreferences]:
        result = await self.db.execute(
            select(NotificationPreferences).where(
                NotificationPreferences.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def list_active_user_ids(self) -> list[uuid.UUID]:
        """Users with at least one trigger category enabled."""
        result = await self.db.execute(
            select(NotificationPreferences.user_id).where(
                or_(
                    NotificationPreferences.deadline_notifications == True,
                    NotificationPreferences.mood_notifications == True,
                    NotificationPreferences.performance_notifications == True,
                    NotificationPreferences.ai_suggestions == True,
                    NotificationPreferences.achievement_notifications == True,
                )
            )
        )
        return list(result.scalars().all())


class SqlTemplateRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active(self, template_key: str) -> Optional[NotificationTemplate]:
        result = await self.db.execute(
            select(NotificationTemplate).where(
                and_(
                    NotificationTemplate.template_key == template_key,
                    NotificationTemplate.is_active == True,
                )
            )
        )
        return result.scalar_one_or_none()


class SqlQueueRepository:
    """Notification queue reads and the conditional insert."""

    ACTIVE_STATUSES = (NotificationStatus.PENDING.value, NotificationStatus.SENT.value)

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def locked(self, user_id: uuid.UUID):
        """Serialize gate checks and inserts per user.

        Locks the user's preferences row for the rest of the transaction
        (PostgreSQL). SQLite renders no FOR UPDATE and relies on its
        database-level write lock instead.
        """
        await self.db.execute(
            select(NotificationPreferences.id)
            .where(NotificationPreferences.user_id == user_id)
            .with_for_update()
        )
        try:
            yield
        except Exception:
            await self.db.rollback()
            raise
        else:
            await self.db.commit()

    async def has_recent(
        self, user_id: uuid.UUID, dedup_key: str, since: datetime
    ) -> bool:
        result = await self.db.execute(
            select(func.count(QueuedNotification.id)).where(
                and_(
                    QueuedNotification.user_id == user_id,
                    QueuedNotification.dedup_key == dedup_key,
                    QueuedNotification.created_at >= since,
                    QueuedNotification.status.in_(self.ACTIVE_STATUSES),
                )
            )
        )
        return (result.scalar() or 0) > 0

    async def count_scheduled_between(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> int:
        """Pending or sent rows whose delivery time falls in [start, end).

        Sent rows count at sent_at, pending rows at scheduled_for.
        """
        delivered_at = func.coalesce(QueuedNotification.sent_at, QueuedNotification.scheduled_for)
        result = await self.db.execute(
            select(func.count(QueuedNotification.id)).where(
                and_(
                    QueuedNotification.user_id == user_id,
                    QueuedNotification.status.in_(self.ACTIVE_STATUSES),
                    delivered_at >= start,
                    delivered_at < end,
                )
            )
        )
        return result.scalar() or 0

    def _insert(self):
        if self.db.get_bind().dialect.name == "postgresql":
            return postgresql.insert(QueuedNotification)
        return sqlite.insert(QueuedNotification)

    async def insert(self, record: NotificationRecord) -> Optional[uuid.UUID]:
        """INSERT ... ON CONFLICT DO NOTHING on (user_id, dedup_key, dedup_bucket)."""
        stmt = (
            self._insert()
            .values(
                id=uuid.uuid4(),
                user_id=record.user_id,
                template_key=record.template_key,
                notification_type=record.notification_type,
                dedup_key=record.dedup_key,
                dedup_bucket=record.dedup_bucket,
                title=record.title,
                body=record.body,
                action_url=record.action_url,
                action_label=record.action_label,
                priority=record.priority,
                channels=record.channels,
                scheduled_for=record.scheduled_for,
                status=record.status,
                data=record.data,
                created_at=record.created_at,
            )
            .on_conflict_do_nothing(
                index_elements=["user_id", "dedup_key", "dedup_bucket"],
                index_where=DEDUP_ACTIVE_WHERE,
            )
            .returning(QueuedNotification.id)
        )

        try:
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise NotificationStorageError(str(e)) from e


class SqlAuditRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(self, entry: TriggerLogRecord) -> None:
        """Append an audit entry and commit, closing any open gate transaction."""
        self.db.add(
            NotificationTriggerLog(
                user_id=entry.user_id,
                trigger_type=entry.trigger_type,
                template_key=entry.template_key,
                trigger_data=entry.trigger_data,
                notification_created=entry.notification_created,
                notification_id=entry.notification_id,
                reason=entry.reason,
            )
        )
        await self.db.commit()
