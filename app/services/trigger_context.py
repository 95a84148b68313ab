"""Immutable per-cycle snapshot of everything the trigger evaluators read."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from app.services.mood_analyzer import MoodSample, MoodTrend, MoodDirection, NEUTRAL_SENTIMENT


@dataclass(frozen=True)
class AssignmentInfo:
    id: uuid.UUID
    name: str
    due_at: Optional[datetime]
    course_id: Optional[uuid.UUID] = None
    points_possible: Optional[float] = None
    assignment_type: str = "assignment"
    is_missing: bool = False


@dataclass(frozen=True)
class CourseInfo:
    id: uuid.UUID
    name: str
    current_grade: Optional[float] = None
    previous_grade: Optional[float] = None


@dataclass(frozen=True)
class SubmissionInfo:
    """A submission joined with the assignment fields the evaluators need."""
    id: uuid.UUID
    assignment_id: uuid.UUID
    course_id: Optional[uuid.UUID] = None
    score: Optional[float] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    is_late: bool = False
    is_missing: bool = False
    assignment_name: str = ""
    assignment_type: str = "assignment"
    points_possible: Optional[float] = None


@dataclass(frozen=True)
class StudySessionInfo:
    id: uuid.UUID
    title: str
    start_time: datetime
    end_time: datetime
    course_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class CalendarEventInfo:
    id: uuid.UUID
    title: str
    start_at: datetime
    event_type: Optional[str] = None
    end_at: Optional[datetime] = None
    course_id: Optional[uuid.UUID] = None

    def is_type(self, *types: str) -> bool:
        return bool(self.event_type) and self.event_type.lower() in types


@dataclass(frozen=True)
class UserContext:
    """Per-user state for one evaluation cycle."""

    user_id: uuid.UUID
    now: datetime
    timezone: ZoneInfo

    upcoming_assignments: tuple[AssignmentInfo, ...] = ()
    courses: tuple[CourseInfo, ...] = ()
    submissions: tuple[SubmissionInfo, ...] = ()
    missing_assignments: tuple[AssignmentInfo, ...] = ()
    late_submissions: tuple[SubmissionInfo, ...] = ()
    recent_grades: tuple[SubmissionInfo, ...] = ()
    upcoming_sessions: tuple[StudySessionInfo, ...] = ()
    calendar_events: tuple[CalendarEventInfo, ...] = ()

    mood_samples: tuple[MoodSample, ...] = ()
    mood_trend: MoodTrend = field(
        default_factory=lambda: MoodTrend(
            average=float(NEUTRAL_SENTIMENT),
            direction=MoodDirection.STABLE,
        )
    )

    @property
    def recent_mood(self) -> Optional[MoodSample]:
        return self.mood_samples[0] if self.mood_samples else None

    @property
    def assignment_count(self) -> int:
        return len(self.upcoming_assignments)
