"""Small constructors for context records used across tests."""

import uuid
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.services.mood_analyzer import MoodSample, analyze
from app.services.trigger_context import (
    AssignmentInfo,
    CalendarEventInfo,
    CourseInfo,
    StudySessionInfo,
    SubmissionInfo,
    UserContext,
)
from tests.conftest import FIXED_NOW

EMOTION_FOR_SENTIMENT = {1: "sad", 2: "worried", 3: "tired", 4: "content", 5: "hopeful", 6: "happy"}


def assignment(due_at, name="Essay", **kwargs) -> AssignmentInfo:
    return AssignmentInfo(id=kwargs.pop("id", uuid.uuid4()), name=name, due_at=due_at, **kwargs)


def course(name="Biology", current_grade=None, previous_grade=None) -> CourseInfo:
    return CourseInfo(id=uuid.uuid4(), name=name, current_grade=current_grade, previous_grade=previous_grade)


def submission(**kwargs) -> SubmissionInfo:
    kwargs.setdefault("id", uuid.uuid4())
    kwargs.setdefault("assignment_id", uuid.uuid4())
    return SubmissionInfo(**kwargs)


def study_session(start_time, minutes=60, title="Chemistry review") -> StudySessionInfo:
    return StudySessionInfo(
        id=uuid.uuid4(),
        title=title,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=minutes),
    )


def calendar_event(start_at, event_type="exam", title="Calculus") -> CalendarEventInfo:
    return CalendarEventInfo(id=uuid.uuid4(), title=title, start_at=start_at, event_type=event_type)


def moods(sentiments, newest: date | None = None) -> list[MoodSample]:
    """One sample per consecutive day, sentiments listed newest first."""
    newest = newest or FIXED_NOW.date()
    return [
        MoodSample(
            emotion=EMOTION_FOR_SENTIMENT[value],
            sentiment=value,
            intensity=3,
            check_date=newest - timedelta(days=offset),
        )
        for offset, value in enumerate(sentiments)
    ]


def make_context(now: datetime = FIXED_NOW, tz: str = "UTC", mood_samples=(), **kwargs) -> UserContext:
    ordered = tuple(sorted(mood_samples, key=lambda m: m.check_date, reverse=True))
    user_id = kwargs.pop("user_id", uuid.uuid4())
    kwargs = {name: tuple(values) for name, values in kwargs.items()}
    return UserContext(
        user_id=user_id,
        now=now,
        timezone=ZoneInfo(tz),
        mood_samples=ordered,
        mood_trend=analyze(list(ordered)),
        **kwargs,
    )
