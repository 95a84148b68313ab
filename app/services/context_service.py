"""User context aggregation.

Gathers the academic and mood snapshot the trigger evaluators read. Each
data source is fetched concurrently and independently: a failing source is
logged and contributes an empty slice so the remaining categories still run.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from app.repositories.base import ContextRepository
from app.services.mood_analyzer import analyze
from app.services.time_helpers import as_utc
from app.services.trigger_context import UserContext

logger = logging.getLogger(__name__)


class ContextAggregator:
    """Builds one UserContext per user per evaluation cycle."""

    RECENT_GRADES_LIMIT = 10

    def __init__(
        self,
        repository: ContextRepository,
        upcoming_window_days: int = 14,
        mood_sample_limit: int = 30,
    ):
        self.repository = repository
        self.upcoming_window = timedelta(days=upcoming_window_days)
        self.mood_sample_limit = mood_sample_limit

    async def build(self, user_id: uuid.UUID, now: datetime, tz: ZoneInfo) -> UserContext:
        now = as_utc(now)
        repo = self.repository

        sources = {
            "upcoming_assignments": repo.get_upcoming_assignments(user_id, now, now + self.upcoming_window),
            "courses": repo.get_courses(user_id),
            "submissions": repo.get_submissions(user_id),
            "missing_assignments": repo.get_missing_assignments(user_id),
            "late_submissions": repo.get_late_submissions(user_id),
            "upcoming_sessions": repo.get_upcoming_sessions(user_id, now),
            "calendar_events": repo.get_upcoming_events(user_id, now),
            "mood_samples": repo.get_mood_samples(user_id, self.mood_sample_limit),
        }

        results = await asyncio.gather(*sources.values(), return_exceptions=True)

        data = {}
        for name, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.warning(f"Context source {name} failed for user {user_id}: {result}")
                data[name] = ()
            else:
                data[name] = tuple(result)

        graded = sorted(
            (s for s in data["submissions"] if s.graded_at is not None and s.score is not None),
            key=lambda s: s.graded_at,
            reverse=True,
        )
        mood_trend = analyze(list(data["mood_samples"]))

        return UserContext(
            user_id=user_id,
            now=now,
            timezone=tz,
            upcoming_assignments=data["upcoming_assignments"],
            courses=data["courses"],
            submissions=data["submissions"],
            missing_assignments=data["missing_assignments"],
            late_submissions=data["late_submissions"],
            recent_grades=tuple(graded[:self.RECENT_GRADES_LIMIT]),
            upcoming_sessions=data["upcoming_sessions"],
            calendar_events=data["calendar_events"],
            # Newest first, as the mood rules expect
            mood_samples=tuple(
                sorted(data["mood_samples"], key=lambda m: m.check_date, reverse=True)
            ),
            mood_trend=mood_trend,
        )
