"""Rule-based study suggestions: study blocks, workload warnings, exam review."""

from datetime import datetime, time, timedelta

from app.models.notification_template import TriggerCategory
from app.services.time_helpers import as_utc, calendar_days_until
from app.services.trigger_context import UserContext
from app.services.triggers.base import TriggerEvaluator, SendSlot

STUDY_BLOCK_HOURS = 2
STUDY_BLOCK_MIN_DAYS = 2
STUDY_BLOCK_MAX_DAYS = 5
WORKLOAD_WARNING_PERCENT = 80
WORKLOAD_WARNING_WEEKDAYS = (4, 5)  # Friday, Saturday
REVIEW_MIN_DAYS = 3
REVIEW_MAX_DAYS = 7

# Workload heuristic
HOURS_PER_ASSIGNMENT = 2
HOURS_PER_EXAM = 5
AVAILABLE_HOURS_PER_DAY = 8


def relative_time_phrase(days_until: int) -> str:
    """Human phrasing for when to start a study block."""
    if days_until <= STUDY_BLOCK_MIN_DAYS:
        return "this evening"
    return "in the next few days"


def next_week_bounds(context: UserContext) -> tuple[datetime, datetime]:
    """Monday 00:00 through the following Monday 00:00 in the user's timezone."""
    local_today = as_utc(context.now).astimezone(context.timezone).date()
    monday = local_today + timedelta(days=7 - local_today.weekday())
    start = datetime.combine(monday, time.min, tzinfo=context.timezone)
    return start, start + timedelta(days=7)


def workload_percentage(context: UserContext, start: datetime, end: datetime) -> int:
    """Projected share of available study hours already claimed in [start, end)."""
    assignment_hours = HOURS_PER_ASSIGNMENT * sum(
        1 for a in context.upcoming_assignments
        if a.due_at is not None and start <= a.due_at < end
    )
    session_hours = sum(
        (s.end_time - s.start_time).total_seconds() / 3600
        for s in context.upcoming_sessions
        if start <= s.start_time < end
    )
    exam_hours = HOURS_PER_EXAM * sum(
        1 for e in context.calendar_events
        if e.is_type("quiz", "exam") and start <= e.start_at < end
    )

    days = max(1, (end - start).days)
    available = days * AVAILABLE_HOURS_PER_DAY
    total = assignment_hours + session_hours + exam_hours
    return min(100, round(total / available * 100))


class AISuggestionEvaluator(TriggerEvaluator):
    category = TriggerCategory.AI_SUGGESTION

    def evaluate(self, context, preferences):
        now, tz = context.now, context.timezone
        candidates = []

        dated = [a for a in context.upcoming_assignments if a.due_at is not None]
        if dated:
            nearest = min(dated, key=lambda a: a.due_at)
            days = calendar_days_until(now, nearest.due_at, tz)
            if STUDY_BLOCK_MIN_DAYS <= days <= STUDY_BLOCK_MAX_DAYS:
                candidates.append(self.candidate(
                    "ai_study_block",
                    SendSlot.IMMEDIATE,
                    60,
                    variables={
                        "duration": STUDY_BLOCK_HOURS,
                        "when": relative_time_phrase(days),
                        "assignment_name": nearest.name,
                    },
                    dedup_window=timedelta(hours=12),
                    metadata={"assignment_id": str(nearest.id)},
                ))

        if as_utc(now).astimezone(tz).weekday() in WORKLOAD_WARNING_WEEKDAYS:
            load = workload_percentage(context, *next_week_bounds(context))
            if load > WORKLOAD_WARNING_PERCENT:
                candidates.append(self.candidate(
                    "ai_workload_warning",
                    SendSlot.WEEKEND,
                    65,
                    variables={"load": load},
                    dedup_window=timedelta(days=7),
                ))

        for event in context.calendar_events:
            if not event.is_type("exam"):
                continue
            days = calendar_days_until(now, event.start_at, tz)
            if not REVIEW_MIN_DAYS <= days <= REVIEW_MAX_DAYS:
                continue

            candidates.append(self.candidate(
                "ai_review_recommendation",
                SendSlot.AFTERNOON,
                70,
                variables={
                    "course_name": event.title or "your course",
                    "days": days,
                    "topics": "key concepts from recent lectures",
                },
                entity_id=str(event.id),
                dedup_window=timedelta(days=7),
                metadata={"event_id": str(event.id)},
            ))

        return candidates
