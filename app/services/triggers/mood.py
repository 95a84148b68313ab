"""Mood triggers: check-ins combined with workload."""

from datetime import timedelta

from app.models.notification_template import TriggerCategory
from app.services.mood_analyzer import MoodDirection, average_sentiment, LOW_SENTIMENT_MAX
from app.services.time_helpers import calendar_days_until
from app.services.triggers.base import TriggerEvaluator, SendSlot

HEAVY_LOAD_ASSIGNMENTS = 3
STRESS_DEADLINE_DAYS = 3
STRESS_MIN_ASSIGNMENTS = 2
LOW_MOOD_STREAK_DAYS = 5
# Earliest-3 vs latest-3 needs at least this many of the last 7 samples
IMPROVEMENT_MIN_SAMPLES = 6


class MoodEvaluator(TriggerEvaluator):
    category = TriggerCategory.MOOD

    def evaluate(self, context, preferences):
        trend = context.mood_trend
        candidates = []

        if trend.average < 3 and context.assignment_count >= HEAVY_LOAD_ASSIGNMENTS:
            candidates.append(self.candidate(
                "heavy_load_low_mood",
                SendSlot.AFTERNOON,
                95,
                variables={"assignment_count": context.assignment_count},
                dedup_window=timedelta(hours=48),
            ))

        recent = context.recent_mood
        if recent is not None and recent.sentiment <= LOW_SENTIMENT_MAX:
            due_soon = [
                a for a in context.upcoming_assignments
                if a.due_at is not None
                and 0 <= calendar_days_until(context.now, a.due_at, context.timezone) <= STRESS_DEADLINE_DAYS
            ]
            if len(due_soon) >= STRESS_MIN_ASSIGNMENTS:
                candidates.append(self.candidate(
                    "stressed_with_deadlines",
                    SendSlot.EVENING,
                    90,
                    variables={"assignment_count": len(due_soon)},
                    dedup_window=timedelta(hours=24),
                ))

        if trend.consecutive_low_days >= LOW_MOOD_STREAK_DAYS:
            candidates.append(self.candidate(
                "consistently_low_mood",
                SendSlot.MORNING,
                95,
                variables={"days": trend.consecutive_low_days},
                slot_hour=10,
                dedup_window=timedelta(hours=72),
            ))

        if trend.direction == MoodDirection.IMPROVING and len(trend.recent) >= IMPROVEMENT_MIN_SAMPLES:
            # trend.recent is newest first
            earliest_avg = average_sentiment(trend.recent[-3:])
            latest_avg = average_sentiment(trend.recent[:3])
            if earliest_avg < 3 and latest_avg > 4:
                candidates.append(self.candidate(
                    "mood_improvement",
                    SendSlot.IMMEDIATE,
                    50,
                    dedup_window=timedelta(hours=168),
                ))

        return candidates
