"""Deadline triggers: assignments, quizzes/exams and study sessions coming up."""

import math

from app.models.notification_template import TriggerCategory
from app.services.time_helpers import calendar_days_until, hours_until, minutes_until, format_time
from app.services.triggers.base import TriggerEvaluator, SendSlot


DUE_TODAY_MAX_HOURS = 12
SESSION_LEAD_MINUTES = 15


def urgency_boost(hours_left: float) -> int:
    """Extra priority for a deadline that is closing in."""
    if hours_left <= 1:
        return 10
    if hours_left <= 3:
        return 6
    if hours_left <= 6:
        return 3
    return 0


class DeadlineEvaluator(TriggerEvaluator):
    category = TriggerCategory.DEADLINE

    def evaluate(self, context, preferences):
        now, tz = context.now, context.timezone
        candidates = []

        for assignment in context.upcoming_assignments:
            if assignment.due_at is None:
                continue

            days = calendar_days_until(now, assignment.due_at, tz)
            hours_left = hours_until(now, assignment.due_at)
            metadata = {
                "assignment_id": str(assignment.id),
                "course_id": str(assignment.course_id) if assignment.course_id else None,
            }

            if days == 1:
                candidates.append(self.candidate(
                    "assignment_due_tomorrow",
                    SendSlot.MORNING,
                    80,
                    variables={
                        "assignment_name": assignment.name,
                        "due_time": format_time(assignment.due_at, tz),
                    },
                    entity_id=str(assignment.id),
                    deadline=assignment.due_at,
                    metadata=metadata,
                ))
            elif days == 0 and 0 < hours_left <= DUE_TODAY_MAX_HOURS:
                candidates.append(self.candidate(
                    "assignment_due_today",
                    SendSlot.IMMEDIATE,
                    90 + urgency_boost(hours_left),
                    variables={
                        "assignment_name": assignment.name,
                        "due_time": format_time(assignment.due_at, tz),
                        "hours_left": math.ceil(hours_left),
                    },
                    entity_id=str(assignment.id),
                    deadline=assignment.due_at,
                    metadata=metadata,
                ))

        for event in context.calendar_events:
            if not event.is_type("quiz", "exam"):
                continue
            if calendar_days_until(now, event.start_at, tz) != 1:
                continue

            candidates.append(self.candidate(
                "quiz_tomorrow",
                SendSlot.EVENING,
                85,
                variables={
                    "course_name": event.title or "your course",
                    "quiz_time": format_time(event.start_at, tz),
                },
                entity_id=str(event.id),
                deadline=event.start_at,
                metadata={
                    "event_id": str(event.id),
                    "course_id": str(event.course_id) if event.course_id else None,
                },
            ))

        for session in context.upcoming_sessions:
            if minutes_until(now, session.start_time) != SESSION_LEAD_MINUTES:
                continue

            candidates.append(self.candidate(
                "study_session_starting",
                SendSlot.IMMEDIATE,
                70,
                variables={"session_name": session.title},
                entity_id=str(session.id),
                deadline=session.start_time,
                metadata={"session_id": str(session.id)},
            ))

        return candidates
