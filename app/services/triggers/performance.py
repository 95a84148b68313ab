"""Performance triggers: grade drops, missing work, low quiz scores, late streaks."""

from datetime import timedelta

from app.models.notification_template import TriggerCategory
from app.services.time_helpers import as_utc
from app.services.triggers.base import TriggerEvaluator, SendSlot

GRADE_DROP_POINTS = 5
MISSING_MIN_COUNT = 2
LOW_QUIZ_PERCENT = 70
DEFAULT_POINTS_POSSIBLE = 100
LATE_LOOKBACK = timedelta(days=14)
LATE_MIN_COUNT = 3


class PerformanceEvaluator(TriggerEvaluator):
    category = TriggerCategory.PERFORMANCE

    def evaluate(self, context, preferences):
        candidates = []

        for course in context.courses:
            if course.previous_grade is None or course.current_grade is None:
                continue
            if course.previous_grade - course.current_grade < GRADE_DROP_POINTS:
                continue

            candidates.append(self.candidate(
                "grade_dropped",
                SendSlot.AFTERNOON,
                85,
                variables={
                    "course_name": course.name,
                    "new_grade": f"{course.current_grade:.1f}",
                    "previous_grade": f"{course.previous_grade:.1f}",
                },
                entity_id=str(course.id),
                dedup_window=timedelta(days=14),
                metadata={"course_id": str(course.id)},
            ))

        missing_count = len(context.missing_assignments)
        if missing_count >= MISSING_MIN_COUNT:
            candidates.append(self.candidate(
                "missing_assignments",
                SendSlot.MORNING,
                80,
                variables={"count": missing_count},
                dedup_window=timedelta(days=7),
            ))

        course_names = {c.id: c.name for c in context.courses}
        for submission in context.recent_grades:
            if submission.score is None or submission.graded_at is None:
                continue
            if (submission.assignment_type or "").lower() != "quiz":
                continue

            points = submission.points_possible or DEFAULT_POINTS_POSSIBLE
            percentage = submission.score / points * 100
            if percentage >= LOW_QUIZ_PERCENT:
                continue

            candidates.append(self.candidate(
                "low_quiz_score",
                SendSlot.AFTERNOON,
                75,
                variables={
                    "quiz_name": submission.assignment_name,
                    "score": f"{percentage:.1f}",
                    "course_name": course_names.get(submission.course_id, "your course"),
                },
                slot_hour=15,
                entity_id=str(submission.assignment_id),
                dedup_window=timedelta(days=7),
                metadata={
                    "assignment_id": str(submission.assignment_id),
                    "submission_id": str(submission.id),
                },
            ))

        cutoff = context.now - LATE_LOOKBACK
        late_count = sum(
            1 for s in context.late_submissions
            if s.submitted_at is not None and as_utc(s.submitted_at) >= cutoff
        )
        if late_count >= LATE_MIN_COUNT:
            candidates.append(self.candidate(
                "late_submissions",
                SendSlot.MORNING,
                80,
                variables={"count": late_count},
                slot_hour=10,
                dedup_window=timedelta(days=7),
            ))

        return candidates
