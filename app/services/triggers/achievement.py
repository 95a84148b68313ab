"""Achievement notifications.

Streaks, perfect weeks and grade improvements fire from the action that earned
them (see NotificationEngine.notify_achievement), so the periodic cycle has
nothing to evaluate here.
"""

from typing import Optional

from app.models.notification_template import TriggerCategory
from app.services.triggers.base import CandidateNotification, TriggerEvaluator, SendSlot

ACHIEVEMENT_TEMPLATES = frozenset({
    "streak_milestone",
    "perfect_week",
    "grade_improvement",
})
ACHIEVEMENT_PRIORITY = 60


class AchievementEvaluator(TriggerEvaluator):
    category = TriggerCategory.ACHIEVEMENT

    def evaluate(self, context, preferences):
        return []

    def for_event(
        self,
        template_key: str,
        variables: dict,
        entity_id: Optional[str] = None,
    ) -> CandidateNotification:
        """Build the candidate for an achievement that was just earned."""
        if template_key not in ACHIEVEMENT_TEMPLATES:
            raise ValueError(f"Unknown achievement template: {template_key}")

        return self.candidate(
            template_key,
            SendSlot.IMMEDIATE,
            ACHIEVEMENT_PRIORITY,
            variables=dict(variables),
            entity_id=entity_id,
            metadata={"achievement": template_key},
        )
