"""Evaluator interface and the candidate notifications evaluators produce."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from app.models.notification_preferences import NotificationPreferences
from app.models.notification_template import TriggerCategory
from app.services.trigger_context import UserContext

DEFAULT_DEDUP_WINDOW = timedelta(hours=24)


class SendSlot(str, Enum):
    """Named time-of-day bucket a candidate asks to be delivered in."""
    IMMEDIATE = "immediate"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    WEEKEND = "weekend"


@dataclass(frozen=True)
class CandidateNotification:
    """A proposed notification, before admission control."""

    category: TriggerCategory
    template_key: str
    slot: SendSlot
    priority: int
    variables: dict = field(default_factory=dict)
    dedup_window: timedelta = DEFAULT_DEDUP_WINDOW
    entity_id: Optional[str] = None  # Keys the dedup window per assignment/course/event
    slot_hour: Optional[int] = None  # Overrides the slot's default hour
    deadline: Optional[datetime] = None  # When the notification stops being useful
    metadata: dict = field(default_factory=dict)

    @property
    def dedup_key(self) -> str:
        if self.entity_id:
            return f"{self.template_key}:{self.entity_id}"
        return self.template_key


class TriggerEvaluator(ABC):
    """One trigger category's rule set.

    Evaluators are pure: they read the frozen context and the user's
    preferences and return candidates. Toggles, dedup and rate limits are
    applied later by the gate.
    """

    category: TriggerCategory

    @abstractmethod
    def evaluate(
        self,
        context: UserContext,
        preferences: NotificationPreferences,
    ) -> list[CandidateNotification]:
        ...

    def candidate(self, template_key: str, slot: SendSlot, priority: int, **kwargs) -> CandidateNotification:
        return CandidateNotification(
            category=self.category,
            template_key=template_key,
            slot=slot,
            priority=max(0, min(100, priority)),
            **kwargs,
        )
