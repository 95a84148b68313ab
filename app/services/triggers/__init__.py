from app.services.triggers.base import (
    CandidateNotification,
    SendSlot,
    TriggerEvaluator,
)
from app.services.triggers.deadline import DeadlineEvaluator
from app.services.triggers.mood import MoodEvaluator
from app.services.triggers.performance import PerformanceEvaluator
from app.services.triggers.ai_suggestion import AISuggestionEvaluator
from app.services.triggers.achievement import AchievementEvaluator


def default_evaluators() -> list[TriggerEvaluator]:
    """One evaluator per trigger category, in evaluation order."""
    return [
        DeadlineEvaluator(),
        MoodEvaluator(),
        PerformanceEvaluator(),
        AISuggestionEvaluator(),
        AchievementEvaluator(),
    ]


__all__ = [
    "CandidateNotification",
    "SendSlot",
    "TriggerEvaluator",
    "DeadlineEvaluator",
    "MoodEvaluator",
    "PerformanceEvaluator",
    "AISuggestionEvaluator",
    "AchievementEvaluator",
    "default_evaluators",
]
