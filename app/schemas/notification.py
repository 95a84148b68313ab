"""
Schemas for the notification trigger engine.

Evaluation reports returned per user and per cycle, and the template
definitions used to seed the template catalog.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class EvaluationReport(BaseModel):
    """Outcome of one evaluation of one user."""

    user_id: UUID
    evaluated_at: datetime
    skipped_reason: Optional[str] = None

    candidates: int = 0
    created: list[UUID] = Field(default_factory=list)
    rejected: dict[str, int] = Field(
        default_factory=dict,
        description="Candidates not queued, counted by audit reason",
    )
    failed_categories: list[str] = Field(default_factory=list)

    def reject(self, reason: str) -> None:
        self.rejected[reason] = self.rejected.get(reason, 0) + 1


class CycleStats(BaseModel):
    """Totals for one pass over every active user."""

    users: int = 0
    evaluated: int = 0
    failed: int = 0
    notifications_created: int = 0
    timed_out: bool = False


class NotificationTemplateIn(BaseModel):
    """Template definition used when seeding the catalog."""

    template_key: str = Field(..., max_length=100)
    type: str = Field(..., max_length=50)
    title_template: str
    body_template: str
    action_url_template: Optional[str] = None
    action_label: Optional[str] = Field(None, max_length=100)
    priority: int = Field(50, ge=0, le=100)
    is_active: bool = True
    description: Optional[str] = None
