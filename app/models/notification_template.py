"""Notification template model: keyed title/body strings with {{variable}} placeholders."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import String, DateTime, Boolean, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TriggerCategory(str, Enum):
    """Group of related trigger rules sharing one preference toggle."""
    DEADLINE = "deadline"
    MOOD = "mood"
    PERFORMANCE = "performance"
    AI_SUGGESTION = "ai_suggestion"
    ACHIEVEMENT = "achievement"


class NotificationTemplate(Base):
    """Authored notification content, looked up by template key."""

    __tablename__ = "notification_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    template_key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )
    type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )  # deadline, mood, performance, ai_suggestion, achievement

    title_template: Mapped[str] = mapped_column(String(255), nullable=False)
    body_template: Mapped[str] = mapped_column(Text, nullable=False)
    action_url_template: Mapped[str | None] = mapped_column(String(500), nullable=True)
    action_label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<NotificationTemplate {self.template_key} ({self.type})>"
