"""Append-only audit trail of trigger evaluations."""

import uuid
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Boolean, Text, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.notification_queue import JSONType


class NotificationTriggerLog(Base):
    """Why a notification was (or was not) created. Never updated."""

    __tablename__ = "notification_triggers_log"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )

    trigger_type: Mapped[str] = mapped_column(String(30), nullable=False)
    template_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    trigger_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    notification_created: Mapped[bool] = mapped_column(nullable=False, default=False)
    notification_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_triggers_log_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<NotificationTriggerLog {self.trigger_type}/{self.template_key}: {self.reason}>"
