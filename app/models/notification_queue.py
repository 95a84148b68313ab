"""Notification queue model: rendered notifications awaiting delivery."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import String, DateTime, Integer, BigInteger, Text, Index, JSON, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from app.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

# Rows that still hold their dedup slot; failed rows free it
DEDUP_ACTIVE_WHERE = text("status IN ('pending', 'sent')")


class NotificationStatus(str, Enum):
    """Lifecycle of a queued notification. The delivery pipeline owns sent/failed."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationChannel(str, Enum):
    """Delivery channels a notification can fan out to."""
    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


class QueuedNotification(Base):
    """A notification written by the trigger engine as pending."""

    __tablename__ = "notification_queue"

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

    template_key: Mapped[str] = mapped_column(String(100), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(30), nullable=False)

    # Deduplication: template key, optionally suffixed with an entity id, plus
    # the window bucket the row was created in
    dedup_key: Mapped[str] = mapped_column(String(255), nullable=False)
    dedup_bucket: Mapped[int] = mapped_column(BigInteger, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    action_label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    channels: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    scheduled_for: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=NotificationStatus.PENDING.value,
    )
    sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    data: Mapped[dict | None] = mapped_column(
        JSONType,
        nullable=True,
    )  # Entity ids and deep link info

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index(
            "uq_notification_queue_dedup",
            "user_id",
            "dedup_key",
            "dedup_bucket",
            unique=True,
            postgresql_where=DEDUP_ACTIVE_WHERE,
            sqlite_where=DEDUP_ACTIVE_WHERE,
        ),
        Index("idx_notification_queue_user_key_created", "user_id", "dedup_key", "created_at"),
        Index("idx_notification_queue_user_status_sent", "user_id", "status", "sent_at"),
    )

    def __repr__(self) -> str:
        return f"<QueuedNotification {self.template_key}: {self.title[:30]} ({self.status})>"
