"""Notification preferences model for user-specific notification settings."""

import uuid
from datetime import datetime, time, timezone
from sqlalchemy import String, DateTime, Boolean, Integer, Float, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.notification_template import TriggerCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationPreferences(Base):
    """User preferences for smart notifications. Read-only to the trigger engine."""

    __tablename__ = "notification_preferences"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
    )

    # Channel toggles
    in_app_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    push_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sms_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Contact info used to decide whether a channel is reachable
    email_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    phone_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Category toggles
    deadline_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    mood_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    performance_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    ai_suggestions: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    achievement_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Quiet hours
    quiet_hours_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    quiet_hours_start: Mapped[time | None] = mapped_column(
        Time,
        nullable=True,
        default=time(22, 0),  # 10 PM
    )
    quiet_hours_end: Mapped[time | None] = mapped_column(
        Time,
        nullable=True,
        default=time(7, 0),  # 7 AM
    )

    # Frequency limits
    max_notifications_per_day: Mapped[int] = mapped_column(
        Integer,
        default=5,
        nullable=False,
    )
    min_hours_between_notifications: Mapped[float] = mapped_column(
        Float,
        default=1.0,
        nullable=False,
    )

    # Timezone
    timezone: Mapped[str] = mapped_column(
        String(50),
        default="UTC",
        nullable=False,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<NotificationPreferences user={self.user_id} max={self.max_notifications_per_day}/day>"

    def is_category_enabled(self, category: TriggerCategory | str) -> bool:
        """Check if a trigger category is enabled."""
        category_map = {
            TriggerCategory.DEADLINE: self.deadline_notifications,
            TriggerCategory.MOOD: self.mood_notifications,
            TriggerCategory.PERFORMANCE: self.performance_notifications,
            TriggerCategory.AI_SUGGESTION: self.ai_suggestions,
            TriggerCategory.ACHIEVEMENT: self.achievement_notifications,
        }
        return category_map.get(TriggerCategory(category), False)

    def any_category_enabled(self) -> bool:
        return any(self.is_category_enabled(category) for category in TriggerCategory)

    def is_quiet_hours(self, current_time: time) -> bool:
        """Check if a local wall-clock time is within quiet hours."""
        if not self.quiet_hours_enabled:
            return False

        start = self.quiet_hours_start
        end = self.quiet_hours_end

        if start is None or end is None or start == end:
            return False

        # Handle overnight quiet hours (e.g., 22:00 - 07:00)
        if start > end:
            return current_time >= start or current_time < end
        else:
            return start <= current_time < end

    def enabled_channels(self) -> list[str]:
        """Channels this user can currently be reached on; in_app is the fallback."""
        channels = []
        if self.in_app_enabled:
            channels.append("in_app")
        if self.email_enabled and self.email_address:
            channels.append("email")
        if self.push_enabled:
            channels.append("push")
        if self.sms_enabled and self.phone_number and self.phone_verified:
            channels.append("sms")

        if not channels:
            channels.append("in_app")
        return channels
