"""
Admission control for candidate notifications.

Checks run in a fixed order and the first failure wins:
1. Category toggle (dropped silently)
2. Duplicate within the candidate's dedup window
3. Daily cap over the local day, counting sent and still-pending rows
4. Minimum spacing between delivery times, sent or pending

Rows count at their delivery time: sent_at once sent, scheduled_for while
pending. Quiet hours never reject; the send-time scheduler defers instead.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.models.notification_preferences import NotificationPreferences
from app.repositories.base import QueueRepository
from app.services.time_helpers import as_utc, local_day_bounds
from app.services.triggers.base import CandidateNotification

logger = logging.getLogger(__name__)

REASON_DUPLICATE = "duplicate"
REASON_DAILY_CAP = "rate limit: daily cap"
REASON_TOO_SOON = "rate limit: too soon"
REASON_CATEGORY_DISABLED = "category disabled"


@dataclass(frozen=True)
class GateDecision:
    admitted: bool
    reason: Optional[str] = None
    audit: bool = True

    @classmethod
    def admit(cls) -> "GateDecision":
        return cls(admitted=True)

    @classmethod
    def reject(cls, reason: str, audit: bool = True) -> "GateDecision":
        return cls(admitted=False, reason=reason, audit=audit)


class NotificationGate:
    def __init__(self, queue: QueueRepository):
        self.queue = queue

    async def check(
        self,
        user_id: uuid.UUID,
        candidate: CandidateNotification,
        preferences: NotificationPreferences,
        now: datetime,
        tz: ZoneInfo,
        send_at: Optional[datetime] = None,
    ) -> GateDecision:
        """Decide whether a candidate may be queued for delivery at send_at.

        send_at defaults to now. Must run inside QueueRepository.locked() so
        the counts it reads still hold when the insert happens.
        """
        if not preferences.is_category_enabled(candidate.category):
            logger.debug(f"{candidate.category.value} disabled for user {user_id}, dropping {candidate.template_key}")
            return GateDecision.reject(REASON_CATEGORY_DISABLED, audit=False)

        now = as_utc(now)
        send_at = as_utc(send_at) if send_at else now

        if await self.queue.has_recent(user_id, candidate.dedup_key, now - candidate.dedup_window):
            return GateDecision.reject(REASON_DUPLICATE)

        # Today's cap, plus the cap of the day it will go out on
        days = {local_day_bounds(now, tz), local_day_bounds(send_at, tz)}
        for day_start, day_end in sorted(days):
            admitted = await self.queue.count_scheduled_between(user_id, day_start, day_end)
            if admitted >= preferences.max_notifications_per_day:
                return GateDecision.reject(REASON_DAILY_CAP)

        min_gap = preferences.min_hours_between_notifications or 0
        if min_gap > 0:
            gap = timedelta(hours=min_gap)
            # Exactly min_gap apart is allowed
            nearby = await self.queue.count_scheduled_between(
                user_id,
                send_at - gap + timedelta(microseconds=1),
                send_at + gap,
            )
            if nearby:
                return GateDecision.reject(REASON_TOO_SOON)

        return GateDecision.admit()
