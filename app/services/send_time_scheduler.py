"""Maps a candidate's named send slot to a concrete delivery time."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta, SA

from app.models.notification_preferences import NotificationPreferences
from app.services.time_helpers import as_utc
from app.services.triggers.base import CandidateNotification, SendSlot

logger = logging.getLogger(__name__)

DEFAULT_SLOT_HOURS = {
    SendSlot.MORNING.value: 9,
    SendSlot.AFTERNOON.value: 14,
    SendSlot.EVENING.value: 19,
    SendSlot.WEEKEND.value: 10,
}


@dataclass(frozen=True)
class ScheduledTime:
    """Resolved delivery time in UTC.

    deferred: quiet hours pushed it back. moved_up: the slot fell after the
    deadline so it goes out now. past_deadline: it still lands after the deadline.
    """
    at: datetime
    deferred: bool = False
    past_deadline: bool = False
    moved_up: bool = False


class SendTimeScheduler:
    """Resolves slots in the user's local time and clamps them out of quiet hours."""

    def __init__(
        self,
        slot_hours: Optional[dict[str, int]] = None,
        quiet_hours_bypass_priority: Optional[int] = None,
    ):
        self.slot_hours = {**DEFAULT_SLOT_HOURS, **(slot_hours or {})}
        self.quiet_hours_bypass_priority = quiet_hours_bypass_priority

    def slot_time(
        self,
        slot: SendSlot,
        now: datetime,
        tz: ZoneInfo,
        hour: Optional[int] = None,
    ) -> datetime:
        """Next occurrence of the slot at or after now, in UTC."""
        if slot == SendSlot.IMMEDIATE:
            return as_utc(now)

        local_now = as_utc(now).astimezone(tz)
        hour = self.slot_hours[slot.value] if hour is None else hour

        if slot == SendSlot.WEEKEND:
            # Coming Saturday; today when it is Saturday and the hour is still ahead
            target = local_now + relativedelta(weekday=SA, hour=hour, minute=0, second=0, microsecond=0)
            if target < local_now:
                target += timedelta(days=7)
        else:
            target = local_now.replace(hour=hour, minute=0, second=0, microsecond=0)
            if target < local_now:
                target += timedelta(days=1)

        return target.astimezone(timezone.utc)

    def defer_past_quiet_hours(
        self,
        when: datetime,
        preferences: NotificationPreferences,
        tz: ZoneInfo,
    ) -> datetime:
        """Advance a time that falls in quiet hours to the end of the window."""
        local = as_utc(when).astimezone(tz)
        if not preferences.is_quiet_hours(local.time()):
            return as_utc(when)

        end = preferences.quiet_hours_end
        window_end = local.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
        if window_end <= local:
            window_end += timedelta(days=1)
        return window_end.astimezone(timezone.utc)

    def bypasses_quiet_hours(self, candidate: CandidateNotification) -> bool:
        return (
            self.quiet_hours_bypass_priority is not None
            and candidate.slot == SendSlot.IMMEDIATE
            and candidate.priority >= self.quiet_hours_bypass_priority
        )

    def schedule(
        self,
        candidate: CandidateNotification,
        preferences: NotificationPreferences,
        now: datetime,
        tz: ZoneInfo,
    ) -> ScheduledTime:
        requested = self.slot_time(candidate.slot, now, tz, candidate.slot_hour)
        deadline = as_utc(candidate.deadline) if candidate.deadline is not None else None

        # A slot after the thing it announces is useless; send now instead
        moved_up = deadline is not None and requested > deadline and requested > as_utc(now)
        if moved_up:
            logger.info(
                f"{candidate.slot.value} slot for {candidate.dedup_key} falls after its deadline, "
                f"sending immediately"
            )
            requested = as_utc(now)

        if self.bypasses_quiet_hours(candidate):
            at = requested
        else:
            at = self.defer_past_quiet_hours(requested, preferences, tz)

        deferred = at != requested
        past_deadline = deadline is not None and at > deadline
        if past_deadline:
            logger.warning(
                f"{candidate.dedup_key} scheduled for {at.isoformat()}, "
                f"after its deadline {deadline.isoformat()}"
            )

        return ScheduledTime(at=at, deferred=deferred, past_deadline=past_deadline, moved_up=moved_up)
