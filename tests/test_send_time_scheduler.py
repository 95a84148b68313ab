"""Tests for slot resolution and quiet-hour deferral."""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.models.notification_template import TriggerCategory
from app.services.send_time_scheduler import SendTimeScheduler
from app.services.triggers.base import CandidateNotification, SendSlot
from tests.conftest import FIXED_NOW, make_preferences

UTC = ZoneInfo("UTC")


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def candidate(slot: SendSlot, priority: int = 50, **kwargs) -> CandidateNotification:
    return CandidateNotification(
        category=TriggerCategory.DEADLINE,
        template_key="assignment_due_today",
        slot=slot,
        priority=priority,
        **kwargs,
    )


class TestSlotTime:
    """Test named slot to concrete time mapping."""

    def setup_method(self):
        self.scheduler = SendTimeScheduler()

    def test_immediate_is_now(self):
        assert self.scheduler.slot_time(SendSlot.IMMEDIATE, FIXED_NOW, UTC) == FIXED_NOW

    def test_passed_slot_rolls_to_tomorrow(self):
        # 15:00 is after the 9:00 morning slot
        assert self.scheduler.slot_time(SendSlot.MORNING, FIXED_NOW, UTC) == utc(2025, 3, 13, 9)
        assert self.scheduler.slot_time(SendSlot.AFTERNOON, FIXED_NOW, UTC) == utc(2025, 3, 13, 14)

    def test_upcoming_slot_is_today(self):
        assert self.scheduler.slot_time(SendSlot.EVENING, FIXED_NOW, UTC) == utc(2025, 3, 12, 19)

    def test_slot_at_exactly_now_is_today(self):
        assert self.scheduler.slot_time(SendSlot.AFTERNOON, FIXED_NOW, UTC, hour=15) == FIXED_NOW

    def test_hour_override(self):
        assert self.scheduler.slot_time(SendSlot.MORNING, FIXED_NOW, UTC, hour=10) == utc(2025, 3, 13, 10)

    def test_resolved_in_user_timezone(self):
        """9:00 in New York (EDT) is 13:00 UTC."""
        tz = ZoneInfo("America/New_York")
        assert self.scheduler.slot_time(SendSlot.MORNING, FIXED_NOW, tz) == utc(2025, 3, 13, 13)

    def test_weekend_is_coming_saturday(self):
        assert self.scheduler.slot_time(SendSlot.WEEKEND, FIXED_NOW, UTC) == utc(2025, 3, 15, 10)

    def test_weekend_on_saturday_before_slot(self):
        saturday_morning = utc(2025, 3, 15, 8)
        assert self.scheduler.slot_time(SendSlot.WEEKEND, saturday_morning, UTC) == utc(2025, 3, 15, 10)

    def test_weekend_on_saturday_after_slot(self):
        saturday_noon = utc(2025, 3, 15, 12)
        assert self.scheduler.slot_time(SendSlot.WEEKEND, saturday_noon, UTC) == utc(2025, 3, 22, 10)

    def test_configured_slot_hours(self):
        scheduler = SendTimeScheduler(slot_hours={"evening": 18})
        assert scheduler.slot_time(SendSlot.EVENING, FIXED_NOW, UTC) == utc(2025, 3, 12, 18)
        assert scheduler.slot_time(SendSlot.MORNING, FIXED_NOW, UTC) == utc(2025, 3, 13, 9)


class TestQuietHours:
    """Test deferral out of quiet hours."""

    def setup_method(self):
        self.prefs = make_preferences(
            quiet_hours_enabled=True,
            quiet_hours_start=time(22, 0),
            quiet_hours_end=time(7, 0),
        )

    def test_late_evening_deferred_to_next_morning(self):
        scheduler = SendTimeScheduler()
        result = scheduler.schedule(candidate(SendSlot.IMMEDIATE), self.prefs, utc(2025, 3, 12, 23, 30), UTC)

        assert result.at == utc(2025, 3, 13, 7)
        assert result.deferred is True

    def test_early_morning_deferred_to_same_morning(self):
        scheduler = SendTimeScheduler()
        result = scheduler.schedule(candidate(SendSlot.IMMEDIATE), self.prefs, utc(2025, 3, 13, 3), UTC)

        assert result.at == utc(2025, 3, 13, 7)

    def test_slot_inside_quiet_hours_deferred(self):
        scheduler = SendTimeScheduler(slot_hours={"evening": 23})
        result = scheduler.schedule(candidate(SendSlot.EVENING), self.prefs, FIXED_NOW, UTC)

        assert result.at == utc(2025, 3, 13, 7)
        assert result.deferred is True

    def test_outside_quiet_hours_unchanged(self):
        result = SendTimeScheduler().schedule(candidate(SendSlot.EVENING), self.prefs, FIXED_NOW, UTC)

        assert result.at == utc(2025, 3, 12, 19)
        assert result.deferred is False

    def test_window_end_is_not_quiet(self):
        result = SendTimeScheduler().schedule(candidate(SendSlot.IMMEDIATE), self.prefs, utc(2025, 3, 13, 7), UTC)
        assert result.deferred is False

    def test_same_day_window(self):
        prefs = make_preferences(
            quiet_hours_enabled=True,
            quiet_hours_start=time(12, 0),
            quiet_hours_end=time(14, 0),
        )
        result = SendTimeScheduler().schedule(candidate(SendSlot.IMMEDIATE), prefs, utc(2025, 3, 12, 13), UTC)

        assert result.at == utc(2025, 3, 12, 14)

    def test_quiet_hours_disabled(self):
        prefs = make_preferences(quiet_hours_enabled=False)
        now = utc(2025, 3, 12, 23, 30)
        result = SendTimeScheduler().schedule(candidate(SendSlot.IMMEDIATE), prefs, now, UTC)

        assert result.at == now
        assert result.deferred is False

    def test_quiet_hours_in_user_timezone(self):
        """23:30 UTC is 19:30 in New York, outside the 22:00-07:00 window."""
        now = utc(2025, 3, 12, 23, 30)
        result = SendTimeScheduler().schedule(
            candidate(SendSlot.IMMEDIATE), self.prefs, now, ZoneInfo("America/New_York")
        )

        assert result.at == now

    def test_high_priority_immediate_bypasses_when_configured(self):
        scheduler = SendTimeScheduler(quiet_hours_bypass_priority=90)
        now = utc(2025, 3, 12, 23, 30)

        urgent = scheduler.schedule(candidate(SendSlot.IMMEDIATE, priority=95), self.prefs, now, UTC)
        routine = scheduler.schedule(candidate(SendSlot.IMMEDIATE, priority=80), self.prefs, now, UTC)

        assert urgent.at == now
        assert urgent.deferred is False
        assert routine.at == utc(2025, 3, 13, 7)

    def test_bypass_only_applies_to_immediate(self):
        scheduler = SendTimeScheduler(slot_hours={"evening": 23}, quiet_hours_bypass_priority=90)
        result = scheduler.schedule(candidate(SendSlot.EVENING, priority=95), self.prefs, FIXED_NOW, UTC)

        assert result.deferred is True

    def test_no_bypass_by_default(self):
        result = SendTimeScheduler().schedule(
            candidate(SendSlot.IMMEDIATE, priority=100), self.prefs, utc(2025, 3, 12, 23), UTC
        )
        assert result.deferred is True

    def test_deferral_past_deadline_is_flagged(self):
        now = utc(2025, 3, 12, 23)
        c = candidate(SendSlot.IMMEDIATE, priority=100, deadline=now + timedelta(minutes=45))
        result = SendTimeScheduler().schedule(c, self.prefs, now, UTC)

        assert result.at == utc(2025, 3, 13, 7)
        assert result.past_deadline is True

    def test_deferral_before_deadline_not_flagged(self):
        now = utc(2025, 3, 12, 23)
        c = candidate(SendSlot.IMMEDIATE, deadline=utc(2025, 3, 13, 12))
        result = SendTimeScheduler().schedule(c, self.prefs, now, UTC)

        assert result.deferred is True
        assert result.past_deadline is False


class TestDeadlines:
    """Test slots that would land after the event they announce."""

    def test_slot_after_deadline_sends_now(self):
        """Wednesday 20:00, quiz Thursday 09:00: the evening slot would be Thursday 19:00."""
        now = utc(2025, 3, 12, 20)
        c = candidate(SendSlot.EVENING, deadline=utc(2025, 3, 13, 9))
        result = SendTimeScheduler().schedule(c, make_preferences(), now, UTC)

        assert result.at == now
        assert result.moved_up is True
        assert result.past_deadline is False

    def test_morning_slot_after_early_deadline(self):
        now = utc(2025, 3, 12, 21)
        c = candidate(SendSlot.MORNING, deadline=utc(2025, 3, 13, 8))
        result = SendTimeScheduler().schedule(c, make_preferences(), now, UTC)

        assert result.at == now
        assert result.moved_up is True

    def test_slot_before_deadline_unchanged(self):
        c = candidate(SendSlot.MORNING, deadline=utc(2025, 3, 13, 15))
        result = SendTimeScheduler().schedule(c, make_preferences(), FIXED_NOW, UTC)

        assert result.at == utc(2025, 3, 13, 9)
        assert result.moved_up is False
        assert result.past_deadline is False

    def test_moved_up_then_deferred_out_of_quiet_hours(self):
        prefs = make_preferences(
            quiet_hours_enabled=True,
            quiet_hours_start=time(22, 0),
            quiet_hours_end=time(7, 0),
        )
        c = candidate(SendSlot.MORNING, deadline=utc(2025, 3, 13, 8))
        result = SendTimeScheduler().schedule(c, prefs, utc(2025, 3, 12, 23), UTC)

        assert result.at == utc(2025, 3, 13, 7)
        assert result.moved_up is True
        assert result.deferred is True
        assert result.past_deadline is False

    def test_moved_up_but_deferred_past_deadline(self):
        prefs = make_preferences(
            quiet_hours_enabled=True,
            quiet_hours_start=time(22, 0),
            quiet_hours_end=time(7, 0),
        )
        c = candidate(SendSlot.EVENING, deadline=utc(2025, 3, 13, 6))
        result = SendTimeScheduler().schedule(c, prefs, utc(2025, 3, 12, 23), UTC)

        assert result.at == utc(2025, 3, 13, 7)
        assert result.past_deadline is True
