"""Writes admitted notifications to the queue and records the audit trail."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.models.notification_preferences import NotificationPreferences
from app.repositories.base import (
    AuditRepository,
    NotificationRecord,
    NotificationStorageError,
    QueueRepository,
    TriggerLogRecord,
)
from app.services.send_time_scheduler import ScheduledTime
from app.services.template_renderer import RenderedNotification
from app.services.time_helpers import as_utc
from app.services.triggers.base import CandidateNotification

logger = logging.getLogger(__name__)

REASON_CREATED = "notification created"
REASON_DUPLICATE = "duplicate"


@dataclass(frozen=True)
class WriteOutcome:
    reason: str
    notification_id: Optional[uuid.UUID] = None

    @property
    def created(self) -> bool:
        return self.notification_id is not None


def dedup_bucket(now: datetime, candidate: CandidateNotification) -> int:
    """Index of the dedup window containing now; the queue is unique per bucket."""
    window = max(1, int(candidate.dedup_window.total_seconds()))
    return int(as_utc(now).timestamp()) // window


def candidate_snapshot(candidate: CandidateNotification) -> dict:
    """JSON-safe copy of a candidate for the audit log."""
    return {
        "category": candidate.category.value,
        "template_key": candidate.template_key,
        "slot": candidate.slot.value,
        "priority": candidate.priority,
        "dedup_key": candidate.dedup_key,
        "dedup_window_hours": candidate.dedup_window.total_seconds() / 3600,
        "variables": {k: _json_value(v) for k, v in candidate.variables.items()},
        "metadata": {k: _json_value(v) for k, v in candidate.metadata.items()},
    }


def _json_value(value):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class QueueWriter:
    def __init__(self, queue: QueueRepository, audit: AuditRepository):
        self.queue = queue
        self.audit = audit

    async def record(
        self,
        user_id: uuid.UUID,
        candidate: CandidateNotification,
        reason: str,
        extra: Optional[dict] = None,
    ) -> None:
        """Audit a candidate that did not produce a notification."""
        await self.audit.record(TriggerLogRecord(
            user_id=user_id,
            trigger_type=candidate.category.value,
            template_key=candidate.template_key,
            reason=reason,
            trigger_data={**candidate_snapshot(candidate), **(extra or {})},
        ))

    async def write(
        self,
        user_id: uuid.UUID,
        candidate: CandidateNotification,
        rendered: RenderedNotification,
        scheduled: ScheduledTime,
        preferences: NotificationPreferences,
        now: datetime,
    ) -> WriteOutcome:
        """Insert the notification and audit the outcome."""
        record = NotificationRecord(
            user_id=user_id,
            template_key=candidate.template_key,
            notification_type=rendered.notification_type,
            dedup_key=candidate.dedup_key,
            dedup_bucket=dedup_bucket(now, candidate),
            title=rendered.title,
            body=rendered.body,
            priority=rendered.priority,
            scheduled_for=scheduled.at,
            created_at=as_utc(now),
            channels=preferences.enabled_channels(),
            action_url=rendered.action_url,
            action_label=rendered.action_label,
            data={k: _json_value(v) for k, v in {**candidate.metadata, **candidate.variables}.items()},
        )

        trigger_data = {
            **candidate_snapshot(candidate),
            "scheduled_for": scheduled.at.isoformat(),
            "deferred_for_quiet_hours": scheduled.deferred,
            "past_deadline": scheduled.past_deadline,
            "moved_up_for_deadline": scheduled.moved_up,
        }

        try:
            notification_id = await self.queue.insert(record)
        except NotificationStorageError as e:
            logger.error(f"Failed to queue notification: {e} payload={record.as_payload()}")
            await self.record(user_id, candidate, f"error: {e}", trigger_data)
            return WriteOutcome(reason=f"error: {e}")

        if notification_id is None:
            # Lost the conditional insert to a concurrent writer
            await self.record(user_id, candidate, REASON_DUPLICATE, trigger_data)
            return WriteOutcome(reason=REASON_DUPLICATE)

        await self.audit.record(TriggerLogRecord(
            user_id=user_id,
            trigger_type=candidate.category.value,
            template_key=candidate.template_key,
            reason=REASON_CREATED,
            notification_created=True,
            notification_id=notification_id,
            trigger_data=trigger_data,
        ))
        logger.info(f"Queued {candidate.template_key} for user {user_id} at {scheduled.at.isoformat()}")
        return WriteOutcome(reason=REASON_CREATED, notification_id=notification_id)
