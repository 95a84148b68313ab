"""
Smart notification trigger engine.

One evaluation of one user:
1. Load preferences and resolve the user's timezone
2. Aggregate the academic and mood context
3. Run every enabled trigger category, each isolated and time-boxed
4. For each candidate, highest priority first and under the per-user lock:
   schedule -> gate -> render -> conditional insert -> audit
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings, get_settings
from app.models.notification_preferences import NotificationPreferences
from app.repositories.base import (
    AuditRepository,
    ContextRepository,
    PreferencesRepository,
    QueueRepository,
    TemplateRepository,
    TriggerLogRecord,
)
from app.repositories.sql import (
    SqlAuditRepository,
    SqlContextRepository,
    SqlPreferencesRepository,
    SqlQueueRepository,
    SqlTemplateRepository,
)
from app.schemas.notification import EvaluationReport
from app.services.context_service import ContextAggregator
from app.services.notification_gate import NotificationGate
from app.services.queue_writer import QueueWriter
from app.services.send_time_scheduler import SendTimeScheduler
from app.services.template_renderer import TemplateRenderer
from app.services.time_helpers import as_utc, user_zone
from app.services.trigger_context import UserContext
from app.services.triggers import (
    AchievementEvaluator,
    CandidateNotification,
    TriggerEvaluator,
    default_evaluators,
)

logger = logging.getLogger(__name__)

REASON_NO_PREFERENCES = "no preferences"
REASON_ALL_DISABLED = "all categories disabled"
REASON_TEMPLATE_NOT_FOUND = "template not found"
REASON_TIMED_OUT = "evaluation timed out"


@dataclass
class CategoryFailure:
    category: str
    reason: str


class NotificationEngine:
    """Evaluates trigger rules for a user and queues the notifications they earn."""

    def __init__(
        self,
        context_repo: ContextRepository,
        preferences_repo: PreferencesRepository,
        template_repo: TemplateRepository,
        queue_repo: QueueRepository,
        audit_repo: AuditRepository,
        evaluators: Optional[list[TriggerEvaluator]] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()

        self.preferences = preferences_repo
        self.queue = queue_repo
        self.audit = audit_repo
        self.evaluators = evaluators if evaluators is not None else default_evaluators()

        self.category_timeout = settings.category_timeout_seconds
        self.default_timezone = settings.default_timezone

        self.aggregator = ContextAggregator(
            context_repo,
            upcoming_window_days=settings.upcoming_window_days,
            mood_sample_limit=settings.mood_sample_limit,
        )
        self.gate = NotificationGate(queue_repo)
        self.renderer = TemplateRenderer(template_repo)
        self.scheduler = SendTimeScheduler(
            slot_hours=settings.slot_hours,
            quiet_hours_bypass_priority=settings.quiet_hours_bypass_priority,
        )
        self.writer = QueueWriter(queue_repo, audit_repo)

    async def run_for_user(
        self,
        user_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> EvaluationReport:
        """Run one evaluation cycle for a user."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        report = EvaluationReport(user_id=user_id, evaluated_at=now)

        preferences = await self.preferences.get(user_id)
        if preferences is None:
            logger.info(f"Skipping user {user_id}: no notification preferences")
            report.skipped_reason = REASON_NO_PREFERENCES
            return report

        if not preferences.any_category_enabled():
            report.skipped_reason = REASON_ALL_DISABLED
            return report

        tz = user_zone(preferences.timezone, self.default_timezone)
        context = await self.aggregator.build(user_id, now, tz)

        enabled = [e for e in self.evaluators if preferences.is_category_enabled(e.category)]
        results = await asyncio.gather(*[
            self._evaluate_category(evaluator, context, preferences)
            for evaluator in enabled
        ])

        candidates: list[CandidateNotification] = []
        failures: list[CategoryFailure] = []
        for result in results:
            if isinstance(result, CategoryFailure):
                failures.append(result)
            else:
                candidates.extend(result)

        # Audit writes share the queue's session, so they happen after the gather
        for failure in failures:
            report.failed_categories.append(failure.category)
            await self._audit_category_failure(user_id, failure)

        candidates.sort(key=lambda c: c.priority, reverse=True)
        report.candidates = len(candidates)

        for candidate in candidates:
            await self._process_candidate(user_id, candidate, preferences, now, tz, report)

        logger.info(
            f"Evaluated user {user_id}: {report.candidates} candidates, "
            f"{len(report.created)} queued, {len(report.failed_categories)} categories failed"
        )
        return report

    async def notify_achievement(
        self,
        user_id: uuid.UUID,
        template_key: str,
        variables: dict,
        entity_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[uuid.UUID]:
        """Queue an achievement notification right after the user earns it.

        Goes through the same gate, scheduler and audit as periodic
        candidates. Returns the notification id, or None if it was not queued.
        """
        now = as_utc(now) if now else datetime.now(timezone.utc)

        evaluator = next(
            (e for e in self.evaluators if isinstance(e, AchievementEvaluator)),
            AchievementEvaluator(),
        )
        candidate = evaluator.for_event(template_key, variables, entity_id=entity_id)

        preferences = await self.preferences.get(user_id)
        if preferences is None:
            logger.info(f"Skipping achievement {template_key} for user {user_id}: no notification preferences")
            return None

        tz = user_zone(preferences.timezone, self.default_timezone)
        report = EvaluationReport(user_id=user_id, evaluated_at=now, candidates=1)
        await self._process_candidate(user_id, candidate, preferences, now, tz, report)
        return report.created[0] if report.created else None

    async def _evaluate_category(
        self,
        evaluator: TriggerEvaluator,
        context: UserContext,
        preferences: NotificationPreferences,
    ) -> list[CandidateNotification] | CategoryFailure:
        category = evaluator.category.value
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(evaluator.evaluate, context, preferences),
                timeout=self.category_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"{category} evaluation timed out for user {context.user_id}")
            return CategoryFailure(category, REASON_TIMED_OUT)
        except Exception as e:
            logger.error(f"{category} evaluation failed for user {context.user_id}: {e}", exc_info=True)
            return CategoryFailure(category, f"evaluation failed: {e}")

    async def _audit_category_failure(self, user_id: uuid.UUID, failure: CategoryFailure) -> None:
        try:
            await self.audit.record(TriggerLogRecord(
                user_id=user_id,
                trigger_type=failure.category,
                reason=failure.reason,
            ))
        except Exception as e:
            logger.error(f"Failed to audit {failure.category} failure for user {user_id}: {e}")

    async def _process_candidate(
        self,
        user_id: uuid.UUID,
        candidate: CandidateNotification,
        preferences: NotificationPreferences,
        now: datetime,
        tz: ZoneInfo,
        report: EvaluationReport,
    ) -> None:
        try:
            scheduled = self.scheduler.schedule(candidate, preferences, now, tz)

            async with self.queue.locked(user_id):
                decision = await self.gate.check(user_id, candidate, preferences, now, tz, send_at=scheduled.at)
                if not decision.admitted:
                    if decision.audit:
                        await self.writer.record(user_id, candidate, decision.reason)
                        report.reject(decision.reason)
                    return

                rendered = await self.renderer.render(candidate)
                if rendered is None:
                    await self.writer.record(user_id, candidate, REASON_TEMPLATE_NOT_FOUND)
                    report.reject(REASON_TEMPLATE_NOT_FOUND)
                    return

                outcome = await self.writer.write(user_id, candidate, rendered, scheduled, preferences, now)

            if outcome.created:
                report.created.append(outcome.notification_id)
            else:
                report.reject(outcome.reason)
        except Exception as e:
            logger.error(f"Error processing {candidate.dedup_key} for user {user_id}: {e}", exc_info=True)
            report.reject("error")
            try:
                await self.writer.record(user_id, candidate, f"error: {e}")
            except Exception as audit_error:
                logger.error(f"Failed to audit {candidate.dedup_key} for user {user_id}: {audit_error}")


def create_notification_engine(
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
    evaluators: Optional[list[TriggerEvaluator]] = None,
) -> NotificationEngine:
    """Wire the engine to SQLAlchemy repositories.

    Queue, audit, template and preference access share the per-user session
    `db`; context reads open their own sessions from `session_factory`.
    """
    return NotificationEngine(
        context_repo=SqlContextRepository(session_factory),
        preferences_repo=SqlPreferencesRepository(db),
        template_repo=SqlTemplateRepository(db),
        queue_repo=SqlQueueRepository(db),
        audit_repo=SqlAuditRepository(db),
        evaluators=evaluators,
        settings=settings,
    )
