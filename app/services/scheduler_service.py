"""Service for running the periodic notification evaluation cycle."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings, get_settings
from app.repositories.sql import SqlPreferencesRepository
from app.schemas.notification import CycleStats, EvaluationReport
from app.services.notification_engine import create_notification_engine

logger = logging.getLogger(__name__)


class SchedulerService:
    """Evaluates every user with notifications enabled, a bounded number at a time."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def _get_active_user_ids(self) -> list[uuid.UUID]:
        async with self.session_factory() as db:
            return await SqlPreferencesRepository(db).list_active_user_ids()

    async def evaluate_user(
        self,
        user_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> EvaluationReport:
        """Evaluate one user in a session of their own."""
        async with self.session_factory() as db:
            engine = create_notification_engine(db, self.session_factory, self.settings)
            return await engine.run_for_user(user_id, now)

    async def evaluate_all_users(self, now: Optional[datetime] = None) -> CycleStats:
        """Evaluate all active users; one user's failure never stops the others."""
        now = now or datetime.now(timezone.utc)
        stats = CycleStats()

        user_ids = await self._get_active_user_ids()
        stats.users = len(user_ids)
        logger.info(f"Evaluating notification triggers for {len(user_ids)} users")

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_users)

        async def run(user_id: uuid.UUID) -> None:
            async with semaphore:
                try:
                    report = await self.evaluate_user(user_id, now)
                    stats.evaluated += 1
                    stats.notifications_created += len(report.created)
                except Exception as e:
                    logger.error(f"Error evaluating notifications for {user_id}: {e}")
                    stats.failed += 1

        await asyncio.gather(*[run(user_id) for user_id in user_ids])

        logger.info(
            f"Notification cycle complete: {stats.evaluated} evaluated, "
            f"{stats.failed} failed, {stats.notifications_created} queued"
        )
        return stats

    async def run_cycle(self) -> CycleStats:
        """Scheduled job entry point, bounded by the cycle deadline."""
        try:
            return await asyncio.wait_for(
                self.evaluate_all_users(),
                timeout=self.settings.cycle_deadline_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Notification cycle exceeded {self.settings.cycle_deadline_seconds}s and was cancelled"
            )
            return CycleStats(timed_out=True)
