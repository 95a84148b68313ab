import asyncio
import logging
from contextlib import asynccontextmanager

import sentry_sdk
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings
from app.database import async_session_maker, init_db
from app.services.scheduler_service import SchedulerService
from app.services.template_catalog import seed_default_templates

logger = logging.getLogger(__name__)

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize Sentry if DSN is provided
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
    )


@asynccontextmanager
async def lifespan():
    """Worker lifespan: tables and templates up, scheduler running."""
    # Startup
    await init_db()
    async with async_session_maker() as db:
        await seed_default_templates(db)

    scheduler_service = SchedulerService(async_session_maker, settings)
    scheduler = AsyncIOScheduler()

    # Trigger evaluation for all users
    scheduler.add_job(
        scheduler_service.run_cycle,
        CronTrigger(minute=f"*/{settings.evaluation_interval_minutes}"),
        id="notification_triggers",
        name="Evaluate notification triggers for all users",
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        f"Notification trigger scheduler started, every {settings.evaluation_interval_minutes} minutes"
    )

    yield

    # Shutdown
    scheduler.shutdown()
    logger.info("Notification trigger scheduler stopped")


async def main():
    async with lifespan():
        await asyncio.Event().wait()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Worker interrupted")
