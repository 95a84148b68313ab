import os

# app.database builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
from datetime import datetime, time, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.config import Settings
from app.database import init_db
from app.models.notification_preferences import NotificationPreferences

# Wednesday afternoon, UTC
FIXED_NOW = datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)


def make_preferences(user_id: uuid.UUID | None = None, **overrides) -> NotificationPreferences:
    """Preferences with every field set; column defaults only apply on insert."""
    fields = dict(
        id=uuid.uuid4(),
        user_id=user_id or uuid.uuid4(),
        in_app_enabled=True,
        email_enabled=False,
        push_enabled=False,
        sms_enabled=False,
        email_address=None,
        phone_number=None,
        phone_verified=False,
        deadline_notifications=True,
        mood_notifications=True,
        performance_notifications=True,
        ai_suggestions=True,
        achievement_notifications=True,
        quiet_hours_enabled=False,
        quiet_hours_start=time(22, 0),
        quiet_hours_end=time(7, 0),
        max_notifications_per_day=5,
        min_hours_between_notifications=1.0,
        timezone="UTC",
    )
    fields.update(overrides)
    return NotificationPreferences(**fields)


def make_settings(**overrides) -> Settings:
    fields = dict(
        database_url="sqlite+aiosqlite:///:memory:",
        category_timeout_seconds=5.0,
        cycle_deadline_seconds=30.0,
    )
    fields.update(overrides)
    return Settings(_env_file=None, **fields)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def settings():
    return make_settings()


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File-backed SQLite so separate sessions see the same database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def test_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
