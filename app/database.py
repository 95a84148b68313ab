import ssl
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

settings = get_settings()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for the given URL.

    asyncpg needs SSL passed via connect_args, not the URL. SQLite URLs skip
    the pool sizing options which its pool class does not accept.
    """
    connect_args = {}

    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            echo=settings.debug,
            connect_args={"check_same_thread": False},
        )

    # Remove sslmode from URL and configure SSL properly for asyncpg
    if "sslmode=require" in database_url:
        database_url = database_url.replace("?sslmode=require", "").replace("&sslmode=require", "")
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context

    return create_async_engine(
        database_url,
        echo=settings.debug,
        pool_pre_ping=True,  # Verify connections before use
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        connect_args=connect_args,
    )


engine = build_engine(settings.database_url)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def init_db(bind: AsyncEngine | None = None):
    """Create notification engine tables."""
    # Register every mapped class on Base.metadata
    import app.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
