"""Database configuration and connection management."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings


def _async_url(url: str) -> str:
    """Convert a sync PostgreSQL URL to the asyncpg driver."""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url.replace("postgresql://", "postgresql+asyncpg://", 1)


engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None

# Without DATABASE_URL the service runs on the in-memory store
if settings.database_url:
    engine = create_async_engine(
        _async_url(settings.database_url),
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        connect_args={
            "timeout": settings.store_timeout_seconds,
            "server_settings": {
                "application_name": settings.app_name,
            },
        },
    )

    # Async session factory
    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def ping_database() -> None:
    """Run ``SELECT 1``; raises if the database cannot be reached."""
    if engine is None:
        raise RuntimeError("DATABASE_URL is not configured")
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        await ping_database()
        return True
    except Exception:
        return False


async def dispose_engine() -> None:
    """Close pooled connections."""
    if engine is not None:
        await engine.dispose()
