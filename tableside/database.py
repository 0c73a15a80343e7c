"""
Database Connection Module
Builds the SQLAlchemy async engine behind the shared row store.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from tableside.core.config import get_settings


# Base class for all our models
class Base(DeclarativeBase):
    pass


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for the configured (or given) database URL."""
    settings = get_settings()
    url = database_url or settings.database_url
    options = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=10)
    return create_async_engine(url, **options)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False  # Objects remain accessible after commit
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register models on Base.metadata
    from tableside import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
