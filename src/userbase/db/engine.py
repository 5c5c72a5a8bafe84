"""Async SQLAlchemy engine and session factory.

Learn: one pooled AsyncEngine per process, one AsyncSession per request
(handed out by the get_db dependency).

If the client disconnects, the request task is cancelled and the awaited
statement is cancelled with it. Nothing here retries.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from userbase.config import settings
from userbase.db.tables import metadata


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine. Pool sizing only applies to server databases."""
    options = {"echo": echo}
    if make_url(url).get_backend_name() != "sqlite":
        # Connection pool: min 5, max 20 connections.
        options.update(pool_size=5, max_overflow=15)
    return create_async_engine(url, **options)


engine = build_engine(settings.database_url, echo=settings.debug)

# Sessions keep loaded values after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create the users table for the current policy if it does not exist."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(metadata.create_all)


async def get_db() -> AsyncSession:
    """Request-scoped session."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
