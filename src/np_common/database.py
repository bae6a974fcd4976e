"""Async engine, session factory and the FastAPI session dependency.

One engine per process. Request handlers get a session from
``get_db_session``; background jobs that outlive the request open their own
from ``async_session_factory``.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Declarative base for the users / user_channels / user_devices tables."""


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

# expire_on_commit=False: mapped rows are read after commit (submit re-reads
# the stored preferences in the same session)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def ping_database(bind: AsyncEngine | None = None) -> None:
    """Round-trip ``SELECT 1``; raises whatever the driver raises."""
    async with (bind or engine).connect() as conn:
        await conn.execute(text("SELECT 1"))
