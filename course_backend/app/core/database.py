"""
Database configuration and session management

Configurable connection pooling for production vs local dev. Stores
flush inside the request session; the request boundary (or the
orchestrator, before it touches Redis) commits.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def _pool_options(config) -> dict:
    if config.DSN.startswith("sqlite"):
        # SQLite (local runs, tests) manages its own pool
        return {}
    if config.ENVIRONMENT == "production":
        return {
            "pool_size": config.DB_POOL_SIZE,
            "max_overflow": config.DB_MAX_OVERFLOW,
            "pool_recycle": config.DB_POOL_RECYCLE,
            "pool_pre_ping": True,
        }
    return {"pool_size": 2, "max_overflow": 5, "pool_pre_ping": True}


engine = create_async_engine(settings.DSN, echo=settings.DEBUG, **_pool_options(settings))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


@asynccontextmanager
async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, roll back on any failure.

    Outside a request (startup bootstrap):
        async with get_db_session() as db:
            await AdminStore(db, hasher).get_by_login(login)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except (Exception, asyncio.CancelledError):
            # Cancellation must not leave a half-written transaction behind
            await session.rollback()
            raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session dependency."""
    async with get_db_session() as session:
        yield session


async def create_tables() -> None:
    """Create all tables registered on Base (idempotent)."""
    # Import models so they register with Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
