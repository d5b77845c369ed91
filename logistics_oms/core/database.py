"""
Database configuration and session management

The engine and session factory live on a Database object created by the
application lifespan, so tests and workers can build their own against any URL.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from logistics_oms.core.config import Settings

Base = declarative_base()


class Database:
    """Owns the async engine and the session factory built on it."""

    def __init__(self, url: str, engine: Optional[AsyncEngine] = None, **engine_kwargs):
        self.url = url
        self.engine = engine or create_async_engine(url, future=True, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        if settings.ENVIRONMENT == "production":
            pool_config = {
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
                "pool_recycle": settings.DB_POOL_RECYCLE,
                "pool_pre_ping": True,
            }
        else:
            pool_config = {
                "pool_size": 2,
                "max_overflow": 5,
                "pool_pre_ping": True,
            }
        return cls(settings.DATABASE_URL, echo=settings.DB_ECHO, **pool_config)

    async def create_tables(self) -> None:
        # Importing models registers every table on Base.metadata
        import logistics_oms.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Context manager for sessions outside the request cycle.

        Commits on success, rolls back on any exception.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        await self.engine.dispose()
