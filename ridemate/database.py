"""Database configuration and session management."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ridemate.config.settings import BaseAppSettings
from ridemate.core.logging import get_logger
from ridemate.models.base import Base

logger = get_logger(__name__)


def get_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session maker."""
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


class Database:
    """
    Async engine plus session factory for one application instance.

    Created lazily by the app factory and kept on ``app.state.db``; the engine
    options come from the environment-specific settings class.
    """

    def __init__(self, settings: BaseAppSettings):
        self.engine = create_async_engine(
            settings.database_url, **settings.get_engine_options()
        )
        self.sessionmaker = get_sessionmaker(self.engine)

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session with proper cleanup."""
        async with self.sessionmaker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def ping(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database ping failed", error=str(e))
            return False

    async def create_tables(self) -> None:
        """Create all tables in the database."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables in the database."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
