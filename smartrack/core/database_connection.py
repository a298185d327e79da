"""
Database Connection Manager
---------------------------
Manages PostgreSQL database connections with SQLAlchemy async engine.
Sessions commit on success and roll back on any exception.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from smartrack.core.config_manager import ApplicationSettings


class DatabaseManager:
    """
    Manages database connections and operations using SQLAlchemy async engine.

    Uses SQLAlchemy's async engine with the asyncpg driver, which provides
    connection pooling, pre-ping health checks and connection recycling.
    A single instance is shared by the whole process.
    """

    _instance = None
    _engine: Optional[AsyncEngine] = None
    _sessionmaker: Optional[async_sessionmaker] = None

    def __new__(cls, *args, **kwargs):
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super(DatabaseManager, cls).__new__(cls)
        return cls._instance

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self, app_settings: ApplicationSettings) -> None:
        """
        Initialize SQLAlchemy async engine.

        Args:
            app_settings: Settings holding the database connection parameters
        """
        if self._engine is not None:
            logger.warning("Database engine already initialized")
            return

        logger.info(
            f"Initializing database connection to "
            f"{app_settings.database_host}:{app_settings.database_port}"
        )

        try:
            self._engine = create_async_engine(
                app_settings.database_url,
                pool_size=app_settings.database_pool_size,
                max_overflow=app_settings.database_max_overflow,
                pool_pre_ping=True,  # Health checks
                pool_recycle=3600,  # Recycle connections every hour
                pool_timeout=30,
                echo=False,
            )

            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info(
                "SQLAlchemy async engine and sessionmaker initialized successfully"
            )

        except Exception as e:
            logger.error(f"Error initializing SQLAlchemy engine: {e}")
            raise

    async def close(self) -> None:
        """Close SQLAlchemy engine."""
        if self._engine is not None:
            logger.info("Disposing SQLAlchemy engine")
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            logger.info("SQLAlchemy engine disposed")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a SQLAlchemy async session from the sessionmaker.

        Yields:
            AsyncSession: Active SQLAlchemy session with automatic
                         commit on success or rollback on exception

        Raises:
            RuntimeError: If database not initialized

        Example:
            async with db_manager.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                value = result.scalar()
        """
        if not self._sessionmaker:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.warning(f"Session rolled back due to error: {e}")
            raise
        finally:
            await session.close()

    async def ping(self) -> bool:
        """Run a trivial query against the database."""
        async with self.get_session() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1


# Global database manager instance
db_manager = DatabaseManager()
