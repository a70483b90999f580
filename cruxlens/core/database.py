"""Async SQLAlchemy engine, session factory and database client.

The engine is created by ``init_database`` rather than at import time so the
package can be imported (and unit tested) without a reachable database.
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cruxlens.core.config import Settings
from cruxlens.core.exceptions import ConfigurationError
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DatabaseClient:
    """PostgreSQL database client: connectivity check, table creation, disposal."""

    def __init__(self, engine: AsyncEngine):
        """Initialize database client.

        Args:
            engine: SQLAlchemy async engine
        """
        self.engine = engine

    async def connect(self) -> bool:
        """Test database connection."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                await conn.commit()

            LOGGER.info("Database connection successful")
            return True

        except Exception:
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def disconnect(self) -> None:
        """Close database connection."""
        try:
            await self.engine.dispose()
            LOGGER.info("Database connection closed")
        except Exception as e:
            LOGGER.error(
                "Error closing database connection",
                exc_info=True,
                extra={"error": str(e)}
            )

    async def create_tables(self) -> None:
        """Create all tables that don't exist yet."""
        # Importing registers the mapped classes on Base.metadata
        from cruxlens.database import models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            LOGGER.info("Database tables created/verified successfully")

        except Exception as e:
            LOGGER.error(
                "Failed to create database tables",
                exc_info=True,
                extra={"error": str(e)}
            )
            raise


_db_client: Optional[DatabaseClient] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database(settings: Settings, create_tables: bool = True) -> DatabaseClient:
    """Create the engine, verify connectivity and optionally create tables.

    Args:
        settings: Application settings
        create_tables: Whether to create missing tables on startup

    Raises:
        ConfigurationError: If DATABASE_URL is not set
    """
    global _db_client, _session_maker

    database_url = settings.database_url
    if not database_url:
        raise ConfigurationError("DATABASE_URL is not set")

    LOGGER.info("Initializing database connection...")
    engine = create_async_engine(
        database_url,
        pool_size=settings.db.pool_size,
        max_overflow=settings.db.max_overflow,
        echo=settings.db.echo,
    )
    _session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    _db_client = DatabaseClient(engine)

    await _db_client.connect()
    if create_tables:
        await _db_client.create_tables()

    LOGGER.info("Database initialization completed")
    return _db_client


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the session factory created by init_database.

    Raises:
        ConfigurationError: If the database has not been initialized
    """
    if _session_maker is None:
        raise ConfigurationError("Database is not initialized; call init_database() at startup")
    return _session_maker


async def close_database() -> None:
    """Close database connection."""
    global _db_client, _session_maker
    if _db_client is None:
        return
    LOGGER.info("Closing database connection...")
    await _db_client.disconnect()
    _db_client = None
    _session_maker = None
