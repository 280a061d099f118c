"""Database engine, session dependency and connection management.

This module centralizes the async SQLAlchemy engine and session factory in the
core layer so the API and the Temporal worker share the same configuration.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.database_echo,
    pool_pre_ping=True,
    # Disable prepared statement cache for PgBouncer compatibility
    connect_args={"statement_cache_size": 0},
)

async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting async database session.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


class DatabaseClient:
    """PostgreSQL database client with connection and schema management."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._connected = False

    async def connect(self) -> bool:
        """Test database connection."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            self._connected = True
            LOGGER.info("Database connection successful")
            return True

        except Exception:
            self._connected = False
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def disconnect(self) -> None:
        """Close database connection."""
        await self.engine.dispose()
        self._connected = False
        LOGGER.info("Database connection closed")

    async def create_tables(self) -> None:
        """Create tables that don't exist yet without dropping existing ones."""
        # Import models so every table is registered on Base.metadata
        from app.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        LOGGER.info("Database tables created/verified successfully")

    async def health_check(self) -> dict:
        """Check database health."""
        try:
            async with self.engine.connect() as conn:
                val = await conn.scalar(text("SELECT 1"))

            self._connected = True
            return {
                "status": "healthy",
                "connected": True,
                "database": "postgresql",
                "latency_test": "passed" if val == 1 else "failed",
            }

        except Exception as e:
            self._connected = False
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e),
            }

    @property
    def is_connected(self) -> bool:
        return self._connected


db_client = DatabaseClient(engine)


async def init_database(auto_migrate: bool = True) -> None:
    """Initialize database connection and optionally create missing tables.

    Args:
        auto_migrate: Whether to create missing tables on startup
    """
    LOGGER.info("Initializing database connection...")
    await db_client.connect()

    if auto_migrate:
        await db_client.create_tables()

    LOGGER.info("Database initialization completed")


async def close_database() -> None:
    """Close database connection."""
    try:
        await db_client.disconnect()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)}
        )
