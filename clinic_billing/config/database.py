"""
Database configuration and connection management.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from ..models.database import Base


logger = logging.getLogger(__name__)


class DatabaseConfig:
    """Database configuration management."""

    def __init__(self):
        self.database_url = self._get_database_url()
        self.async_database_url = self._get_async_database_url()
        self.echo = os.getenv("DATABASE_ECHO", "false").lower() == "true"
        self.pool_size = int(os.getenv("DATABASE_POOL_SIZE", "10"))
        self.max_overflow = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))
        self.pool_timeout = int(os.getenv("DATABASE_POOL_TIMEOUT", "30"))
        self.pool_recycle = int(os.getenv("DATABASE_POOL_RECYCLE", "3600"))

    def _get_database_url(self) -> str:
        """Get synchronous database URL from environment (used by Alembic)."""
        if os.getenv("TESTING", "false").lower() == "true":
            return os.getenv("TEST_DB_SYNC_URL", "sqlite:///./test.db")
        url = os.getenv("DATABASE_URL")
        if not url:
            host = os.getenv("DB_HOST", "localhost")
            port = os.getenv("DB_PORT", "5432")
            database = os.getenv("DB_NAME", "clinic_billing")
            username = os.getenv("DB_USER", "postgres")
            password = os.getenv("DB_PASSWORD", "postgres")
            url = f"postgresql+psycopg://{username}:{password}@{host}:{port}/{database}"
        return url

    def _get_async_database_url(self) -> str:
        """Get asynchronous database URL from environment."""
        if os.getenv("TESTING", "false").lower() == "true":
            return os.getenv("TEST_DB_URL", "sqlite+aiosqlite:///./test.db")
        url = os.getenv("ASYNC_DATABASE_URL")
        if not url:
            sync_url = self._get_database_url()
            if sync_url.startswith("postgresql+psycopg://"):
                url = sync_url.replace(
                    "postgresql+psycopg://", "postgresql+asyncpg://")
            elif sync_url.startswith("postgresql://"):
                url = sync_url.replace(
                    "postgresql://", "postgresql+asyncpg://")
            elif sync_url.startswith("sqlite://"):
                url = sync_url.replace("sqlite://", "sqlite+aiosqlite://")
            else:
                url = sync_url
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")


# Global database configuration
db_config = DatabaseConfig()

if db_config.is_sqlite:
    # No pooling: each session gets a fresh aiosqlite connection (event-loop agnostic)
    async_engine = create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo,
        poolclass=NullPool,
        connect_args={"check_same_thread": False},
    )
else:
    async_engine = create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle,
    )

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False
)


@event.listens_for(async_engine.sync_engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
    """Enforce foreign keys on SQLite connections."""
    if db_config.is_sqlite:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(async_engine.sync_engine, "before_cursor_execute")
def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):  # noqa: ARG001
    import time
    context._query_start_time = time.time()


@event.listens_for(async_engine.sync_engine, "after_cursor_execute")
def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):  # noqa: ARG001
    """Log slow queries for performance monitoring."""
    import time
    total = time.time() - context._query_start_time
    if total > 0.1:
        logger.warning("Slow query detected: %.3fs - %s...", total, statement[:100])


async def create_database_tables_async():
    """Create all database tables asynchronously."""
    try:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully (async)")
    except Exception as e:
        logger.error("Failed to create database tables (async): %s", e)
        raise


async def drop_database_tables_async():
    """Drop all database tables asynchronously."""
    try:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped successfully (async)")
    except Exception as e:
        logger.error("Failed to drop database tables (async): %s", e)
        raise


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session context manager.

    Usage:
        async with get_async_db() as db:
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_db_dependency():
    """
    FastAPI dependency for async database session.

    Usage in FastAPI endpoints:
        @router.get("/invoices")
        async def list_invoices(db: AsyncSession = Depends(get_async_db_dependency)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def check_async_database_connection() -> bool:
    """Check if async database connection is working."""
    try:
        async with get_async_db() as db:
            await db.execute(text("SELECT 1"))
        return True
    except Exception as e:  # noqa: BLE001 - health probe reports instead of raising
        logger.error("Async database connection check failed: %s", e)
        return False


async def async_database_health_check() -> dict:
    """Database health summary for monitoring endpoints."""
    connection_ok = await check_async_database_connection()
    return {
        "status": "healthy" if connection_ok else "unhealthy",
        "connection": connection_ok,
        # Hide credentials
        "database_url": db_config.async_database_url.split("@")[-1],
    }
