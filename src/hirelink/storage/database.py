"""
Async Database Configuration
SQLAlchemy 2.0 with async support
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from hirelink.config import settings
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)

# Base class for ORM models
Base = declarative_base()


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself instead of the driver's deferred one
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn):
    # Take the write lock up front so read-validate-write runs serialized
    conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Owns the engine and hands out one transaction per operation.

    Usage:
        async with database.transaction() as session:
            result = await session.execute(query)
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or settings.database_url
        engine_args = {
            "echo": settings.database_echo if echo is None else echo,
        }
        if self.url.startswith("sqlite"):
            # Writers wait on the file lock instead of failing immediately
            engine_args["connect_args"] = {"timeout": 30}
        else:
            engine_args["pool_pre_ping"] = True

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_args)

        if self.url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine.sync_engine, "begin", _begin_immediate)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Commit on success, roll back everything on any exception."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Initialize database (create tables)"""
        # Register the tables on Base.metadata
        from hirelink.storage import tables  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready", url=self.engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        """Close database connections"""
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """Database health check"""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
