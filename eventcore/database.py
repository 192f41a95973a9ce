"""Storage handle.

One ``Database`` is created at process start and disposed at shutdown.
Components receive its session factory instead of reaching for a global.
"""

from typing import Optional
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from eventcore.config import settings
from eventcore.models import Base

logger = logging.getLogger(__name__)


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    # autocommit at the driver; every transaction takes the write lock up front
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    url = url or settings.DATABASE_URL
    echo = settings.DATABASE_ECHO if echo is None else echo
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"timeout": settings.DATABASE_TIMEOUT},
        )
        _install_sqlite_hooks(engine)
    else:
        engine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            connect_args={"timeout": settings.DATABASE_TIMEOUT},
        )
    return engine


class Database:
    """Owns the engine and session factory for the lifetime of the process."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None) -> None:
        self.url = url or settings.DATABASE_URL
        self.engine = create_engine(self.url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections released.")

    async def __aenter__(self) -> "Database":
        await self.create_all()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
