"""Database engine and session management.

Tree mutations run inside SAVEPOINTs (``AsyncSession.begin_nested``), so the
engine must support them. PostgreSQL does out of the box; SQLite's Python
driver emits its own BEGIN/COMMIT and breaks nested transactions unless the
connection is put in autocommit mode and BEGIN is emitted by SQLAlchemy
(``enable_sqlite_savepoints``).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nested_set.core.database.base import Base
from nested_set.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy import MetaData
    from sqlalchemy.ext.asyncio import AsyncEngine

    from nested_set.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Make SAVEPOINT work on SQLite connections of ``engine``."""

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        _ = connection_record
        # stop the driver from emitting BEGIN (and COMMIT before DDL)
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create an async engine from database settings.

    Args:
        settings: Database settings (defaults to get_db_settings()).

    Returns:
        Configured AsyncEngine. SQLite engines get savepoint support.
    """
    db_settings = settings or get_db_settings()
    engine = create_async_engine(db_settings.dsn, **db_settings.engine_kwargs())
    if db_settings.is_sqlite:
        enable_sqlite_savepoints(engine)

    logger.debug(
        "Database engine created",
        extra={"dialect": engine.dialect.name, "sqlite_savepoints": db_settings.is_sqlite},
    )
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Get the process-wide engine, created on first use."""
    return build_engine()


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the process-wide session factory, created on first use."""
    return build_session_factory(get_engine())


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    The session is not committed for you: repositories only flush, the
    caller decides when the unit of work ends.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            await repo.append_to(session, node, parent)
            await session.commit()
    """
    async with get_session_factory()() as session:
        yield session


async def init_database(
    engine: AsyncEngine | None = None,
    metadata: MetaData | None = None,
) -> None:
    """Check connectivity and create missing tables.

    Args:
        engine: Engine to use (defaults to get_engine()).
        metadata: Metadata holding the tables (defaults to Base.metadata).
    """
    engine = engine or get_engine()
    metadata = metadata if metadata is not None else Base.metadata

    logger.info("Initializing database", extra={"tables": len(metadata.tables)})
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(metadata.create_all)
    logger.info("Database initialized", extra={"dialect": engine.dialect.name})


async def close_database() -> None:
    """Dispose the process-wide engine and forget the cached factories."""
    if get_engine.cache_info().currsize == 0:
        return

    logger.info("Closing database connection")
    await get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()


__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "enable_sqlite_savepoints",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
