"""Database engine and session management."""

from __future__ import annotations

from .session import (
    build_engine,
    build_session_factory,
    close_database,
    enable_sqlite_savepoints,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)

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
