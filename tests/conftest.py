"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing across the entire test suite.

Organization:
    - Environment: settings isolation between tests
    - Database Fixtures: SQLAlchemy engine and session on in-memory SQLite
    - Repository Fixtures: nested-set repositories for the test models
    - Tree Fixtures: seeded single-tree and multi-tree data

When adding new features:
    1. Add fixtures to the appropriate section below
    2. Use @pytest.fixture with clear docstrings
    3. Make fixtures composable (fixtures can depend on other fixtures)
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nested_set.core.database import NestedSetRepository
from nested_set.core.database.base import Base
from nested_set.core.settings import NestedSetSettings, clear_all_caches
from nested_set.infra.database import enable_sqlite_savepoints
from tests.fixtures import Car, Vehicle, seed_cars, seed_vehicles

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests never pick up a developer's configuration
os.environ.setdefault("DB_DSN", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("NESTED_SET_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("DB_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("LOGGING_CONFIG_DIR", "/nonexistent")


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings before and after every test."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite.

    SAVEPOINT support is enabled so tree mutations can roll back on their own.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_savepoints(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session with automatic table creation and cleanup.

    This fixture:
    1. Creates all tables defined in Base.metadata
    2. Provides a session for database operations
    3. Rolls back whatever the test left uncommitted
    4. Drops the tables after the test

    Yields:
        Async database session for testing.
    """
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============================================================================
# Repository Fixtures
# ============================================================================


@pytest.fixture
def car_repo() -> NestedSetRepository[Car]:
    """Repository for the single-tree model, with integrity verification on."""
    return NestedSetRepository(Car, settings=NestedSetSettings(verify_integrity=True))


@pytest.fixture
def vehicle_repo() -> NestedSetRepository[Vehicle]:
    """Repository for the multi-tree model, with integrity verification on."""
    return NestedSetRepository(Vehicle, settings=NestedSetSettings(verify_integrity=True))


# ============================================================================
# Tree Fixtures
# ============================================================================


@pytest.fixture
async def cars(db_session: AsyncSession, car_repo: NestedSetRepository[Car]) -> dict[str, Car]:
    """Seed the single-tree ``cars`` catalogue.

    Returns:
        Nodes by name; see ``tests.fixtures.tree_models`` for the layout.
    """
    return await seed_cars(db_session, car_repo)


@pytest.fixture
async def vehicles(
    db_session: AsyncSession, vehicle_repo: NestedSetRepository[Vehicle]
) -> dict[str, Vehicle]:
    """Seed the ``cars`` and ``motorcycles`` trees of the multi-tree model."""
    return await seed_vehicles(db_session, vehicle_repo)
