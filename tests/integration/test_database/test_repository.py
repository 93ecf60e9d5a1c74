"""Tests for BaseRepository CRUD helpers and NestedSetRepository wiring."""

from __future__ import annotations

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only

from nested_set.core.database import (
    BaseRepository,
    InvariantViolationError,
    NestedSetRepository,
    NotFoundError,
)
from tests.fixtures import Car, Vehicle, coords

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
class TestBaseRepository:
    """Plain CRUD on a nested-set model."""

    async def test_get(self, db_session: AsyncSession, cars):
        repo = BaseRepository(Car)

        focus = await repo.get(db_session, 4)

        assert focus is cars["ford focus"]
        assert await repo.get(db_session, 999) is None

    async def test_get_with_options(self, db_session: AsyncSession, cars):
        focus = await BaseRepository(Car).get(db_session, 4, options=[load_only(Car.name)])

        assert focus.name == "ford focus"

    async def test_get_or_raise(self, db_session: AsyncSession, cars):
        repo = BaseRepository(Car)

        assert (await repo.get_or_raise(db_session, 1)).name == "cars"
        with pytest.raises(NotFoundError) as exc_info:
            await repo.get_or_raise(db_session, 999)

        assert exc_info.value.model_name == "Car"
        assert exc_info.value.identifier == {"id": 999}

    async def test_get_by(self, db_session: AsyncSession, cars):
        repo = BaseRepository(Car)

        assert (await repo.get_by(db_session, Car.name, "sport")).id == 5
        assert await repo.get_by(db_session, Car.name, "trucks") is None

    async def test_list_ordered_by_primary_key(self, db_session: AsyncSession, cars):
        repo = BaseRepository(Car)

        page = await repo.list(db_session, limit=3, offset=2)

        assert [car.id for car in page] == [3, 4, 5]

    async def test_plain_delete_removes_single_row(self, db_session: AsyncSession, cars):
        repo = BaseRepository(Car)

        await repo.delete(db_session, cars["sport"])

        assert await repo.get(db_session, 5) is None


@pytest.mark.asyncio
class TestNestedSetRepository:
    """Settings, creation and integrity checks."""

    async def test_create_single_tree_root(self, db_session: AsyncSession, car_repo):
        root = await car_repo.create(db_session, Car(name="cars"))

        assert root.id is not None
        assert coords(root) == (1, 2, 0)
        assert await car_repo.verify(db_session) == []

    async def test_create_second_root_rejected(self, db_session: AsyncSession, car_repo, cars):
        with pytest.raises(InvariantViolationError, match="more than one root"):
            await car_repo.create(db_session, Car(name="trucks"))

        assert await car_repo.get_by(db_session, Car.name, "trucks") is None
        assert await car_repo.verify(db_session) == []

    async def test_create_multi_tree_root(self, db_session: AsyncSession, vehicle_repo):
        root = await vehicle_repo.create(db_session, Vehicle(name="cars"))

        assert coords(root) == (1, 2, 0, root.id)

    async def test_create_additional_multi_tree_root(
        self, db_session: AsyncSession, vehicle_repo, vehicles
    ):
        boats = await vehicle_repo.create(db_session, Vehicle(name="boats"))

        assert boats.tree == boats.id
        assert len(await vehicle_repo.roots(db_session)) == 3

    async def test_verify_consistent_forest(self, db_session: AsyncSession, vehicle_repo, vehicles):
        assert await vehicle_repo.verify(db_session) == []
        assert await vehicle_repo.verify(db_session, tree=5) == []

    async def test_verify_reports_issues(self, db_session: AsyncSession, car_repo, cars):
        await db_session.execute(update(Car).where(Car.id == 7).values(rgt=14))

        issues = await car_repo.verify(db_session, raise_on_error=False)

        assert issues
        assert any("duplicate endpoints [14]" in str(issue) for issue in issues)

    async def test_verify_raises(self, db_session: AsyncSession, car_repo, cars):
        await db_session.execute(update(Car).where(Car.id == 4).values(depth=5))

        with pytest.raises(InvariantViolationError) as exc_info:
            await car_repo.verify(db_session)

        assert exc_info.value.details["model"] == "Car"
        assert exc_info.value.issues == ["node 4: depth 5 under node 3 at depth 2"]

    async def test_verify_one_tree_ignores_others(
        self, db_session: AsyncSession, vehicle_repo, vehicles
    ):
        await db_session.execute(update(Vehicle).where(Vehicle.id == 7).values(depth=0))

        assert await vehicle_repo.verify(db_session, tree=1) == []
        issues = await vehicle_repo.verify(db_session, raise_on_error=False)
        assert [str(issue) for issue in issues] == [
            "node 7: tree 5: depth 0 under node 6 at depth 1"
        ]

    async def test_cascading_delete_counts_rows(self, db_session: AsyncSession, car_repo, cars):
        await car_repo.delete(db_session, cars["passenger"])

        remaining = await car_repo.list(db_session)
        assert [car.name for car in remaining] == ["cars", "freight", "ford transit bus"]
        assert coords(remaining[0]) == (1, 6, 0)


def test_settings_default_from_environment(monkeypatch):
    monkeypatch.setenv("NESTED_SET_VERIFY_INTEGRITY", "true")
    monkeypatch.setenv("NESTED_SET_LOCK_ROWS", "true")

    repo = NestedSetRepository(Car)

    assert repo.settings.verify_integrity is True
    assert repo.settings.lock_rows is True


def test_store_carries_settings(db_session: AsyncSession, car_repo, vehicle_repo):
    store = car_repo.store(db_session)

    assert store.session is db_session
    assert store.model is Car
    assert store.verify_integrity is True
    assert store.lock_rows is False
    assert store.multi_tree is False
    assert vehicle_repo.store(db_session).multi_tree is True
