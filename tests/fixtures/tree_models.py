"""Test models and seed data for nested-set tests.

Single tree (``Car``)::

    cars (1,14)
    ├── passenger (2,9)
    │   ├── personal (3,6)
    │   │   └── ford focus (4,5)
    │   └── sport (7,8)
    └── freight (10,13)
        └── ford transit bus (11,12)

Multi-tree (``Vehicle``), tree values are the root ids::

    cars (1,8) tree=1            motorcycles (1,8) tree=5
    ├── passenger (2,5)          ├── sport bikes (2,5)
    │   └── ford focus (3,4)     │   └── yamaha (3,4)
    └── freight (6,7)            └── cruisers (6,7)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, select
from sqlalchemy.orm import Mapped, mapped_column

from nested_set.core.database.base import Base, IntegerPKMixin
from nested_set.core.database.hierarchy import MultiTreeMixin, NestedSetMixin

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from nested_set.core.database import NestedSetRepository


class Car(Base, IntegerPKMixin, NestedSetMixin):
    """Single-tree catalogue."""

    __tablename__ = "cars"

    name: Mapped[str] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"Car({self.name!r}, {self.lft}, {self.rgt}, {self.depth})"


class Vehicle(Base, IntegerPKMixin, MultiTreeMixin):
    """Multi-tree catalogue."""

    __tablename__ = "vehicles"

    name: Mapped[str] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"Vehicle({self.name!r}, {self.lft}, {self.rgt}, {self.depth}, tree={self.tree})"


CAR_ROWS = [
    # id, name, lft, rgt, depth
    (1, "cars", 1, 14, 0),
    (2, "passenger", 2, 9, 1),
    (3, "personal", 3, 6, 2),
    (4, "ford focus", 4, 5, 3),
    (5, "sport", 7, 8, 2),
    (6, "freight", 10, 13, 1),
    (7, "ford transit bus", 11, 12, 2),
]

VEHICLE_ROWS = [
    # id, name, lft, rgt, depth, tree
    (1, "cars", 1, 8, 0, 1),
    (2, "passenger", 2, 5, 1, 1),
    (3, "ford focus", 3, 4, 2, 1),
    (4, "freight", 6, 7, 1, 1),
    (5, "motorcycles", 1, 8, 0, 5),
    (6, "sport bikes", 2, 5, 1, 5),
    (7, "yamaha", 3, 4, 2, 5),
    (8, "cruisers", 6, 7, 1, 5),
]


async def seed_cars(session: AsyncSession, repo: NestedSetRepository[Car]) -> dict[str, Car]:
    """Insert the single-tree rows with explicit coordinates and commit."""
    nodes = {
        name: Car(id=id_, name=name, lft=lft, rgt=rgt, depth=depth)
        for id_, name, lft, rgt, depth in CAR_ROWS
    }
    session.add_all(nodes.values())
    await session.commit()
    await repo.verify(session)
    return nodes


async def seed_vehicles(
    session: AsyncSession, repo: NestedSetRepository[Vehicle]
) -> dict[str, Vehicle]:
    """Insert both trees of the multi-tree model and commit."""
    nodes = {
        name: Vehicle(id=id_, name=name, lft=lft, rgt=rgt, depth=depth, tree=tree)
        for id_, name, lft, rgt, depth, tree in VEHICLE_ROWS
    }
    session.add_all(nodes.values())
    await session.commit()
    await repo.verify(session)
    return nodes


def coords(node: Car | Vehicle) -> tuple[int, ...]:
    """Stored position of a node as a plain tuple, ``tree`` included when present."""
    c = node.coordinates
    if c.tree is None:
        return (c.left, c.right, c.depth)
    return (c.left, c.right, c.depth, c.tree)


async def snapshot(session: AsyncSession, model: type[Car] | type[Vehicle]) -> dict[str, tuple[int, ...]]:
    """Stored coordinates of every row by name, read straight from the table."""
    columns = [model.name, model.lft, model.rgt, model.depth]
    if model.__multi_tree__:
        columns.append(model.tree)
    result = await session.execute(select(*columns))
    return {name: tuple(rest) for name, *rest in result.all()}
