"""Hierarchical data support using nested sets.

Each node stores an interval ``(lft, rgt)`` and its ``depth``; a node's
descendants are exactly the rows whose interval lies strictly inside its own,
so every tree relationship is a single range query. Optionally one table
holds several trees, partitioned by a ``tree`` column.

Components:
    - NodeCoordinates, TreeScope: Pure values describing positions
    - IntervalFilter: Backend-neutral row predicate
    - CoordinateStore, SQLAlchemyCoordinateStore: Persistence seam
    - queries: Roots, leaves, children, parents, siblings
    - mutations: Attach, move, make root, delete
    - NestedSetMixin, MultiTreeMixin: Model columns and navigation

Example:
    >>> from nested_set.core.database import Base, IntegerPKMixin
    >>> from nested_set.core.database.hierarchy import MultiTreeMixin
    >>>
    >>> class Category(Base, IntegerPKMixin, MultiTreeMixin):
    ...     name: Mapped[str] = mapped_column(String(255))
    >>>
    >>> cat = await session.get(Category, 4)
    >>> ancestors = await cat.parents(session)

Note:
    - Structural changes are made through ``NestedSetRepository`` (or the
      ``mutations`` functions with a store); never edit ``lft``/``rgt`` directly
    - Index ``lft`` and ``rgt`` (the mixins do) since every query ranges over them
"""

from nested_set.core.database.hierarchy.coordinates import (
    UNSCOPED,
    NodeCoordinates,
    TreeScope,
)
from nested_set.core.database.hierarchy.filters import IntervalFilter
from nested_set.core.database.hierarchy.integrity import (
    IntegrityIssue,
    check_forest,
    check_tree,
    verify_tree,
)
from nested_set.core.database.hierarchy.mixins import MultiTreeMixin, NestedSetMixin
from nested_set.core.database.hierarchy.shift import shift
from nested_set.core.database.hierarchy.store import CoordinateStore, SQLAlchemyCoordinateStore

__all__ = [
    "UNSCOPED",
    "CoordinateStore",
    "IntegrityIssue",
    "IntervalFilter",
    "MultiTreeMixin",
    "NestedSetMixin",
    "NodeCoordinates",
    "SQLAlchemyCoordinateStore",
    "TreeScope",
    "check_forest",
    "check_tree",
    "shift",
    "verify_tree",
]
