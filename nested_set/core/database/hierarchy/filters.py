"""Backend-neutral interval predicates.

The query and mutation engines describe the rows they want as an
``IntervalFilter``: a conjunction of comparisons over ``left``, ``right`` and
``depth``, an optional leaf restriction and a tree scope. A coordinate store
compiles the filter to its own query language; ``matches()`` evaluates the
same filter against a ``NodeCoordinates`` value in Python.

Usage:
    flt = IntervalFilter().where("left", "gt", 1).where("right", "lt", 14)
    flt = flt.in_scope(TreeScope.of(1))

    flt.matches(NodeCoordinates(4, 5, 3, tree=1))  # True
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Literal

from nested_set.core.database.hierarchy.coordinates import UNSCOPED, TreeScope

if TYPE_CHECKING:
    from collections.abc import Callable

    from nested_set.core.database.hierarchy.coordinates import NodeCoordinates

Field = Literal["left", "right", "depth"]
Op = Literal["eq", "lt", "le", "gt", "ge"]

# operator functions work on ints and on SQLAlchemy column expressions alike
OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}


@dataclass(frozen=True, slots=True)
class Condition:
    """Single comparison ``<field> <op> <value>``."""

    field: Field
    op: Op
    value: int

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported interval operator: {self.op!r}")
        if self.field not in ("left", "right", "depth"):
            raise ValueError(f"Unsupported interval field: {self.field!r}")

    def apply(self, operand: Any) -> Any:
        """Compare ``operand`` (a value or a column) against the bound."""
        return OPERATORS[self.op](operand, self.value)


@dataclass(frozen=True, slots=True)
class IntervalFilter:
    """Immutable conjunction of interval conditions.

    Attributes:
        conditions: Comparisons that must all hold
        leaves_only: Restrict to rows with ``right == left + 1``
        scope: Tree restriction (UNSCOPED adds no tree predicate)
    """

    conditions: tuple[Condition, ...] = ()
    leaves_only: bool = False
    scope: TreeScope = UNSCOPED

    def where(self, field: Field, op: Op, value: int) -> IntervalFilter:
        """Return a copy with one more condition."""
        return replace(self, conditions=(*self.conditions, Condition(field, op, value)))

    def leaves(self) -> IntervalFilter:
        return replace(self, leaves_only=True)

    def in_scope(self, scope: TreeScope) -> IntervalFilter:
        return replace(self, scope=scope)

    def matches(self, coordinates: NodeCoordinates) -> bool:
        """Evaluate the filter against a coordinate value."""
        if self.scope.enabled and coordinates.tree != self.scope.value:
            return False
        if self.leaves_only and coordinates.right != coordinates.left + 1:
            return False
        return all(
            condition.apply(getattr(coordinates, condition.field)) for condition in self.conditions
        )

    def describe(self) -> str:
        """Compact human-readable form used in log messages."""
        parts = [f"{c.field} {c.op} {c.value}" for c in self.conditions]
        if self.leaves_only:
            parts.append("leaf")
        if self.scope.enabled:
            parts.append(f"tree = {self.scope.value!r}")
        return " and ".join(parts) or "all"


def within(left: int, right: int, scope: TreeScope = UNSCOPED) -> IntervalFilter:
    """Rows whose interval lies inside ``[left, right]`` (inclusive)."""
    return IntervalFilter(scope=scope).where("left", "ge", left).where("right", "le", right)


def strictly_inside(left: int, right: int, scope: TreeScope = UNSCOPED) -> IntervalFilter:
    """Rows whose interval lies inside ``(left, right)`` (exclusive)."""
    return IntervalFilter(scope=scope).where("left", "gt", left).where("right", "lt", right)


__all__ = [
    "OPERATORS",
    "Condition",
    "Field",
    "IntervalFilter",
    "Op",
    "strictly_inside",
    "within",
]
