"""The shift primitive.

Every structural change of a nested set is built from shifts: open a gap
before inserting or moving a subtree, close it after removing one. A shift
is two independent bulk increments, one per endpoint column:

    left  += delta  where left  >= boundary
    right += delta  where right >= boundary

A node straddling the boundary (an ancestor of the gap) only has its
``right`` moved, which is exactly what widens or narrows it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from nested_set.core.database.exceptions import RepositoryError
from nested_set.core.database.hierarchy.coordinates import UNSCOPED, TreeScope
from nested_set.core.database.hierarchy.filters import IntervalFilter

if TYPE_CHECKING:
    from nested_set.core.database.hierarchy.store import CoordinateStore


async def shift(
    store: CoordinateStore[Any],
    boundary: int,
    delta: int,
    scope: TreeScope = UNSCOPED,
) -> None:
    """Open (``delta > 0``) or close (``delta < 0``) a gap at ``boundary``.

    Args:
        store: Coordinate store, must be inside ``store.transaction()``
        boundary: First endpoint value affected
        delta: Amount added to every affected endpoint
        scope: Tree the shift is limited to

    Raises:
        RepositoryError: If called outside a store transaction
    """
    if not store.in_transaction():
        raise RepositoryError(
            "shift() must run inside store.transaction()",
            details={"boundary": boundary, "delta": delta},
        )
    if delta == 0:
        return

    base = IntervalFilter(scope=scope)
    await store.increment("left", delta, base.where("left", "ge", boundary))
    await store.increment("right", delta, base.where("right", "ge", boundary))


__all__ = ["shift"]
