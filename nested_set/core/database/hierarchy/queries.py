"""Query engine: tree relationships as interval predicates.

Each relationship has a pure filter builder (usable with any store, or with
``IntervalFilter.matches`` in memory) and an async operation that runs it.
Results are always in document order (``left`` ascending), which is the
depth-first preorder of the tree.

    ford_focus = NodeCoordinates(4, 5, 3)
    parents_filter(ford_focus).describe()
    # 'left lt 4 and right gt 5'

    ancestors = await parents(store, node)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from nested_set.core.database.hierarchy.coordinates import UNSCOPED, TreeScope
from nested_set.core.database.hierarchy.filters import IntervalFilter, strictly_inside

if TYPE_CHECKING:
    from nested_set.core.database.hierarchy.coordinates import NodeCoordinates
    from nested_set.core.database.hierarchy.store import CoordinateStore


# ──────────────────────────────────────────────────────────────
# Filter builders
# ──────────────────────────────────────────────────────────────


def roots_filter() -> IntervalFilter:
    return IntervalFilter().where("left", "eq", 1)


def leaves_filter() -> IntervalFilter:
    return IntervalFilter().leaves()


def tree_filter(max_depth: int | None = None, scope: TreeScope = UNSCOPED) -> IntervalFilter:
    """Every node of the forest (or of one tree) down to an absolute depth."""
    flt = IntervalFilter(scope=scope).where("left", "ge", 1)
    if max_depth is not None:
        flt = flt.where("depth", "le", max_depth)
    return flt


def children_filter(
    node: NodeCoordinates,
    scope: TreeScope = UNSCOPED,
    max_depth: int | None = None,
) -> IntervalFilter:
    """Descendants of ``node``, optionally at most ``max_depth`` levels below it."""
    flt = strictly_inside(node.left, node.right, scope)
    if max_depth is not None:
        flt = flt.where("depth", "le", node.depth + max_depth)
    return flt


def descendant_leaves_filter(node: NodeCoordinates, scope: TreeScope = UNSCOPED) -> IntervalFilter:
    return strictly_inside(node.left, node.right, scope).leaves()


def parents_filter(
    node: NodeCoordinates,
    scope: TreeScope = UNSCOPED,
    max_depth: int | None = None,
) -> IntervalFilter:
    """Ancestors of ``node``, optionally only the nearest ``max_depth`` of them."""
    flt = IntervalFilter(scope=scope).where("left", "lt", node.left).where("right", "gt", node.right)
    if max_depth is not None:
        flt = flt.where("depth", "ge", node.depth - max_depth)
    return flt


def previous_sibling_filter(node: NodeCoordinates, scope: TreeScope = UNSCOPED) -> IntervalFilter:
    return IntervalFilter(scope=scope).where("right", "eq", node.left - 1)


def next_sibling_filter(node: NodeCoordinates, scope: TreeScope = UNSCOPED) -> IntervalFilter:
    return IntervalFilter(scope=scope).where("left", "eq", node.right + 1)


# ──────────────────────────────────────────────────────────────
# Operations
# ──────────────────────────────────────────────────────────────


def _locate[N](store: CoordinateStore[N], node: N) -> tuple[NodeCoordinates, TreeScope]:
    coords = store.coordinates(node)
    return coords, store.scope_for(coords.tree)


async def roots[N](store: CoordinateStore[N], *criteria: Any) -> list[N]:
    """Root nodes, one per tree. ``criteria`` narrow by payload columns."""
    return await store.find_all(roots_filter(), *criteria)


async def leaves[N](store: CoordinateStore[N], *criteria: Any) -> list[N]:
    """Every leaf of every tree."""
    return await store.find_all(leaves_filter(), *criteria)


async def get_tree[N](
    store: CoordinateStore[N],
    node: N | None = None,
    *,
    max_depth: int | None = None,
    tree: Any = None,
) -> list[N]:
    """Whole forest, one tree, or the subtree below ``node``.

    Args:
        store: Coordinate store
        node: When given, return its descendants (same as ``children``)
        max_depth: Absolute depth cap for the forest, relative cap below ``node``
        tree: Restrict the forest to one tree (multi-tree models only)
    """
    if node is not None:
        return await children(store, node, max_depth)
    scope = store.scope_for(tree) if tree is not None else UNSCOPED
    return await store.find_all(tree_filter(max_depth, scope))


async def children[N](store: CoordinateStore[N], node: N, max_depth: int | None = None) -> list[N]:
    """Descendants of ``node``; ``max_depth=1`` gives direct children only."""
    coords, scope = _locate(store, node)
    return await store.find_all(children_filter(coords, scope, max_depth))


async def descendant_leaves[N](store: CoordinateStore[N], node: N) -> list[N]:
    """Leaves strictly inside the subtree of ``node``."""
    coords, scope = _locate(store, node)
    return await store.find_all(descendant_leaves_filter(coords, scope))


async def parents[N](store: CoordinateStore[N], node: N, max_depth: int | None = None) -> list[N]:
    """Ancestors of ``node``, outermost first."""
    coords, scope = _locate(store, node)
    return await store.find_all(parents_filter(coords, scope, max_depth))


async def parent[N](store: CoordinateStore[N], node: N) -> N | None:
    """Nearest ancestor of ``node``, None for a root."""
    nearest = await parents(store, node, max_depth=1)
    return nearest[-1] if nearest else None


async def previous_sibling[N](store: CoordinateStore[N], node: N) -> N | None:
    coords, scope = _locate(store, node)
    return await store.find_one(previous_sibling_filter(coords, scope))


async def next_sibling[N](store: CoordinateStore[N], node: N) -> N | None:
    coords, scope = _locate(store, node)
    return await store.find_one(next_sibling_filter(coords, scope))


async def siblings[N](store: CoordinateStore[N], node: N, *, include_self: bool = False) -> list[N]:
    """Nodes sharing the parent of ``node``; for a root, the other roots."""
    up = await parent(store, node)
    candidates = await roots(store) if up is None else await children(store, up, max_depth=1)
    if include_self:
        return candidates

    coords = store.coordinates(node)
    return [c for c in candidates if not store.coordinates(c).is_same_node(coords)]


__all__ = [
    "children",
    "children_filter",
    "descendant_leaves",
    "descendant_leaves_filter",
    "get_tree",
    "leaves",
    "leaves_filter",
    "next_sibling",
    "next_sibling_filter",
    "parent",
    "parents",
    "parents_filter",
    "previous_sibling",
    "previous_sibling_filter",
    "roots",
    "roots_filter",
    "siblings",
    "tree_filter",
]
