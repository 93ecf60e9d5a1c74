"""Mutation engine: structural changes of a nested set.

Every attach operation reduces to the generic move with an insertion point
and a depth relative to the target:

    operation        insertion point    relative depth
    insert_before    target.left        0
    insert_after     target.right + 1   0
    prepend_to       target.left + 1    1
    append_to        target.right       1

The generic move opens a gap as wide as the moving subtree at the insertion
point, relabels the whole subtree into it with one bulk update, then closes
the gap the subtree left behind. Every intermediate state is a valid, if
temporarily oversized, interval set, and the same three steps handle moves
inside one tree, moves across trees, leaves and whole subtrees.

Invalid requests are rejected before any statement is issued. The steps of
an accepted mutation run inside one ``store.transaction()``: an exception
at any point rolls all of them back. Afterwards the moving node and the
target are reloaded, so their in-memory coordinates are the stored ones.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from nested_set.core.database.exceptions import (
    IllegalSelfMoveError,
    InvalidTargetError,
    InvariantViolationError,
    NestedSetError,
    RepositoryError,
)
from nested_set.core.database.hierarchy.coordinates import (
    DEFAULT_DEPTH,
    DEFAULT_LEFT,
    DEFAULT_RIGHT,
    NodeCoordinates,
    TreeScope,
)
from nested_set.core.database.hierarchy.filters import strictly_inside, within
from nested_set.core.database.hierarchy.integrity import verify_tree
from nested_set.core.database.hierarchy.queries import roots_filter
from nested_set.core.database.hierarchy.shift import shift
from nested_set.infra.logging import operation_context

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from nested_set.core.database.hierarchy.store import CoordinateStore
    from nested_set.infra.logging import OperationContext

logger = logging.getLogger(__name__)

TARGET_IS_ROOT = "Can not move a node when the target node is root."
TARGET_IS_NEW = "Can not move a node when the target node is new record."
TARGET_IS_CHILD = "Can not move a node when the target node is child."
TARGET_IS_SAME = "Can not move a node when the target node is same."
SECOND_ROOT = "Can not create more than one root when tree partitioning is disabled."
ROOT_AS_ROOT = "Can not move the root node as the root."


# ──────────────────────────────────────────────────────────────
# Attach operations
# ──────────────────────────────────────────────────────────────


async def insert_before[N](store: CoordinateStore[N], node: N, target: N) -> N:
    """Place ``node`` (and its subtree) as the previous sibling of ``target``.

    Raises:
        InvalidTargetError: Target is new, a root, the node itself or inside it
    """
    target_coords = await _load_target(store, node, target)
    if target_coords.is_root:
        raise _rejected(InvalidTargetError(TARGET_IS_ROOT, **_ids(store, node, target)))
    return await _relocate(store, node, target, target_coords.left, 0, "insert_before")


async def insert_after[N](store: CoordinateStore[N], node: N, target: N) -> N:
    """Place ``node`` (and its subtree) as the next sibling of ``target``.

    Raises:
        InvalidTargetError: Target is new, a root, the node itself or inside it
    """
    target_coords = await _load_target(store, node, target)
    if target_coords.is_root:
        raise _rejected(InvalidTargetError(TARGET_IS_ROOT, **_ids(store, node, target)))
    return await _relocate(store, node, target, target_coords.right + 1, 0, "insert_after")


async def prepend_to[N](store: CoordinateStore[N], node: N, target: N) -> N:
    """Place ``node`` as the first child of ``target``.

    Raises:
        InvalidTargetError: Target is new, the node itself or inside it
    """
    target_coords = await _load_target(store, node, target)
    return await _relocate(store, node, target, target_coords.left + 1, 1, "prepend_to")


async def append_to[N](store: CoordinateStore[N], node: N, target: N) -> N:
    """Place ``node`` as the last child of ``target``.

    Appending the current last child again leaves every coordinate unchanged.

    Raises:
        InvalidTargetError: Target is new, the node itself or inside it
    """
    target_coords = await _load_target(store, node, target)
    return await _relocate(store, node, target, target_coords.right, 1, "append_to")


async def move_node[N](
    store: CoordinateStore[N],
    node: N,
    target: N,
    start: int,
    relative_depth: int,
) -> N:
    """Generic move: put ``node`` at endpoint ``start`` of the target's tree.

    Args:
        store: Coordinate store
        node: Moving node, new or persisted
        target: Node the position is computed from (reloaded first)
        start: Endpoint value the node's ``left`` takes before the gap closes
        relative_depth: Depth of the node relative to ``target``

    Raises:
        InvalidTargetError: Target is new, the node itself or inside it
    """
    await _load_target(store, node, target)
    return await _relocate(store, node, target, start, relative_depth, "move_node")


# ──────────────────────────────────────────────────────────────
# Roots
# ──────────────────────────────────────────────────────────────


async def make_root[N](store: CoordinateStore[N], node: N) -> N:
    """Create ``node`` as a new root, or detach a persisted node as a root.

    A new node is written at ``(1, 2, 0)`` and tagged with its own identity
    as ``tree``. A persisted node takes its subtree along into a tree of its
    own (multi-tree models only).

    Raises:
        InvariantViolationError: A root exists and the model holds one tree
        IllegalSelfMoveError: The node already is a root
    """
    await reject_second_root(store, node)

    old, new = await _load_node(store, node)
    if new:
        async with _mutation(store, "make_root") as ctx:
            store.place(node, NodeCoordinates(DEFAULT_LEFT, DEFAULT_RIGHT, DEFAULT_DEPTH))
            await store.insert(node)
            await tag_new_root(store, node)
            await _verify(store, store.scope_for(store.coordinates(node).tree))
            ctx.set_result(node_id=store.identity(node))
        return node

    if old.is_root:
        raise _rejected(IllegalSelfMoveError(ROOT_AS_ROOT, node_id=store.identity(node)))
    return await _detach_as_root(store, node, old)


async def move_as_root[N](store: CoordinateStore[N], node: N) -> N:
    """Detach a persisted node with its subtree into a tree of its own.

    Raises:
        RepositoryError: The node has not been persisted
        InvariantViolationError: The model holds one tree
        IllegalSelfMoveError: The node already is a root
    """
    if not store.multi_tree:
        raise _rejected(InvariantViolationError(SECOND_ROOT, node_id=store.identity(node)))

    old, new = await _load_node(store, node)
    if new:
        raise RepositoryError("Can not move a node that has not been saved.")
    if old.is_root:
        raise _rejected(IllegalSelfMoveError(ROOT_AS_ROOT, node_id=store.identity(node)))
    return await _detach_as_root(store, node, old)


async def reject_second_root[N](store: CoordinateStore[N], node: N) -> None:
    """Refuse a second root on a model that holds one tree.

    Raises:
        InvariantViolationError: A root exists and the model holds one tree
    """
    if not store.multi_tree and await store.find_one(roots_filter()) is not None:
        raise _rejected(InvariantViolationError(SECOND_ROOT, node_id=store.identity(node)))


async def tag_new_root[N](store: CoordinateStore[N], node: N) -> bool:
    """Post-create step: a freshly inserted root of a multi-tree model gets ``tree = id``.

    Returns:
        Whether the node was tagged
    """
    if not store.multi_tree or not store.coordinates(node).is_root:
        return False
    await store.assign_tree(node, store.identity(node))
    return True


# ──────────────────────────────────────────────────────────────
# Deletion
# ──────────────────────────────────────────────────────────────


async def delete_node[N](store: CoordinateStore[N], node: N) -> int:
    """Delete ``node`` with its whole subtree and close the gap.

    Returns:
        Number of rows removed (the node plus its descendants)
    """
    if not store.is_persisted(node):
        raise RepositoryError("Can not delete a node that has not been saved.")

    await store.refresh(node, lock=store.lock_rows)
    old = store.coordinates(node)
    scope = store.scope_for(old.tree)
    node_id = store.identity(node)

    async with _mutation(store, "delete", node_id=node_id) as ctx:
        if old.has_children:
            await store.delete_where(strictly_inside(old.left, old.right, scope))
        await store.delete(node)
        await shift(store, old.right, -old.width, scope)
        await _verify(store, scope)
        ctx.set_result(rows_removed=old.descendant_count + 1)

    return old.descendant_count + 1


# ──────────────────────────────────────────────────────────────
# Internals
# ──────────────────────────────────────────────────────────────


async def _relocate[N](
    store: CoordinateStore[N],
    node: N,
    target: N,
    start: int,
    relative_depth: int,
    operation: str,
) -> N:
    target_coords = store.coordinates(target)
    old, new = await _load_node(store, node)
    if not new:
        if target_coords.is_descendant_of(old):
            raise _rejected(InvalidTargetError(TARGET_IS_CHILD, **_ids(store, node, target)))
        if target_coords.is_same_node(old):
            raise _rejected(InvalidTargetError(TARGET_IS_SAME, **_ids(store, node, target)))

    target_scope = store.scope_for(target_coords.tree)
    depth = target_coords.depth + relative_depth

    async with _mutation(store, operation, **_ids(store, node, target)) as ctx:
        if new:
            await shift(store, start, 2, target_scope)
            store.place(node, NodeCoordinates(start, start + 1, depth, target_coords.tree))
            await store.insert(node)
            await _verify(store, target_scope)
        else:
            width = old.width
            old_scope = store.scope_for(old.tree)

            await shift(store, start, width, target_scope)
            # opening the gap moved the subtree too when it lies at or after it
            if old.tree == target_coords.tree and old.left >= start:
                applied_left = old.left + width
            else:
                applied_left = old.left
            await store.relabel(
                within(applied_left, applied_left + width - 1, old_scope),
                start - applied_left,
                depth - old.depth,
                target_scope,
            )
            await shift(store, old.right + 1, -width, old_scope)
            await _verify(store, target_scope, old_scope)

        ctx.set_result(start=start, new=new)

    await store.refresh(node)
    await store.refresh(target)
    return node


async def _detach_as_root[N](store: CoordinateStore[N], node: N, old: NodeCoordinates) -> N:
    node_id = store.identity(node)
    old_scope = store.scope_for(old.tree)
    new_scope = TreeScope.of(node_id)

    async with _mutation(store, "move_as_root", node_id=node_id) as ctx:
        await store.relabel(
            within(old.left, old.right, old_scope),
            -(old.left - 1),
            -old.depth,
            new_scope,
        )
        await shift(store, old.left, -old.width, old_scope)
        await _verify(store, old_scope, new_scope)
        ctx.set_result(width=old.width, old_tree=old.tree)

    await store.refresh(node)
    return node


async def _load_target[N](store: CoordinateStore[N], node: N, target: N) -> NodeCoordinates:
    if not store.is_persisted(target):
        raise _rejected(InvalidTargetError(TARGET_IS_NEW, node_id=store.identity(node)))
    await store.refresh(target, lock=store.lock_rows)
    return store.coordinates(target)


async def _load_node[N](store: CoordinateStore[N], node: N) -> tuple[NodeCoordinates, bool]:
    """Return the node's current coordinates and whether it is new."""
    if store.is_persisted(node):
        await store.refresh(node, lock=store.lock_rows)
        return store.coordinates(node), False
    store.forget(node)
    return store.coordinates(node), True


async def _verify(store: CoordinateStore[Any], *scopes: TreeScope) -> None:
    if not store.verify_integrity:
        return
    for scope in dict.fromkeys(scopes):
        await verify_tree(store, scope)


@asynccontextmanager
async def _mutation(
    store: CoordinateStore[Any], operation: str, **context: Any
) -> AsyncIterator[OperationContext]:
    async with (
        operation_context(f"nested_set.{operation}", logger=logger, **context) as ctx,
        store.transaction(),
    ):
        yield ctx


def _ids(store: CoordinateStore[Any], node: Any, target: Any) -> dict[str, Any]:
    return {"node_id": store.identity(node), "target_id": store.identity(target)}


def _rejected[E: NestedSetError](error: E) -> E:
    logger.info(
        "Tree mutation rejected: %s",
        error.message,
        extra={"error_type": type(error).__name__, **error.details},
    )
    return error


__all__ = [
    "ROOT_AS_ROOT",
    "SECOND_ROOT",
    "TARGET_IS_CHILD",
    "TARGET_IS_NEW",
    "TARGET_IS_ROOT",
    "TARGET_IS_SAME",
    "append_to",
    "delete_node",
    "insert_after",
    "insert_before",
    "make_root",
    "move_as_root",
    "move_node",
    "prepend_to",
    "reject_second_root",
    "tag_new_root",
]
