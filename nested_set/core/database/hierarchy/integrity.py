"""Integrity checks for stored nested-set coordinates.

The mutation engine relabels a moved subtree with a single depth delta and
trusts the coordinates it finds. These checks detect a table that is no
longer a valid nested set, either on demand (``NestedSetRepository.verify``)
or after every mutation when ``verify_integrity`` is enabled.

    issues = check_tree([(1, NodeCoordinates(1, 4, 0)), (2, NodeCoordinates(2, 3, 1))])
    assert issues == []
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from nested_set.core.database.exceptions import InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from nested_set.core.database.hierarchy.coordinates import NodeCoordinates, TreeScope
    from nested_set.core.database.hierarchy.store import CoordinateStore


@dataclass(frozen=True, slots=True)
class IntegrityIssue:
    """One violation found in a tree."""

    node_id: Any
    message: str

    def __str__(self) -> str:
        if self.node_id is None:
            return self.message
        return f"node {self.node_id!r}: {self.message}"


def check_tree(rows: Iterable[tuple[Any, NodeCoordinates]]) -> list[IntegrityIssue]:
    """Check the rows of a single tree.

    Args:
        rows: ``(identity, coordinates)`` pairs, in any order

    Returns:
        Every violation found, empty when the tree is consistent
    """
    nodes = sorted(rows, key=lambda row: row[1].left)
    if not nodes:
        return []

    issues: list[IntegrityIssue] = []

    for node_id, c in nodes:
        if c.right <= c.left:
            issues.append(IntegrityIssue(node_id, f"right {c.right} is not greater than left {c.left}"))
        elif (c.right - c.left) % 2 == 0:
            issues.append(IntegrityIssue(node_id, f"interval ({c.left}, {c.right}) has even width"))
        if c.depth < 0:
            issues.append(IntegrityIssue(node_id, f"negative depth {c.depth}"))

    # endpoints must be exactly 1..2N
    endpoints = Counter(v for _, c in nodes for v in (c.left, c.right))
    expected = set(range(1, 2 * len(nodes) + 1))
    duplicates = sorted(v for v, count in endpoints.items() if count > 1)
    missing = sorted(expected - endpoints.keys())
    extra = sorted(endpoints.keys() - expected)
    if duplicates:
        issues.append(IntegrityIssue(None, f"duplicate endpoints {duplicates}"))
    if missing:
        issues.append(IntegrityIssue(None, f"missing endpoints {missing}"))
    if extra:
        issues.append(IntegrityIssue(None, f"endpoints out of range {extra}"))

    roots = [(node_id, c) for node_id, c in nodes if c.left == 1]
    if len(roots) != 1:
        issues.append(IntegrityIssue(None, f"expected exactly one root, found {len(roots)}"))
    for node_id, c in roots:
        if c.depth != 0:
            issues.append(IntegrityIssue(node_id, f"root has depth {c.depth}"))

    # walk in document order keeping the chain of open ancestors
    stack: list[tuple[Any, NodeCoordinates]] = []
    for node_id, c in nodes:
        while stack and stack[-1][1].right < c.left:
            stack.pop()
        if stack:
            parent_id, p = stack[-1]
            if c.right >= p.right:
                issues.append(
                    IntegrityIssue(node_id, f"interval overlaps the interval of node {parent_id!r}")
                )
            elif c.depth != p.depth + 1:
                issues.append(
                    IntegrityIssue(
                        node_id, f"depth {c.depth} under node {parent_id!r} at depth {p.depth}"
                    )
                )
        elif c.left != 1:
            issues.append(IntegrityIssue(node_id, "node lies outside the root interval"))
        stack.append((node_id, c))

    return issues


def check_forest(rows: Iterable[tuple[Any, NodeCoordinates]]) -> list[IntegrityIssue]:
    """Check every tree of a multi-tree table, grouping rows by ``tree``."""
    trees: dict[Any, list[tuple[Any, NodeCoordinates]]] = defaultdict(list)
    for node_id, c in rows:
        trees[c.tree].append((node_id, c))

    issues: list[IntegrityIssue] = []
    for tree, members in trees.items():
        for issue in check_tree(members):
            issues.append(IntegrityIssue(issue.node_id, f"tree {tree!r}: {issue.message}"))
    return issues


async def verify_tree(store: CoordinateStore[Any], scope: TreeScope) -> None:
    """Load one scope from the store and raise if it is not a valid nested set.

    Raises:
        InvariantViolationError: Carrying every issue found
    """
    rows = await store.load_coordinates(scope)
    issues = check_forest(rows) if store.multi_tree and not scope.enabled else check_tree(rows)
    if issues:
        raise InvariantViolationError(
            "Nested set integrity check failed",
            issues=[str(issue) for issue in issues],
            scope=repr(scope),
        )


__all__ = [
    "IntegrityIssue",
    "check_forest",
    "check_tree",
    "verify_tree",
]
