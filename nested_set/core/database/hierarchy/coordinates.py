"""Pure value types for nested-set coordinates.

A node in a nested set is described by an interval ``[left, right]``, its
``depth`` below the root and, when one table holds several trees, the
``tree`` discriminator. Everything in this module is pure Python: no session,
no queries. The query and mutation engines build on these helpers.

Example:
    >>> cars = NodeCoordinates(1, 14, 0)
    >>> focus = NodeCoordinates(4, 5, 3)
    >>> cars.is_ancestor_of(focus)
    True
    >>> focus.is_leaf
    True
    >>> cars.descendant_count
    6
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typing import Self

# Coordinates reported by a node that has not been placed in a tree yet
DEFAULT_LEFT = 1
DEFAULT_RIGHT = 2
DEFAULT_DEPTH = 0


@dataclass(frozen=True, slots=True)
class TreeScope:
    """Tagged optional tree discriminator.

    ``UNSCOPED`` means "add no tree predicate at all" (single-tree tables, or
    forest-wide queries). ``TreeScope.of(value)`` restricts a predicate or an
    assignment to one tree. The tag is explicit so that ``None`` can still be
    a legitimate tree value.

    Attributes:
        enabled: Whether a tree predicate applies
        value: Tree discriminator value (only meaningful when enabled)
    """

    enabled: bool = False
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> Self:
        """Scope to a single tree."""
        return cls(enabled=True, value=value)

    def __repr__(self) -> str:
        if not self.enabled:
            return "TreeScope(unscoped)"
        return f"TreeScope(tree={self.value!r})"


UNSCOPED = TreeScope()


@dataclass(frozen=True, slots=True)
class NodeCoordinates:
    """Immutable nested-set position of a node.

    Attributes:
        left: Opening endpoint of the interval
        right: Closing endpoint of the interval (covers all descendants)
        depth: Edge count from the tree root (root is 0)
        tree: Tree discriminator, None for single-tree tables
    """

    left: int
    right: int
    depth: int
    tree: Any = None

    @property
    def width(self) -> int:
        """Number of endpoints occupied by the subtree (2 per node)."""
        return self.right - self.left + 1

    @property
    def descendant_count(self) -> int:
        """Number of descendants, derived from the interval width."""
        return (self.right - self.left - 1) // 2

    @property
    def is_root(self) -> bool:
        return self.left == 1

    @property
    def is_leaf(self) -> bool:
        return self.right - self.left == 1

    @property
    def has_children(self) -> bool:
        return self.right - self.left != 1

    def is_ancestor_of(self, other: NodeCoordinates) -> bool:
        """Strict interval containment within the same tree."""
        return self.left < other.left and self.right > other.right and self.tree == other.tree

    def is_descendant_of(self, other: NodeCoordinates) -> bool:
        return other.is_ancestor_of(self)

    def is_same_node(self, other: NodeCoordinates) -> bool:
        """Two positions denote the same node when the intervals coincide."""
        return self.left == other.left and self.right == other.right and self.tree == other.tree


__all__ = [
    "DEFAULT_DEPTH",
    "DEFAULT_LEFT",
    "DEFAULT_RIGHT",
    "UNSCOPED",
    "NodeCoordinates",
    "TreeScope",
]
