"""Mixins for models stored as nested sets.

``NestedSetMixin`` adds the ``lft``/``rgt``/``depth`` columns, pure tree
predicates and session-taking navigation methods. ``MultiTreeMixin`` adds a
``tree`` column so one table can hold several independent trees.

Example:
    >>> from nested_set.core.database import Base, IntegerPKMixin
    >>>
    >>> class Category(Base, IntegerPKMixin, NestedSetMixin):
    ...     __tablename__ = "categories"
    ...     name: Mapped[str] = mapped_column(String(255))
    >>>
    >>> # Instance navigation
    >>> cat = await session.get(Category, 4)
    >>> ancestors = await cat.parents(session)
    >>> children = await cat.children(session, max_depth=1)
    >>> nxt = await cat.next_sibling(session)
    >>>
    >>> # Class-level queries
    >>> roots = await Category.roots(session)

Note:
    - Database column names are configurable via ``__left_column__``,
      ``__right_column__``, ``__depth_column__`` and ``__tree_column__``;
      the Python attributes are always ``lft``, ``rgt``, ``depth``, ``tree``
    - Navigation methods are read-only; structural changes go through
      ``NestedSetRepository``
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from nested_set.core.database.hierarchy import queries
from nested_set.core.database.hierarchy.coordinates import (
    DEFAULT_DEPTH,
    DEFAULT_LEFT,
    DEFAULT_RIGHT,
    NodeCoordinates,
)
from nested_set.core.database.hierarchy.store import SQLAlchemyCoordinateStore

if TYPE_CHECKING:
    from typing import Self

    from sqlalchemy.ext.asyncio import AsyncSession


class NestedSetMixin:
    """Mixin for models holding a single nested-set tree.

    Provides:
        lft, rgt: Interval endpoints (a new node defaults to 1 and 2)
        depth: Distance from the root (root is 0)
    """

    __allow_unmapped__ = True

    # Override in subclass to use different column names
    __left_column__: ClassVar[str] = "lft"
    __right_column__: ClassVar[str] = "rgt"
    __depth_column__: ClassVar[str] = "depth"
    __multi_tree__: ClassVar[bool] = False

    @declared_attr
    def lft(cls) -> Mapped[int]:
        return mapped_column(cls.__left_column__, Integer, nullable=False, default=DEFAULT_LEFT, index=True)

    @declared_attr
    def rgt(cls) -> Mapped[int]:
        return mapped_column(
            cls.__right_column__, Integer, nullable=False, default=DEFAULT_RIGHT, index=True
        )

    @declared_attr
    def depth(cls) -> Mapped[int]:
        return mapped_column(cls.__depth_column__, Integer, nullable=False, default=DEFAULT_DEPTH)

    # ──────────────────────────────────────────────────────────────
    # Pure predicates (no database access)
    # ──────────────────────────────────────────────────────────────

    @property
    def coordinates(self) -> NodeCoordinates:
        """Current position; a node never placed reports ``(1, 2, 0)``."""
        return NodeCoordinates(
            DEFAULT_LEFT if self.lft is None else self.lft,
            DEFAULT_RIGHT if self.rgt is None else self.rgt,
            DEFAULT_DEPTH if self.depth is None else self.depth,
            getattr(self, "tree", None),
        )

    @property
    def is_root(self) -> bool:
        return self.coordinates.is_root

    @property
    def is_leaf(self) -> bool:
        return self.coordinates.is_leaf

    @property
    def has_children(self) -> bool:
        return self.coordinates.has_children

    def is_ancestor_of(self, other: NestedSetMixin) -> bool:
        return self.coordinates.is_ancestor_of(other.coordinates)

    def is_descendant_of(self, other: NestedSetMixin) -> bool:
        return self.coordinates.is_descendant_of(other.coordinates)

    def is_same_node(self, other: NestedSetMixin) -> bool:
        return self.coordinates.is_same_node(other.coordinates)

    # ──────────────────────────────────────────────────────────────
    # Navigation
    # ──────────────────────────────────────────────────────────────

    @classmethod
    def coordinate_store(cls, session: AsyncSession) -> SQLAlchemyCoordinateStore[Any]:
        """Read-only store for navigation queries."""
        return SQLAlchemyCoordinateStore(session, cls)

    async def children(self, session: AsyncSession, max_depth: int | None = None) -> list[Self]:
        """Get descendants, ordered by ``lft``.

        Args:
            session: Async database session
            max_depth: Levels below this node to include (1 = direct children)
        """
        return await queries.children(self.coordinate_store(session), self, max_depth)

    async def descendant_leaves(self, session: AsyncSession) -> list[Self]:
        """Get the leaves inside this node's subtree."""
        return await queries.descendant_leaves(self.coordinate_store(session), self)

    async def parents(self, session: AsyncSession, max_depth: int | None = None) -> list[Self]:
        """Get ancestors, outermost first.

        Args:
            session: Async database session
            max_depth: Number of nearest ancestors to include
        """
        return await queries.parents(self.coordinate_store(session), self, max_depth)

    async def get_parent(self, session: AsyncSession) -> Self | None:
        return await queries.parent(self.coordinate_store(session), self)

    async def get_siblings(self, session: AsyncSession, *, include_self: bool = False) -> list[Self]:
        """Get nodes sharing this node's parent (other roots for a root)."""
        return await queries.siblings(self.coordinate_store(session), self, include_self=include_self)

    async def previous_sibling(self, session: AsyncSession) -> Self | None:
        return await queries.previous_sibling(self.coordinate_store(session), self)

    async def next_sibling(self, session: AsyncSession) -> Self | None:
        return await queries.next_sibling(self.coordinate_store(session), self)

    @classmethod
    async def roots(cls, session: AsyncSession, *criteria: Any) -> list[Self]:
        """Get root nodes (one per tree), narrowed by optional ``criteria``."""
        return await queries.roots(cls.coordinate_store(session), *criteria)

    @classmethod
    async def leaves(cls, session: AsyncSession, *criteria: Any) -> list[Self]:
        return await queries.leaves(cls.coordinate_store(session), *criteria)

    @classmethod
    async def get_tree(
        cls,
        session: AsyncSession,
        max_depth: int | None = None,
        tree: Any = None,
    ) -> list[Self]:
        """Get the whole forest in document order.

        Args:
            session: Async database session
            max_depth: Absolute depth cap (0 = roots only)
            tree: Only this tree (multi-tree models)
        """
        return await queries.get_tree(cls.coordinate_store(session), max_depth=max_depth, tree=tree)


class MultiTreeMixin(NestedSetMixin):
    """Mixin for models holding several independent trees.

    Provides:
        tree: Identity of the tree's root (set once the root is inserted)
    """

    __tree_column__: ClassVar[str] = "tree"
    __multi_tree__: ClassVar[bool] = True

    @declared_attr
    def tree(cls) -> Mapped[int | None]:
        return mapped_column(cls.__tree_column__, Integer, nullable=True, index=True)


__all__ = [
    "MultiTreeMixin",
    "NestedSetMixin",
]
