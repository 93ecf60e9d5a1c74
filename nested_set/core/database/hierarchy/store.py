"""Coordinate store: the persistence seam of the nested-set engine.

The query and mutation engines never build SQL themselves. They describe
rows with an ``IntervalFilter`` and hand it to a ``CoordinateStore``, which
offers point and range reads, bulk conditional increments and relabels, row
insertion and deletion, and an atomic transaction scope.

``SQLAlchemyCoordinateStore`` implements the protocol on top of an
``AsyncSession`` and a model using ``NestedSetMixin``:

    store = SQLAlchemyCoordinateStore(session, Category)
    async with store.transaction():
        await store.increment("left", 2, IntervalFilter().where("left", "ge", 4))
        await store.increment("right", 2, IntervalFilter().where("right", "ge", 4))

Bulk statements are ORM-enabled with ``synchronize_session="fetch"``, so
instances already loaded in the session see the new coordinates without a
reload. Statements run without autoflush: rows reach the database only
through ``insert``, ``assign_tree`` and ``delete``. The store flushes but
never commits; the caller owns the outer transaction.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import delete as sql_delete
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select, update

from nested_set.core.database.exceptions import RepositoryError
from nested_set.core.database.hierarchy.coordinates import UNSCOPED, NodeCoordinates, TreeScope
from nested_set.core.database.hierarchy.filters import IntervalFilter
from nested_set.core.database.inspection import get_identity, is_persisted
from nested_set.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

    from nested_set.core.database.hierarchy.filters import Field
    from nested_set.core.database.hierarchy.mixins import NestedSetMixin

# Filter field -> mapped attribute
_ATTRIBUTES: dict[str, str] = {"left": "lft", "right": "rgt", "depth": "depth"}


class CoordinateStore[N](Protocol):
    """Operations the nested-set engine needs from a storage backend."""

    multi_tree: bool
    lock_rows: bool
    verify_integrity: bool

    def coordinates(self, node: N) -> NodeCoordinates: ...

    def identity(self, node: N) -> Any: ...

    def is_persisted(self, node: N) -> bool: ...

    def scope_for(self, tree: Any) -> TreeScope: ...

    def place(self, node: N, coordinates: NodeCoordinates) -> None: ...

    async def find_one(self, flt: IntervalFilter, *criteria: Any) -> N | None: ...

    async def find_all(self, flt: IntervalFilter, *criteria: Any) -> list[N]: ...

    async def load_coordinates(self, scope: TreeScope) -> list[tuple[Any, NodeCoordinates]]: ...

    async def increment(self, field: Field, delta: int, flt: IntervalFilter) -> int: ...

    async def relabel(
        self, flt: IntervalFilter, offset: int, depth_delta: int, tree: TreeScope
    ) -> int: ...

    def forget(self, node: N) -> None: ...

    async def insert(self, node: N) -> None: ...

    async def refresh(self, node: N, *, lock: bool = False) -> None: ...

    async def assign_tree(self, node: N, value: Any) -> None: ...

    async def delete(self, node: N) -> None: ...

    async def delete_where(self, flt: IntervalFilter) -> int: ...

    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    def in_transaction(self) -> bool: ...


class SQLAlchemyCoordinateStore[N: NestedSetMixin]:
    """CoordinateStore backed by an AsyncSession.

    Args:
        session: Session all statements are issued on
        model: Mapped class using NestedSetMixin or MultiTreeMixin
        lock_rows: Reload moving and target rows with SELECT ... FOR UPDATE
        verify_integrity: Ask the mutation engine to re-check touched trees
    """

    __slots__ = ("session", "model", "multi_tree", "lock_rows", "verify_integrity", "_depth", "_lazy")

    def __init__(
        self,
        session: AsyncSession,
        model: type[N],
        *,
        lock_rows: bool = False,
        verify_integrity: bool = False,
    ) -> None:
        self.session = session
        self.model = model
        self.multi_tree = bool(getattr(model, "__multi_tree__", False))
        self.lock_rows = lock_rows
        self.verify_integrity = verify_integrity
        self._depth = 0
        self._lazy = get_lazy_logger(f"{__name__}.{model.__name__}")

    # ──────────────────────────────────────────────────────────────
    # Pure accessors
    # ──────────────────────────────────────────────────────────────

    def coordinates(self, node: N) -> NodeCoordinates:
        return node.coordinates

    def identity(self, node: N) -> Any:
        return get_identity(node)

    def is_persisted(self, node: N) -> bool:
        return is_persisted(node)

    def scope_for(self, tree: Any) -> TreeScope:
        """Scope predicates to ``tree`` when the model holds several trees."""
        return TreeScope.of(tree) if self.multi_tree else UNSCOPED

    def place(self, node: N, coordinates: NodeCoordinates) -> None:
        """Write coordinates onto the instance (flushed by the next insert)."""
        node.lft = coordinates.left
        node.rgt = coordinates.right
        node.depth = coordinates.depth
        if self.multi_tree:
            node.tree = coordinates.tree

    # ──────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────

    async def find_one(self, flt: IntervalFilter, *criteria: Any) -> N | None:
        """Return the first row matching the filter, or None."""
        stmt = (
            select(self.model)
            .where(*self._compile(flt), *criteria)
            .order_by(*self._ordering(flt))
            .limit(1)
        )
        result = await self._execute(stmt)
        row = result.scalar_one_or_none()

        self._lazy.debug(
            lambda: f"store.find_one: {flt.describe()} -> {'found' if row is not None else 'none'}"
        )
        return row

    async def find_all(self, flt: IntervalFilter, *criteria: Any) -> list[N]:
        """Return every row matching the filter in document order.

        Unscoped reads on a multi-tree model are ordered by ``tree`` first,
        so each tree comes out whole and in its own document order.
        """
        stmt = (
            select(self.model)
            .where(*self._compile(flt), *criteria)
            .order_by(*self._ordering(flt))
        )
        result = await self._execute(stmt)
        rows = list(result.scalars().all())

        self._lazy.debug(lambda: f"store.find_all: {flt.describe()} -> {len(rows)} rows")
        return rows

    async def load_coordinates(self, scope: TreeScope) -> list[tuple[Any, NodeCoordinates]]:
        """Read ``(identity, coordinates)`` pairs straight from the table.

        Bypasses the identity map, used by integrity verification.
        """
        model = self.model
        pk_columns = list(sa_inspect(model).primary_key)
        columns = [*pk_columns, model.lft, model.rgt, model.depth]
        if self.multi_tree:
            columns.append(model.tree)

        flt = IntervalFilter(scope=scope)
        stmt = select(*columns).where(*self._compile(flt)).order_by(*self._ordering(flt))
        result = await self._execute(stmt)

        n = len(pk_columns)
        pairs = []
        for row in result.all():
            identity = row[0] if n == 1 else tuple(row[:n])
            tree = row[n + 3] if self.multi_tree else None
            pairs.append((identity, NodeCoordinates(row[n], row[n + 1], row[n + 2], tree)))
        return pairs

    # ──────────────────────────────────────────────────────────────
    # Bulk writes
    # ──────────────────────────────────────────────────────────────

    async def increment(self, field: Field, delta: int, flt: IntervalFilter) -> int:
        """Add ``delta`` to one coordinate column of every matching row."""
        self._require_transaction("increment")
        column = self._attribute(field)
        stmt = (
            update(self.model)
            .where(*self._compile(flt))
            .values({column: column + delta})
            .execution_options(synchronize_session="fetch")
        )
        result = await self._execute(stmt)

        self._lazy.debug(
            lambda: f"store.increment: {field} += {delta} where {flt.describe()} -> {result.rowcount} rows"
        )
        return result.rowcount

    async def relabel(
        self, flt: IntervalFilter, offset: int, depth_delta: int, tree: TreeScope
    ) -> int:
        """Move matching rows by ``offset``, re-depth them and retag their tree.

        ``left``, ``right`` and ``depth`` change in a single statement so the
        relabelled subtree never exists half-moved.
        """
        self._require_transaction("relabel")
        model = self.model
        values: dict[Any, Any] = {
            model.lft: model.lft + offset,
            model.rgt: model.rgt + offset,
            model.depth: model.depth + depth_delta,
        }
        if tree.enabled:
            if not self.multi_tree:
                raise RepositoryError(
                    "Cannot assign a tree value on a single-tree model",
                    details={"model": model.__name__},
                )
            values[model.tree] = tree.value

        stmt = (
            update(model)
            .where(*self._compile(flt))
            .values(values)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._execute(stmt)

        self._lazy.debug(
            lambda: (
                f"store.relabel: offset={offset}, depth_delta={depth_delta}, {tree!r} "
                f"where {flt.describe()} -> {result.rowcount} rows"
            )
        )
        return result.rowcount

    async def delete_where(self, flt: IntervalFilter) -> int:
        """Delete every matching row."""
        self._require_transaction("delete_where")
        stmt = (
            sql_delete(self.model)
            .where(*self._compile(flt))
            .execution_options(synchronize_session="fetch")
        )
        result = await self._execute(stmt)

        self._lazy.debug(lambda: f"store.delete_where: {flt.describe()} -> {result.rowcount} rows")
        return result.rowcount

    # ──────────────────────────────────────────────────────────────
    # Single rows
    # ──────────────────────────────────────────────────────────────

    def forget(self, node: N) -> None:
        """Take a new, not yet flushed node out of the unit of work.

        ``begin_nested()`` flushes pending objects unconditionally, which
        would write the node at its default coordinates before it is placed.
        ``insert`` adds it back.
        """
        if node in self.session.new:
            self.session.expunge(node)

    async def insert(self, node: N) -> None:
        """Persist a new row, its identity is available afterwards."""
        self.session.add(node)
        await self.session.flush()
        self._lazy.debug(lambda: f"store.insert: {self.model.__name__}(id={self.identity(node)})")

    async def refresh(self, node: N, *, lock: bool = False) -> None:
        """Reload the coordinate columns of a persisted row.

        Only ``lft``, ``rgt``, ``depth`` (and ``tree``) are reloaded, unsaved
        payload changes on the instance are kept.
        """
        await self.session.refresh(
            node,
            attribute_names=self._coordinate_attributes(),
            with_for_update=True if lock else None,
        )

    async def assign_tree(self, node: N, value: Any) -> None:
        node.tree = value
        await self.session.flush()
        self._lazy.debug(lambda: f"store.assign_tree: id={self.identity(node)} -> tree={value!r}")

    async def delete(self, node: N) -> None:
        await self.session.delete(node)
        await self.session.flush()

    # ──────────────────────────────────────────────────────────────
    # Transactions
    # ──────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run a block inside a SAVEPOINT.

        On any exception the savepoint is rolled back and every loaded
        instance of the model is expired, since bulk statements changed them
        without marking them dirty. Instances of other models are left alone.
        """
        self._depth += 1
        try:
            async with self.session.begin_nested():
                yield
        except Exception:
            self._expire_model_instances()
            raise
        finally:
            self._depth -= 1

    def in_transaction(self) -> bool:
        return self._depth > 0

    # ──────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────

    async def _execute(self, stmt: Any) -> Any:
        # a pending node flushed here would land at its default (1, 2, 0)
        with self.session.no_autoflush:
            return await self.session.execute(stmt)

    def _expire_model_instances(self) -> None:
        for instance in list(self.session.identity_map.values()):
            if isinstance(instance, self.model):
                self.session.expire(instance)

    def _coordinate_attributes(self) -> list[str]:
        names = ["lft", "rgt", "depth"]
        if self.multi_tree:
            names.append("tree")
        return names

    def _attribute(self, field: str) -> InstrumentedAttribute[int]:
        return getattr(self.model, _ATTRIBUTES[field])

    def _compile(self, flt: IntervalFilter) -> list[Any]:
        """Translate an IntervalFilter into WHERE clauses."""
        clauses = [condition.apply(self._attribute(condition.field)) for condition in flt.conditions]
        if flt.leaves_only:
            clauses.append(self.model.rgt == self.model.lft + 1)
        if flt.scope.enabled:
            if not self.multi_tree:
                raise RepositoryError(
                    "Tree scope used on a single-tree model",
                    details={"model": self.model.__name__, "scope": repr(flt.scope)},
                )
            clauses.append(self.model.tree == flt.scope.value)
        return clauses

    def _ordering(self, flt: IntervalFilter) -> Sequence[Any]:
        if self.multi_tree and not flt.scope.enabled:
            return (self.model.tree, self.model.lft)
        return (self.model.lft,)

    def _require_transaction(self, operation: str) -> None:
        if not self.in_transaction():
            raise RepositoryError(
                "Coordinate writes must run inside store.transaction()",
                details={"operation": operation, "model": self.model.__name__},
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model.__name__}, multi_tree={self.multi_tree})"


__all__ = [
    "CoordinateStore",
    "SQLAlchemyCoordinateStore",
]
