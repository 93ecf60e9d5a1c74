"""Repositories for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing, and a nested-set
repository exposing tree reads and structural mutations on top of it.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    from nested_set.core.database import NestedSetRepository

    repo = NestedSetRepository(Category)

    root = await repo.make_root(session, Category(name="cars"))
    audi = await repo.append_to(session, Category(name="audi"), root)
    tree = await repo.get_tree(session)
    await session.commit()  # the caller owns the transaction
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select

from nested_set.core.database.exceptions import InvariantViolationError, NotFoundError
from nested_set.core.database.hierarchy import mutations, queries
from nested_set.core.database.hierarchy.coordinates import UNSCOPED
from nested_set.core.database.hierarchy.integrity import check_forest, check_tree
from nested_set.core.database.hierarchy.store import SQLAlchemyCoordinateStore
from nested_set.core.settings import get_nested_set_settings
from nested_set.infra.logging import get_lazy_logger, log_db_operation

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

    from nested_set.core.database.hierarchy.integrity import IntegrityIssue
    from nested_set.core.database.hierarchy.mixins import NestedSetMixin
    from nested_set.core.settings import NestedSetSettings


class BaseRepository[T]:
    """Minimal generic repository for CRUD operations.

    Provides:
        - get(session, id) -> T | None
        - get_or_raise(session, id) -> T (raises NotFoundError)
        - get_by(session, attr, value) -> T | None
        - list(session, limit, offset) -> Sequence[T]
        - create(session, instance) -> T
        - delete(session, instance) -> None

    Session is always explicit - no hidden state. Nothing is committed here;
    the caller decides when the unit of work ends.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class (e.g., Category)
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get entity by primary key.

        Args:
            session: Database session
            id: Primary key value
            options: SQLAlchemy loader options (e.g., selectinload)

        Returns:
            Entity if found, None otherwise
        """
        if options:
            stmt = select(self.model).where(self._pk_attr() == id).options(*options)
            result = await session.execute(stmt)
            instance = result.scalar_one_or_none()
        else:
            instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_or_raise(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T:
        """Get entity by primary key or raise NotFoundError.

        Raises:
            NotFoundError: If entity doesn't exist
        """
        instance = await self.get(session, id, options=options)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise NotFoundError(self.model.__name__, {"id": id})
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
        *,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get entity by arbitrary attribute.

        Example:
            audi = await repo.get_by(session, Category.name, "audi")
        """
        stmt = select(self.model).where(attr == value)
        if options:
            stmt = stmt.options(*options)
        result = await session.execute(stmt)
        instance = result.scalars().first()

        self._lazy.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}"
        )
        return instance

    async def list(
        self,
        session: AsyncSession,
        *,
        limit: int = 100,
        offset: int = 0,
        options: Iterable[Any] | None = None,
    ) -> Sequence[T]:
        """List entities with pagination, ordered by primary key."""
        stmt = select(self.model).order_by(self._pk_attr()).limit(limit).offset(offset)
        if options:
            stmt = stmt.options(*options)
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.list: {self.model.__name__}(limit={limit}, offset={offset}) -> {len(items)} items"
        )
        return items

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values (like id),
        and refreshes to ensure instance is up-to-date.
        """
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        """Delete an entity."""
        entity_id = getattr(instance, "id", None)
        await session.delete(instance)
        await session.flush()

        self._logger.info(
            "Entity deleted",
            extra={"entity": self.model.__name__, "id": str(entity_id), "operation": "db.delete"},
        )

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        """Get primary key attribute, falling back to ``id``."""
        mapper = sa_inspect(self.model, raiseerr=False)
        if mapper is not None and mapper.primary_key:
            prop = mapper.get_property_by_column(mapper.primary_key[0])
            return cast("InstrumentedAttribute[Any]", getattr(self.model, prop.key))

        attr = getattr(self.model, "id", None)
        if attr is None:
            raise AttributeError(f"{self.model.__name__} has no 'id' attribute")
        return cast("InstrumentedAttribute[Any]", attr)


class NestedSetRepository[T: NestedSetMixin](BaseRepository[T]):
    """Repository for models using ``NestedSetMixin`` or ``MultiTreeMixin``.

    Structural changes go through the nested-set mutation engine: each one
    runs inside a SAVEPOINT, is rolled back as a whole on any error, and
    reloads the moved node and its target afterwards. Invalid requests raise
    a ``NestedSetError`` subclass before anything is written.

    When a mutation fails after it started writing, every loaded instance of
    the model is expired. Refresh the ones you still hold
    (``await session.refresh(node)``) before reading their attributes.

    Args:
        model: Mapped nested-set model
        settings: Engine behaviour, defaults to ``get_nested_set_settings()``

    Example:
        repo = NestedSetRepository(Vehicle)
        cars = await repo.make_root(session, Vehicle(name="cars"))
        audi = await repo.append_to(session, Vehicle(name="audi"), cars)
        await repo.insert_before(session, Vehicle(name="bmw"), audi)
    """

    __slots__ = ("settings",)

    def __init__(self, model: type[T], *, settings: NestedSetSettings | None = None) -> None:
        super().__init__(model)
        self.settings = settings or get_nested_set_settings()

    def store(self, session: AsyncSession) -> SQLAlchemyCoordinateStore[T]:
        """Coordinate store bound to ``session`` with the configured behaviour."""
        return SQLAlchemyCoordinateStore(
            session,
            self.model,
            lock_rows=self.settings.lock_rows,
            verify_integrity=self.settings.verify_integrity,
        )

    # ──────────────────────────────────────────────────────────────
    # CRUD
    # ──────────────────────────────────────────────────────────────

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist an instance as-is, tagging it with its own tree when it is a root.

        Coordinates are written exactly as set on the instance (a fresh
        instance lands at ``(1, 2, 0)``). Prefer ``make_root`` and the attach
        operations, which compute coordinates.

        Raises:
            InvariantViolationError: The instance is a root, a root exists and
                the model holds one tree
        """
        store = self.store(session)
        if instance.coordinates.is_root:
            await mutations.reject_second_root(store, instance)
        instance = await super().create(session, instance)
        await mutations.tag_new_root(store, instance)
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        """Delete a node together with its whole subtree."""
        entity_id = getattr(instance, "id", None)
        removed = await mutations.delete_node(self.store(session), instance)

        self._logger.info(
            "Entity deleted",
            extra={
                "entity": self.model.__name__,
                "id": str(entity_id),
                "rows_removed": removed,
                "operation": "db.delete",
            },
        )

    # ──────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────

    @log_db_operation("roots")
    async def roots(self, session: AsyncSession, *criteria: Any) -> list[T]:
        """Root nodes, one per tree, narrowed by optional payload ``criteria``."""
        return await queries.roots(self.store(session), *criteria)

    @log_db_operation("leaves")
    async def leaves(self, session: AsyncSession, *criteria: Any) -> list[T]:
        return await queries.leaves(self.store(session), *criteria)

    @log_db_operation("get_tree")
    async def get_tree(
        self,
        session: AsyncSession,
        node: T | None = None,
        *,
        max_depth: int | None = None,
        tree: Any = None,
    ) -> list[T]:
        """Whole forest, one tree, or the descendants of ``node`` in document order.

        Args:
            session: Database session
            node: Return this node's descendants instead of the forest
            max_depth: Absolute depth cap for the forest, relative below ``node``
            tree: Restrict the forest to one tree (multi-tree models)
        """
        return await queries.get_tree(self.store(session), node, max_depth=max_depth, tree=tree)

    # ──────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────

    async def make_root(self, session: AsyncSession, node: T) -> T:
        """Create ``node`` as a root, or detach a persisted node into its own tree.

        Raises:
            InvariantViolationError: A root exists and the model holds one tree
            IllegalSelfMoveError: The node already is a root
        """
        return await mutations.make_root(self.store(session), node)

    async def insert_before(self, session: AsyncSession, node: T, target: T) -> T:
        """Place ``node`` as the previous sibling of ``target``.

        Raises:
            InvalidTargetError: Target is new, a root, the node itself or inside it
        """
        return await mutations.insert_before(self.store(session), node, target)

    async def insert_after(self, session: AsyncSession, node: T, target: T) -> T:
        """Place ``node`` as the next sibling of ``target``.

        Raises:
            InvalidTargetError: Target is new, a root, the node itself or inside it
        """
        return await mutations.insert_after(self.store(session), node, target)

    async def prepend_to(self, session: AsyncSession, node: T, target: T) -> T:
        """Place ``node`` as the first child of ``target``."""
        return await mutations.prepend_to(self.store(session), node, target)

    async def append_to(self, session: AsyncSession, node: T, target: T) -> T:
        """Place ``node`` as the last child of ``target``."""
        return await mutations.append_to(self.store(session), node, target)

    async def move_node(
        self,
        session: AsyncSession,
        node: T,
        target: T,
        start: int,
        relative_depth: int,
    ) -> T:
        """Generic move to endpoint ``start`` of the target's tree.

        Args:
            session: Database session
            node: Moving node, new or persisted
            target: Node the position is computed from
            start: Endpoint value the node's ``lft`` takes before the gap closes
            relative_depth: Depth of the node relative to ``target``
        """
        return await mutations.move_node(self.store(session), node, target, start, relative_depth)

    # ──────────────────────────────────────────────────────────────
    # Integrity
    # ──────────────────────────────────────────────────────────────

    @log_db_operation("verify")
    async def verify(
        self,
        session: AsyncSession,
        tree: Any = None,
        *,
        raise_on_error: bool = True,
    ) -> list[IntegrityIssue]:
        """Check stored coordinates against the nested-set invariants.

        Args:
            session: Database session
            tree: Check only this tree (multi-tree models), default all
            raise_on_error: Raise instead of returning a non-empty list

        Returns:
            Issues found, empty when every tree is consistent

        Raises:
            InvariantViolationError: When issues are found and ``raise_on_error``
        """
        store = self.store(session)
        scope = store.scope_for(tree) if tree is not None else UNSCOPED
        rows = await store.load_coordinates(scope)
        issues = check_forest(rows) if store.multi_tree and not scope.enabled else check_tree(rows)

        if issues:
            self._logger.warning(
                "Nested set integrity issues found",
                extra={
                    "entity": self.model.__name__,
                    "issues": len(issues),
                    "operation": "db.verify",
                },
            )
            if raise_on_error:
                raise InvariantViolationError(
                    "Nested set integrity check failed",
                    issues=[str(issue) for issue in issues],
                    model=self.model.__name__,
                )
        return issues


__all__ = [
    "BaseRepository",
    "NestedSetRepository",
]
