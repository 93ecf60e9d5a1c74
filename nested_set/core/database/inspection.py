"""SQLAlchemy instance inspection utilities.

The mutation engine treats a node differently depending on whether it has
been written to the database yet: a brand-new node only reserves two slots,
while a persisted node drags its whole subtree along. These helpers answer
that question through SQLAlchemy's inspection API without triggering any
database operation.

Example:
    >>> node = Category(name="books")
    >>> get_instance_state(node)
    'transient'
    >>> is_new(node)
    True
    >>> await repo.create(session, node)
    >>> is_persisted(node), get_primary_key(node)
    (True, (1,))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

if TYPE_CHECKING:
    from sqlalchemy.orm import InstanceState


def get_instance_state(instance: Any) -> str:
    """Get human-readable state of instance.

    Args:
        instance: SQLAlchemy ORM model instance

    Returns:
        One of: "transient", "pending", "persistent", "detached", "deleted"
    """
    state: InstanceState[Any] = sa_inspect(instance)

    if state.transient:
        return "transient"
    if state.pending:
        return "pending"
    if state.deleted:
        return "deleted"
    if state.detached:
        return "detached"
    return "persistent"


def is_new(instance: Any) -> bool:
    """Check if instance is new (not yet in database).

    Args:
        instance: SQLAlchemy ORM model instance

    Returns:
        True if instance has never been flushed to database
    """
    state: InstanceState[Any] = sa_inspect(instance)
    return state.pending or state.transient


def is_persisted(instance: Any) -> bool:
    """Check if instance has a database identity.

    Unlike ``state.persistent`` this is also true for detached instances,
    which still denote an existing row.

    Args:
        instance: SQLAlchemy ORM model instance

    Returns:
        True if the instance was flushed and has not been deleted
    """
    state: InstanceState[Any] = sa_inspect(instance)
    return state.has_identity and not state.deleted and not state.was_deleted


def get_primary_key(instance: Any) -> tuple[Any, ...]:
    """Get primary key value(s) for instance.

    Args:
        instance: SQLAlchemy ORM model instance

    Returns:
        Tuple of primary key values (single value tuple for simple PKs)
    """
    state: InstanceState[Any] = sa_inspect(instance)
    mapper = state.mapper

    return tuple(
        mapper.primary_key_from_instance(instance),
    )


def get_identity(instance: Any) -> Any:
    """Get the identity of a persisted instance, None when it has none.

    Single-column keys are unwrapped, composite keys are returned as tuples.
    """
    state: InstanceState[Any] = sa_inspect(instance)
    if state.identity is None:
        return None
    return state.identity[0] if len(state.identity) == 1 else state.identity


__all__ = [
    "get_identity",
    "get_instance_state",
    "get_primary_key",
    "is_new",
    "is_persisted",
]
