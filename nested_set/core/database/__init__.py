"""Core database package: declarative base, exceptions and repositories.

Base Classes and Mixins:
    - Base: Declarative base with auto table naming
    - IntegerPKMixin: Auto-increment integer primary key
    - NestedSetMixin, MultiTreeMixin: Nested-set tree columns and navigation

Repository:
    - BaseRepository[T]: Generic CRUD with explicit session passing
    - NestedSetRepository[T]: Tree reads and structural mutations

Exceptions:
    - RepositoryError: Base for everything raised here
    - NotFoundError: Entity lookup failed
    - NestedSetError: Rejected or inconsistent tree operation

Instance Inspection:
    - get_instance_state, is_new, is_persisted, get_primary_key, get_identity
"""

from nested_set.core.database.base import NAMING_CONVENTION, Base, IntegerPKMixin
from nested_set.core.database.exceptions import (
    IllegalSelfMoveError,
    InvalidTargetError,
    InvariantViolationError,
    NestedSetError,
    NotFoundError,
    RepositoryError,
)
from nested_set.core.database.hierarchy import MultiTreeMixin, NestedSetMixin
from nested_set.core.database.inspection import (
    get_identity,
    get_instance_state,
    get_primary_key,
    is_new,
    is_persisted,
)
from nested_set.core.database.repository import BaseRepository, NestedSetRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "IllegalSelfMoveError",
    "IntegerPKMixin",
    "InvalidTargetError",
    "InvariantViolationError",
    "MultiTreeMixin",
    "NestedSetError",
    "NestedSetMixin",
    "NestedSetRepository",
    "NotFoundError",
    "RepositoryError",
    "get_identity",
    "get_instance_state",
    "get_primary_key",
    "is_new",
    "is_persisted",
]
