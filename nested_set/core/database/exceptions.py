"""Database repository exceptions.

Custom exceptions for repository and nested-set operations that provide
better error messages and typing than raw SQLAlchemy exceptions.

Store-level failures (deadlocks, disconnects, constraint violations) are not
wrapped: they propagate as SQLAlchemy errors and are never retried here.
"""
from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations.

    Raised when a repository operation fails due to programming
    errors, configuration issues, or unexpected states.

    This is distinct from data-related errors (NotFoundError) and
    indicates a problem with the repository itself.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize repository error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFoundError(RepositoryError):
    """Entity not found in database.

    Raised when querying for an entity by primary key or unique
    field that doesn't exist.

    Attributes:
        model_name: Name of the model class that wasn't found
        identifier: The key/value that was searched for
    """

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        """Initialize not found error.

        Args:
            model_name: Name of the model (e.g., "Category")
            identifier: Key-value pairs used in the search (e.g., {"id": 123})
        """
        self.model_name = model_name
        self.identifier = identifier

        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        message = f"{model_name} not found with {id_str}"

        super().__init__(message, details={"model": model_name, **identifier})

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"NotFoundError(model={self.model_name!r}, identifier={self.identifier!r})"


class NestedSetError(RepositoryError):
    """Base exception for rejected tree mutations.

    Raised before or during a structural change (insert, move, delete).
    When raised inside the mutation transaction every statement already
    issued is rolled back.
    """


class InvalidTargetError(NestedSetError):
    """The target node cannot receive the moving node.

    Raised when:
    - a sibling-relative insert targets a root node
    - the target is a descendant of the moving node
    - the target is the moving node itself
    - the target has not been persisted yet
    """

    def __init__(self, message: str, *, node_id: Any = None, target_id: Any = None):
        """Initialize invalid target error.

        Args:
            message: Error description
            node_id: Identity of the moving node (None when unpersisted)
            target_id: Identity of the rejected target
        """
        self.node_id = node_id
        self.target_id = target_id
        super().__init__(message, details={"node_id": node_id, "target_id": target_id})


class InvariantViolationError(NestedSetError):
    """A tree-wide invariant would be (or has been found) broken.

    Raised when a second root is requested while tree partitioning is
    disabled, and by integrity verification when stored coordinates do not
    form a valid nested set.

    Attributes:
        issues: Human-readable descriptions of each violation found
    """

    def __init__(self, message: str, issues: list[str] | None = None, **details: Any):
        """Initialize invariant violation.

        Args:
            message: Error description
            issues: Individual violations (empty for rule-based rejections)
            **details: Additional context (tree scope, counts)
        """
        self.issues = issues or []
        if self.issues:
            details["issues"] = self.issues
        super().__init__(message, details=details)


class IllegalSelfMoveError(NestedSetError):
    """The root of a tree was asked to become a root again."""

    def __init__(self, message: str, *, node_id: Any = None):
        self.node_id = node_id
        super().__init__(message, details={"node_id": node_id})


__all__ = [
    "IllegalSelfMoveError",
    "InvalidTargetError",
    "InvariantViolationError",
    "NestedSetError",
    "NotFoundError",
    "RepositoryError",
]
