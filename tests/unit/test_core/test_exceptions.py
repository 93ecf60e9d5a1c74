"""Unit tests for repository and nested-set exceptions."""

from __future__ import annotations

import pytest

from nested_set.core.database.exceptions import (
    IllegalSelfMoveError,
    InvalidTargetError,
    InvariantViolationError,
    NestedSetError,
    NotFoundError,
    RepositoryError,
)


@pytest.mark.unit
class TestRepositoryError:
    """Test suite for RepositoryError."""

    def test_message_without_details(self):
        error = RepositoryError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.details == {}

    def test_message_with_details(self):
        error = RepositoryError("Shift failed", details={"boundary": 4, "delta": -2})

        assert str(error) == "Shift failed (boundary=4, delta=-2)"


@pytest.mark.unit
class TestNotFoundError:
    """Test suite for NotFoundError."""

    def test_message_and_attributes(self):
        error = NotFoundError("Car", {"id": 42})

        assert error.model_name == "Car"
        assert error.identifier == {"id": 42}
        assert error.message == "Car not found with id=42"
        assert error.details == {"model": "Car", "id": 42}
        assert repr(error) == "NotFoundError(model='Car', identifier={'id': 42})"

    def test_is_repository_error(self):
        assert isinstance(NotFoundError("Car", {"id": 1}), RepositoryError)


@pytest.mark.unit
class TestNestedSetErrors:
    """Test suite for the nested-set error taxonomy."""

    @pytest.mark.parametrize(
        "error",
        [
            InvalidTargetError("bad target", node_id=1, target_id=2),
            InvariantViolationError("second root"),
            IllegalSelfMoveError("root as root", node_id=1),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, NestedSetError)
        assert isinstance(error, RepositoryError)

    def test_invalid_target_details(self):
        error = InvalidTargetError("bad target", node_id=3, target_id=7)

        assert error.node_id == 3
        assert error.target_id == 7
        assert error.details == {"node_id": 3, "target_id": 7}

    def test_invariant_violation_issues(self):
        error = InvariantViolationError("check failed", issues=["node 1: root has depth 1"], scope="x")

        assert error.issues == ["node 1: root has depth 1"]
        assert error.details == {"scope": "x", "issues": ["node 1: root has depth 1"]}

    def test_invariant_violation_without_issues(self):
        error = InvariantViolationError("second root", node_id=None)

        assert error.issues == []
        assert "issues" not in error.details

    def test_illegal_self_move(self):
        error = IllegalSelfMoveError("Can not move the root node as the root.", node_id=1)

        assert str(error) == "Can not move the root node as the root. (node_id=1)"
