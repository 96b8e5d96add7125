"""Tests for data models."""

import pytest

from goalplan.models import Goal, Priority, TaskStatus
from tests.conftest import at, make_task


class TestPriority:
    """Test priority parsing and ordering."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("high", Priority.HIGH),
            ("  Critical ", Priority.CRITICAL),
            (1, Priority.LOW),
            (None, Priority.MEDIUM),
            (Priority.LOW, Priority.LOW),
        ],
    )
    def test_parse(self, value: object, expected: Priority) -> None:
        assert Priority.parse(value) == expected  # type: ignore[arg-type]

    def test_rank_order(self) -> None:
        assert [p.rank for p in Priority] == [1, 2, 3, 4]

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="valid: low, medium, high, critical"):
            Priority.parse("urgent")

    def test_rank_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="1-4"):
            Priority.parse(7)


class TestTask:
    """Test derived task properties."""

    def test_remaining_hours(self) -> None:
        assert make_task("a", 3, logged_hours=1).remaining_hours == 2
        assert make_task("a", 3, logged_hours=5).remaining_hours == 0

    def test_is_completed(self) -> None:
        assert make_task("a", 1, status=TaskStatus.COMPLETED).is_completed
        assert not make_task("a", 1, status=TaskStatus.OVERDUE).is_completed


def test_goal_with_deadline_returns_copy() -> None:
    goal = Goal(id="g", title="Goal", deadline=at(10, 17))
    moved = goal.with_deadline(at(12, 17))
    assert moved.deadline == at(12, 17)
    assert goal.deadline == at(10, 17)
