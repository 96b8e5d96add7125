"""Data models for goalplan."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum


class Priority(str, Enum):
    """Task priority, ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Ordinal rank (1 = low ... 4 = critical)."""
        return _PRIORITY_RANKS[self]

    @classmethod
    def parse(cls, value: Priority | str | int | None) -> Priority:
        """Parse a priority name ("High") or rank (1-4).

        Raises:
            ValueError: If the value names no priority
        """
        if value is None:
            return cls.MEDIUM
        if isinstance(value, Priority):
            return value
        if isinstance(value, int):
            for priority, rank in _PRIORITY_RANKS.items():
                if rank == value:
                    return priority
            raise ValueError(f"Priority rank must be 1-4, got {value}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown priority '{value}' (valid: {valid})") from None


_PRIORITY_RANKS = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
    Priority.CRITICAL: 4,
}


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class ComplexityTier(str, Enum):
    """Coarse size of a goal, as judged when it was decomposed."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


@dataclass(frozen=True)
class Goal:
    """A user's high-level goal.

    Immutable once tasks are generated; deadline edits are expressed as
    DeadlineChanged schedule changes and produce a new Goal.
    """

    id: str
    title: str
    deadline: datetime
    complexity: ComplexityTier = ComplexityTier.MODERATE
    created_at: datetime | None = None  # Earliest plausible start

    def with_deadline(self, deadline: datetime) -> Goal:
        """Return a copy of this goal with a new deadline."""
        return replace(self, deadline=deadline)


@dataclass(frozen=True)
class Task:
    """A normalized, schedulable task belonging to a goal."""

    id: str
    goal_id: str
    title: str
    effort_hours: float
    description: str = ""
    priority: Priority = Priority.MEDIUM
    depends_on: tuple[str, ...] = ()
    status: TaskStatus = TaskStatus.PENDING
    deadline: datetime | None = None  # Falls back to the goal deadline
    not_before: datetime | None = None  # Earliest allowed start
    logged_hours: float = 0.0  # Progress already recorded
    done_when: str | None = None

    @property
    def remaining_hours(self) -> float:
        """Effort still to be done (estimate minus logged progress)."""
        return max(self.effort_hours - self.logged_hours, 0.0)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


def _default_str_list() -> list[str]:
    return []


@dataclass
class DraftTask:
    """A raw task descriptor as proposed by a goal decomposer.

    Fields are deliberately loose (strings or numbers) because decomposers are
    untrusted; the graph builder normalizes and validates them.
    """

    id: str
    title: str
    description: str = ""
    effort: str | float | None = None
    priority: str | int | None = None
    depends_on: list[str] = field(default_factory=_default_str_list)
    deadline: str | date | datetime | None = None
    done_when: str | None = None
    status: str | None = None
    logged_hours: float = 0.0
