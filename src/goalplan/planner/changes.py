"""Schedule changes that drive incremental adaptation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from goalplan.models import Task


@dataclass(frozen=True)
class TaskAdded:
    task: Task


@dataclass(frozen=True)
class TaskRemoved:
    task_id: str


@dataclass(frozen=True)
class DeadlineChanged:
    """New deadline for one task, or for the goal when task_id is None."""

    deadline: datetime | None
    task_id: str | None = None


@dataclass(frozen=True)
class EffortReestimated:
    task_id: str
    effort_hours: float


@dataclass(frozen=True)
class DependenciesChanged:
    task_id: str
    depends_on: tuple[str, ...]


@dataclass(frozen=True)
class TaskMarkedOverdue:
    """Task fell behind; remaining work restarts at the adaptation's "now".

    logged_hours, when given, replaces the progress recorded on the task.
    """

    task_id: str
    logged_hours: float | None = None


@dataclass(frozen=True)
class TaskCompleted:
    """Task finished at completed_at, which may be earlier or later than planned."""

    task_id: str
    completed_at: datetime


ScheduleChange = Union[
    TaskAdded,
    TaskRemoved,
    DeadlineChanged,
    EffortReestimated,
    DependenciesChanged,
    TaskMarkedOverdue,
    TaskCompleted,
]


def describe_change(change: ScheduleChange) -> str:
    """One-line human-readable description of a change."""
    if isinstance(change, TaskAdded):
        return f"added {change.task.id}"
    if isinstance(change, TaskRemoved):
        return f"removed {change.task_id}"
    if isinstance(change, DeadlineChanged):
        target = change.task_id or "goal"
        when = f"{change.deadline:%Y-%m-%d %H:%M}" if change.deadline else "none"
        return f"deadline of {target} -> {when}"
    if isinstance(change, EffortReestimated):
        return f"re-estimated {change.task_id} at {change.effort_hours:g}h"
    if isinstance(change, DependenciesChanged):
        deps = ", ".join(change.depends_on) or "none"
        return f"dependencies of {change.task_id} -> {deps}"
    if isinstance(change, TaskMarkedOverdue):
        return f"{change.task_id} overdue"
    return f"completed {change.task_id} at {change.completed_at:%Y-%m-%d %H:%M}"
