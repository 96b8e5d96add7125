"""Pytest configuration and fixtures for goalplan tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, time
from typing import Any

import pytest

from goalplan.calendar import AvailabilityCalendar, TimeWindow
from goalplan.logger import reset_logger
from goalplan.models import DraftTask, Goal, Task
from goalplan.planner import Schedule, TaskGraph


def at(day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Instant on "Day N" (January 2025), the calendar used throughout the tests."""
    return datetime(2025, 1, day, hour, minute)


def make_task(task_id: str, effort: float, *deps: str, **kwargs: Any) -> Task:
    """Build a normalized task for goal "g"."""
    return Task(
        id=task_id,
        goal_id="g",
        title=f"Do {task_id}",
        effort_hours=effort,
        depends_on=tuple(deps),
        **kwargs,
    )


def make_draft(task_id: str, effort: str | float | None = "1h", **kwargs: Any) -> DraftTask:
    """Build an actionable draft task."""
    kwargs.setdefault("title", f"Write section {task_id}")
    kwargs.setdefault("done_when", "the section is in the shared doc")
    return DraftTask(id=task_id, effort=effort, **kwargs)


def segments_by_day(schedule: Schedule) -> dict[Any, float]:
    """Total assigned hours per calendar day."""
    totals: dict[Any, float] = {}
    for assignment in schedule.assignments.values():
        for start, end in assignment.segments:
            assert start.date() == end.date() or end.time() == time.min
            totals[start.date()] = totals.get(start.date(), 0.0) + (
                (end - start).total_seconds() / 3600
            )
    return totals


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Leave the goalplan logger silent after every test."""
    yield
    reset_logger()


@pytest.fixture
def goal() -> Goal:
    """Goal due on Day 10 at 17:00."""
    return Goal(id="g", title="Ship the guide", deadline=at(10, 17), created_at=at(1, 9))


@pytest.fixture
def morning_calendar() -> AvailabilityCalendar:
    """Four hours a day (09:00-13:00), every day."""
    return AvailabilityCalendar(
        windows=[TimeWindow(start=time(9), end=time(13))],
        daily_capacity_hours=4,
    )


@pytest.fixture
def workday_calendar() -> AvailabilityCalendar:
    """Eight hours a day (09:00-17:00), every day."""
    return AvailabilityCalendar()


@pytest.fixture
def make_graph(goal: Goal) -> Callable[..., TaskGraph]:
    """Factory for graphs on the default goal."""

    def _make(*tasks: Task, target: Goal | None = None) -> TaskGraph:
        return TaskGraph.from_tasks(target or goal, tasks)

    return _make


@pytest.fixture
def scenario_graph(make_graph: Callable[..., TaskGraph]) -> TaskGraph:
    """T1 (2h) then T2 (3h), due Day 10."""
    return make_graph(make_task("T1", 2), make_task("T2", 3, "T1"))
