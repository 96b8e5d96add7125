"""Tests for feasibility analysis."""

from collections.abc import Callable
from datetime import timedelta
from io import StringIO

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import setup_logger
from goalplan.models import Goal, TaskStatus
from goalplan.planner import (
    ConflictKind,
    FeasibilityAnalyzer,
    SchedulingConfig,
    TaskGraph,
    analyze,
)
from tests.conftest import at, make_task


class TestWindows:
    """Test forward and backward passes."""

    def test_two_task_chain(
        self, scenario_graph: TaskGraph, morning_calendar: AvailabilityCalendar
    ) -> None:
        report = analyze(scenario_graph, morning_calendar, start=at(1, 9))

        t1 = report.windows["T1"]
        assert t1.earliest_start == at(1, 9)
        assert t1.earliest_finish == at(1, 11)
        assert t1.latest_finish == at(10, 10)
        assert t1.latest_start == at(9, 12)

        t2 = report.windows["T2"]
        assert t2.earliest_start == at(1, 11)
        assert t2.earliest_finish == at(2, 10)
        assert t2.latest_start == at(10, 10)
        assert t2.latest_finish == at(10, 17)
        assert t2.deadline == at(10, 17)

        assert report.is_feasible
        assert report.infeasible == []
        assert report.required_extension == timedelta()

    def test_earliest_never_after_latest_when_feasible(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        graph = make_graph(
            make_task("a", 1),
            make_task("b", 3, "a"),
            make_task("c", 2, "a"),
            make_task("d", 2, "b", "c"),
        )
        report = analyze(graph, morning_calendar, start=at(1, 9))
        for window in report.windows.values():
            assert window.feasible
            assert window.earliest_start <= window.latest_start
            assert window.earliest_finish <= window.latest_finish
            assert window.slack >= timedelta()

    def test_own_deadline_tightens_predecessors(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        graph = make_graph(make_task("a", 2), make_task("b", 2, "a", deadline=at(3, 13)))
        report = analyze(graph, morning_calendar, start=at(1, 9))
        assert report.windows["b"].latest_start == at(3, 11)
        assert report.windows["a"].latest_finish == at(3, 11)

    def test_not_before_delays_earliest_start(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        graph = make_graph(make_task("a", 1, not_before=at(3, 10)))
        report = analyze(graph, morning_calendar, start=at(1, 9))
        assert report.windows["a"].earliest_start == at(3, 10)
        assert report.windows["a"].earliest_finish == at(3, 11)

    def test_completed_tasks_are_satisfied(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        graph = make_graph(
            make_task("a", 4, status=TaskStatus.COMPLETED),
            make_task("b", 1, "a"),
        )
        report = analyze(graph, morning_calendar, start=at(1, 9))
        assert list(report.windows) == ["b"]
        assert report.windows["b"].earliest_start == at(1, 9)

    def test_logged_progress_shrinks_work(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        graph = make_graph(make_task("a", 5, logged_hours=3))
        report = analyze(graph, morning_calendar, start=at(1, 9))
        assert report.windows["a"].earliest_finish == at(1, 11)


class TestInfeasibility:
    """Test detection and reporting of empty windows."""

    def test_deadline_too_tight(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        goal = Goal(id="g", title="Rush", deadline=at(1, 12))
        graph = make_graph(make_task("T1", 2), make_task("T2", 3, "T1"), target=goal)
        report = analyze(graph, morning_calendar, start=at(1, 9))

        assert not report.is_feasible
        infeasible = {item.task_id: item for item in report.infeasible}
        assert set(infeasible) == {"T1", "T2"}
        assert infeasible["T1"].kind == ConflictKind.INFEASIBLE
        assert infeasible["T1"].required_extension == timedelta(hours=2)
        assert infeasible["T2"].required_extension == timedelta(hours=22)
        assert report.required_extension == timedelta(hours=22)

    def test_capacity_exceeded(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        config = SchedulingConfig(horizon_days=2)
        graph = make_graph(make_task("big", 10))
        report = FeasibilityAnalyzer(morning_calendar, config).analyze(graph, at(1, 9))

        window = report.windows["big"]
        assert window.capacity_limited
        assert window.earliest_finish == at(3)
        assert not window.feasible
        assert report.infeasible[0].kind == ConflictKind.CAPACITY_EXCEEDED

    def test_infeasible_tasks_are_logged(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> None:
        stream = StringIO()
        setup_logger(2, stream)
        goal = Goal(id="g", title="Rush", deadline=at(1, 10))
        graph = make_graph(make_task("T1", 2), target=goal)

        analyze(graph, morning_calendar, start=at(1, 9))

        assert "Infeasible T1" in stream.getvalue()
