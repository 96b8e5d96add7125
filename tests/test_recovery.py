"""Tests for overdue recovery."""

from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from goalplan.calendar import AvailabilityCalendar
from goalplan.exceptions import MissingReferenceError
from goalplan.models import TaskStatus
from goalplan.planner import (
    OverdueRecovery,
    Plan,
    PlanningService,
    Schedule,
    TaskGraph,
    TaskMarkedOverdue,
    adapt,
    recover_overdue,
)
from tests.conftest import at, make_task, segments_by_day


@pytest.fixture
def plan(scenario_graph: TaskGraph, morning_calendar: AvailabilityCalendar) -> Plan:
    return PlanningService(morning_calendar).generate_schedule(scenario_graph, at(1, 9))


class TestOverdueRecovery:
    """Test re-anchoring overdue work at now."""

    def test_recovers_with_room_to_spare(
        self, plan: Plan, morning_calendar: AvailabilityCalendar
    ) -> None:
        result = recover_overdue(plan.graph, plan.schedule, ["T1"], at(5, 9), morning_calendar)

        schedule = result.schedule
        assert schedule.assignments["T1"].segments == ((at(5, 9), at(5, 11)),)
        assert schedule.assignments["T2"].segments == (
            (at(5, 11), at(5, 13)),
            (at(6, 9), at(6, 10)),
        )
        assert result.must_slip == []
        assert result.recommended_goal_deadline is None
        assert result.adaptation.dirty == {"T1", "T2"}
        assert result.adaptation.graph.task("T1").status == TaskStatus.OVERDUE

    def test_no_work_before_now(self, plan: Plan, morning_calendar: AvailabilityCalendar) -> None:
        now = at(3, 10, 30)
        result = recover_overdue(plan.graph, plan.schedule, ["T1"], now, morning_calendar)
        for assignment in result.schedule.assignments.values():
            assert assignment.start >= now

    def test_too_late_recommends_deadline(
        self, plan: Plan, morning_calendar: AvailabilityCalendar
    ) -> None:
        result = OverdueRecovery(morning_calendar).recover(
            plan.graph, plan.schedule, ["T1"], at(10, 9)
        )

        schedule = result.schedule
        assert schedule.assignments["T1"].segments == ((at(10, 9), at(10, 11)),)
        assert schedule.assignments["T2"].end == at(11, 10)
        assert schedule.must_slip_ids == {"T2"}
        assert result.must_slip[0].extension == timedelta(hours=17)
        assert schedule.score.total == pytest.approx(340)
        assert result.recommended_goal_deadline == at(11, 10)

        # The goal itself is never moved
        assert result.adaptation.graph.goal.deadline == at(10, 17)
        # Both windows are empty once work restarts on the last day
        assert {item.task_id for item in result.adaptation.report.infeasible} == {"T1", "T2"}

    def test_logged_progress_shrinks_remaining_work(
        self, plan: Plan, morning_calendar: AvailabilityCalendar
    ) -> None:
        result = recover_overdue(
            plan.graph,
            plan.schedule,
            ["T1"],
            at(5, 9),
            morning_calendar,
            progress={"T1": 1.5},
        )
        t1 = result.schedule.assignments["T1"]
        assert t1.segments == ((at(5, 9), at(5, 9, 30)),)
        assert t1.effort_hours == 0.5

    def test_duplicates_collapse(self, plan: Plan, morning_calendar: AvailabilityCalendar) -> None:
        result = recover_overdue(
            plan.graph, plan.schedule, ["T1", "T1"], at(5, 9), morning_calendar
        )
        assert result.overdue_ids == {"T1"}

    def test_unknown_task(self, plan: Plan, morning_calendar: AvailabilityCalendar) -> None:
        with pytest.raises(MissingReferenceError):
            recover_overdue(plan.graph, plan.schedule, ["ghost"], at(5, 9), morning_calendar)

    def test_service_entry_point(self, plan: Plan, morning_calendar: AvailabilityCalendar) -> None:
        result = PlanningService(morning_calendar).recover_overdue(plan, ["T2"], at(2, 9))
        assert result.now == at(2, 9)
        assert result.schedule.assignments["T1"] == plan.schedule.assignments["T1"]
        assert result.schedule.assignments["T2"].start == at(2, 9)


def _assert_capacity_and_order(graph: TaskGraph, schedule: Schedule, ceiling: float) -> None:
    for day, total in segments_by_day(schedule).items():
        assert total <= ceiling + 1e-9, day
    for task_id, assignment in schedule.assignments.items():
        for dep_id in graph.predecessors[task_id]:
            if dep_id in schedule.assignments:
                assert assignment.start >= schedule.assignments[dep_id].end


class TestContendedRecovery:
    """Test recovery when unrelated pinned work holds the last available day."""

    @pytest.fixture
    def contended_plan(
        self, make_graph: Callable[..., TaskGraph], morning_calendar: AvailabilityCalendar
    ) -> Plan:
        """T1 then T2, plus C (4h) that cannot start before Day 10."""
        graph = make_graph(
            make_task("T1", 2),
            make_task("T2", 3, "T1"),
            make_task("C", 4, not_before=at(10, 9)),
        )
        return PlanningService(morning_calendar).generate_schedule(graph, at(1, 9))

    def test_initial_layout(self, contended_plan: Plan) -> None:
        assert contended_plan.schedule.assignments["C"].segments == ((at(10, 9), at(10, 13)),)
        assert contended_plan.schedule.is_fully_feasible

    def test_late_dependent_must_slip(
        self, contended_plan: Plan, morning_calendar: AvailabilityCalendar
    ) -> None:
        result = recover_overdue(
            contended_plan.graph, contended_plan.schedule, ["T1"], at(9, 9), morning_calendar
        )

        schedule = result.schedule
        assert schedule.assignments["C"] == contended_plan.schedule.assignments["C"]
        assert schedule.assignments["T1"].segments == ((at(9, 9), at(9, 11)),)
        assert schedule.assignments["T2"].segments == (
            (at(9, 11), at(9, 13)),
            (at(11, 9), at(11, 10)),
        )
        assert schedule.unschedulable == []
        assert schedule.must_slip_ids == {"T2"}
        assert result.must_slip[0].extension == timedelta(hours=17)
        assert result.recommended_goal_deadline == at(11, 10)
        _assert_capacity_and_order(result.adaptation.graph, schedule, 4)

    def test_adjustment_still_reports_unschedulable(
        self, contended_plan: Plan, morning_calendar: AvailabilityCalendar
    ) -> None:
        """Plain adaptation keeps windows binding; only recovery places work late."""
        result = adapt(
            contended_plan.graph,
            contended_plan.schedule,
            [TaskMarkedOverdue("T1")],
            morning_calendar,
            now=at(9, 9),
        )
        assert result.schedule.unschedulable_ids == {"T2"}
        assert result.schedule.must_slip == []


@pytest.mark.parametrize(
    "now",
    [at(1, 9), at(3, 10, 30), at(5, 9), at(9, 12), at(10, 9), at(12, 9)],
)
def test_recovered_schedules_respect_capacity_and_order(
    plan: Plan, morning_calendar: AvailabilityCalendar, now: datetime
) -> None:
    result = recover_overdue(plan.graph, plan.schedule, ["T1"], now, morning_calendar)
    _assert_capacity_and_order(result.adaptation.graph, result.schedule, 4)
    for assignment in result.schedule.assignments.values():
        assert assignment.start >= now
