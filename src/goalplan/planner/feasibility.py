"""Feasibility analysis: critical-path windows over the calendar."""

from __future__ import annotations

from datetime import datetime, timedelta

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import debug_enabled, format_hours, get_logger

from .config import SchedulingConfig
from .core import FeasibilityReport, FeasibilityWindow
from .graph import TaskGraph
from .ledger import AvailabilityLedger

logger = get_logger()


class FeasibilityAnalyzer:
    """Computes earliest/latest windows per task via forward and backward passes.

    The analysis:
    1. Forward pass in topological order: earliest start is the latest of the plan
       start, the task's not_before, and its predecessors' earliest finishes;
       earliest finish consumes availability windows from there
    2. Backward pass in reverse order: latest finish is the task's deadline (or the
       goal deadline) capped by its dependents' latest starts
    3. Every task whose earliest finish exceeds its latest finish is reported

    Contention between tasks is ignored here; the scheduler resolves it.
    Completed tasks are skipped and count as satisfied predecessors.
    """

    def __init__(self, calendar: AvailabilityCalendar, config: SchedulingConfig | None = None):
        self.calendar = calendar
        self.config = config or SchedulingConfig()

    def analyze(self, graph: TaskGraph, start: datetime) -> FeasibilityReport:
        """Run both passes and return every task's window.

        Args:
            graph: Task graph to analyze
            start: Plan start; no work is placed before it

        Returns:
            FeasibilityReport with one window per active task
        """
        ledger = AvailabilityLedger(self.calendar, start, self.config.horizon_days)
        active = graph.active_ids

        earliest_start, earliest_finish, capacity_limited = self._forward_pass(
            graph, active, ledger, start
        )
        latest_start, latest_finish = self._backward_pass(graph, active, ledger, start)

        windows = {
            task_id: FeasibilityWindow(
                task_id=task_id,
                earliest_start=earliest_start[task_id],
                earliest_finish=earliest_finish[task_id],
                latest_start=latest_start[task_id],
                latest_finish=latest_finish[task_id],
                deadline=graph.deadline_for(task_id),
                capacity_limited=task_id in capacity_limited,
            )
            for task_id in active
        }

        report = FeasibilityReport(start=start, windows=windows)
        for item in report.infeasible:
            logger.checks(
                f"  Infeasible {item.task_id}: {item.reason} "
                f"(needs {format_hours(item.required_extension.total_seconds() / 3600)} more)"
            )
        return report

    def _forward_pass(
        self,
        graph: TaskGraph,
        active: list[str],
        ledger: AvailabilityLedger,
        start: datetime,
    ) -> tuple[dict[str, datetime], dict[str, datetime], set[str]]:
        earliest_start: dict[str, datetime] = {}
        earliest_finish: dict[str, datetime] = {}
        capacity_limited: set[str] = set()

        for task_id in active:
            task = graph.tasks[task_id]
            candidate = start
            if task.not_before and task.not_before > candidate:
                candidate = task.not_before
            for dep_id in graph.predecessors[task_id]:
                # Completed predecessors impose nothing
                if dep_id in earliest_finish:
                    candidate = max(candidate, earliest_finish[dep_id])

            effort = timedelta(hours=task.remaining_hours)
            if effort <= timedelta():
                earliest_start[task_id] = candidate
                earliest_finish[task_id] = candidate
                continue

            segments = ledger.allocate(candidate, effort)
            if segments is None:
                # Work runs off the end of the horizon
                capacity_limited.add(task_id)
                earliest_start[task_id] = ledger.first_free(candidate) or candidate
                earliest_finish[task_id] = max(ledger.horizon_end, candidate)
                logger.debug(f"    {task_id}: does not fit before {ledger.horizon_end}")
                continue

            earliest_start[task_id] = segments[0][0]
            earliest_finish[task_id] = segments[-1][1]
            if debug_enabled():
                logger.debug(
                    f"    forward {task_id}: ES={earliest_start[task_id]} "
                    f"EF={earliest_finish[task_id]} ({format_hours(task.remaining_hours)})"
                )

        return earliest_start, earliest_finish, capacity_limited

    def _backward_pass(
        self,
        graph: TaskGraph,
        active: list[str],
        ledger: AvailabilityLedger,
        start: datetime,
    ) -> tuple[dict[str, datetime], dict[str, datetime]]:
        latest_start: dict[str, datetime] = {}
        latest_finish: dict[str, datetime] = {}

        for task_id in reversed(active):
            task = graph.tasks[task_id]
            finish = graph.deadline_for(task_id)
            for dependent_id in graph.dependents[task_id]:
                if dependent_id in latest_start:
                    finish = min(finish, latest_start[dependent_id])

            effort = timedelta(hours=task.remaining_hours)
            begin = ledger.latest_start(finish, effort)
            if begin is None:
                # Cannot fit even starting at the plan start; dependents' bound is the start
                begin = min(start, finish)

            latest_finish[task_id] = finish
            latest_start[task_id] = begin
            if debug_enabled():
                logger.debug(f"    backward {task_id}: LS={begin} LF={finish}")

        return latest_start, latest_finish


def analyze(
    graph: TaskGraph,
    calendar: AvailabilityCalendar,
    *,
    start: datetime,
    config: SchedulingConfig | None = None,
) -> FeasibilityReport:
    """Compute feasibility windows for every active task of a graph."""
    return FeasibilityAnalyzer(calendar, config).analyze(graph, start)
