"""Ready-list scheduler: places tasks on the availability calendar."""

from __future__ import annotations

import heapq
from collections.abc import Mapping
from datetime import datetime, timedelta

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import checks_enabled, format_hours, get_logger

from .config import SchedulingConfig
from .core import (
    FeasibilityReport,
    MustSlip,
    Schedule,
    ScheduledTask,
    UnschedulableTask,
    hours,
)
from .graph import TaskGraph
from .ledger import AvailabilityLedger
from .scoring import score_schedule

logger = get_logger()


class ListScheduler:
    """Constraint-respecting list scheduler.

    This scheduler:
    1. Books pinned assignments first (they are never moved)
    2. Keeps a ready list of tasks whose predecessors are all resolved
    3. Picks the ready task with the least slack, then highest priority, then id
    4. Places it in the earliest free availability at or after its earliest start,
       never exceeding a day's capacity, and finishing by its latest finish
    5. Tasks that do not fit are reported unschedulable, and their dependents
       are reported as blocked

    Tasks whose window the analyzer found infeasible are placed best-effort
    within the horizon and reported as must_slip. With allow_slip, so are tasks
    whose window only looked feasible because it ignored bookings by unrelated
    tasks.
    """

    def __init__(  # noqa: PLR0913 - Keyword-only parameters reduce API complexity
        self,
        graph: TaskGraph,
        report: FeasibilityReport,
        calendar: AvailabilityCalendar,
        *,
        config: SchedulingConfig | None = None,
        pinned: Mapping[str, ScheduledTask] | None = None,
        not_before: datetime | None = None,
        anchors: Mapping[str, datetime] | None = None,
        allow_slip: bool = False,
    ):
        """Initialize the scheduler.

        Args:
            graph: Task graph to schedule
            report: Feasibility windows for the graph's active tasks
            calendar: Availability calendar
            config: Scheduling configuration
            pinned: Assignments to copy unchanged (booked before anything is placed)
            not_before: No new placement may start before this instant
            anchors: Per-task earliest starts (e.g., a late predecessor completion)
            allow_slip: Place tasks that cannot finish in their window late instead of
                reporting them unschedulable
        """
        self.graph = graph
        self.report = report
        self.calendar = calendar
        self.config = config or SchedulingConfig()
        self.pinned = dict(pinned or {})
        self.not_before = not_before
        self.anchors = dict(anchors or {})
        self.allow_slip = allow_slip

    def schedule(self) -> Schedule:
        """Place every active, unpinned task.

        Returns:
            Schedule with assignments, unschedulable tasks, must_slip tasks and score
        """
        ledger = AvailabilityLedger(self.calendar, self.report.start, self.config.horizon_days)
        warnings: list[str] = []
        if not self.calendar.has_availability():
            warnings.append("availability calendar has no work windows")

        placed: dict[str, ScheduledTask] = {}
        for task_id, assignment in self.pinned.items():
            if task_id not in self.graph:
                continue
            ledger.book(assignment.segments)
            placed[task_id] = assignment
            logger.debug(f"    Pinned {task_id}: {assignment.start} -> {assignment.end}")

        to_place = [task_id for task_id in self.graph.active_ids if task_id not in placed]
        pending = set(to_place)
        waiting = {
            task_id: sum(1 for dep in self.graph.predecessors[task_id] if dep in pending)
            for task_id in to_place
        }

        ready: list[tuple[float, int, str]] = []
        for task_id in to_place:
            if waiting[task_id] == 0:
                heapq.heappush(ready, self._sort_key(task_id))

        unschedulable: dict[str, UnschedulableTask] = {}
        must_slip: list[MustSlip] = []

        while ready:
            _, _, task_id = heapq.heappop(ready)

            result = self._place(task_id, ledger, placed, unschedulable)
            if isinstance(result, UnschedulableTask):
                unschedulable[task_id] = result
                logger.checks(f"  Unschedulable {task_id}: {result.reason}")
            else:
                placed[task_id] = result
                deadline = self.graph.deadline_for(task_id)
                if result.end > deadline:
                    must_slip.append(
                        MustSlip(task_id=task_id, deadline=deadline, projected_finish=result.end)
                    )
                    logger.changes(
                        f"  Placed {task_id}: {result.start:%Y-%m-%d %H:%M} -> "
                        f"{result.end:%Y-%m-%d %H:%M} (misses deadline by "
                        f"{format_hours(hours(result.end - deadline))})"
                    )
                else:
                    logger.changes(
                        f"  Placed {task_id}: {result.start:%Y-%m-%d %H:%M} -> "
                        f"{result.end:%Y-%m-%d %H:%M}"
                    )

            for dependent_id in self.graph.dependents[task_id]:
                if dependent_id in waiting:
                    waiting[dependent_id] -= 1
                    if waiting[dependent_id] == 0:
                        heapq.heappush(ready, self._sort_key(dependent_id))

        assignments = {
            task_id: placed[task_id] for task_id in self.graph.topo_order if task_id in placed
        }
        unschedulable_list = [
            unschedulable[task_id] for task_id in self.graph.topo_order if task_id in unschedulable
        ]
        score = score_schedule(
            self.graph,
            assignments,
            self.report.windows,
            len(unschedulable_list),
            self.config.weights,
        )

        return Schedule(
            plan_start=self.report.start,
            assignments=assignments,
            windows=dict(self.report.windows),
            score=score,
            unschedulable=unschedulable_list,
            must_slip=must_slip,
            warnings=warnings,
        )

    def _sort_key(self, task_id: str) -> tuple[float, int, str]:
        """Ready-list order: ascending slack, priority descending, then id."""
        window = self.report.windows.get(task_id)
        slack = hours(window.slack) if window else float("inf")
        return (slack, -self.graph.tasks[task_id].priority.rank, task_id)

    def _earliest_start(self, task_id: str, placed: Mapping[str, ScheduledTask]) -> datetime:
        task = self.graph.tasks[task_id]
        candidates = [self.report.start]
        window = self.report.windows.get(task_id)
        if window is not None:
            candidates.append(window.earliest_start)
        if self.not_before is not None:
            candidates.append(self.not_before)
        if task.not_before is not None:
            candidates.append(task.not_before)
        if task_id in self.anchors:
            candidates.append(self.anchors[task_id])
        for dep_id in self.graph.predecessors[task_id]:
            if dep_id in placed:
                candidates.append(placed[dep_id].end)
        return max(candidates)

    def _place(
        self,
        task_id: str,
        ledger: AvailabilityLedger,
        placed: Mapping[str, ScheduledTask],
        unschedulable: Mapping[str, UnschedulableTask],
    ) -> ScheduledTask | UnschedulableTask:
        """Find and book the earliest valid slot for a task."""
        task = self.graph.tasks[task_id]
        for dep_id in self.graph.predecessors[task_id]:
            if dep_id in unschedulable:
                return UnschedulableTask(
                    task_id=task_id,
                    reason=f"blocked by unschedulable predecessor {dep_id}",
                    blocked_by=dep_id,
                )

        earliest = self._earliest_start(task_id, placed)
        window = self.report.windows.get(task_id)
        # Infeasible windows are placed best-effort; must_slip reports the overrun
        latest = window.latest_finish if window is not None and window.feasible else None
        effort = timedelta(hours=task.remaining_hours)

        if checks_enabled():
            bound = f"{latest:%Y-%m-%d %H:%M}" if latest else "horizon"
            logger.checks(
                f"  Considering {task_id} ({format_hours(task.remaining_hours)}): "
                f"earliest {earliest:%Y-%m-%d %H:%M}, finish by {bound}"
            )

        if effort <= timedelta():
            if latest is not None and earliest > latest and not self.allow_slip:
                return UnschedulableTask(
                    task_id=task_id,
                    reason=f"predecessors finish after its latest finish {latest:%Y-%m-%d %H:%M}",
                )
            return ScheduledTask(task_id=task_id, start=earliest, end=earliest, effort_hours=0.0)

        segments = ledger.allocate(earliest, effort, latest)
        if segments is None and latest is not None and self.allow_slip:
            logger.checks(
                f"  {task_id} does not fit by {latest:%Y-%m-%d %H:%M}; placing it late"
            )
            segments = ledger.allocate(earliest, effort, None)
        if segments is None:
            if latest is None or self.allow_slip:
                reason = "not enough availability within the planning horizon"
            else:
                reason = f"no free availability finishes by {latest:%Y-%m-%d %H:%M}"
            return UnschedulableTask(task_id=task_id, reason=reason)

        ledger.book(segments)
        return ScheduledTask(
            task_id=task_id,
            start=segments[0][0],
            end=segments[-1][1],
            effort_hours=task.remaining_hours,
            segments=tuple(segments),
        )


def schedule(
    graph: TaskGraph,
    report: FeasibilityReport,
    calendar: AvailabilityCalendar,
    *,
    config: SchedulingConfig | None = None,
) -> Schedule:
    """Build a fresh schedule for a graph from its feasibility windows."""
    return ListScheduler(graph, report, calendar, config=config).schedule()
