"""Incremental schedule adaptation with pinned assignments."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from goalplan.calendar import AvailabilityCalendar
from goalplan.exceptions import MissingReferenceError, ValidationError
from goalplan.logger import format_hours, get_logger
from goalplan.models import TaskStatus

from .changes import (
    DeadlineChanged,
    DependenciesChanged,
    EffortReestimated,
    ScheduleChange,
    TaskAdded,
    TaskCompleted,
    TaskMarkedOverdue,
    TaskRemoved,
    describe_change,
)
from .config import SchedulingConfig
from .core import AdaptationResult, FeasibilityReport, Schedule, ScheduledTask
from .feasibility import FeasibilityAnalyzer
from .graph import TaskGraph
from .scheduler import ListScheduler

logger = get_logger()


@dataclass
class _ChangeSet:
    """Bookkeeping accumulated while changes are applied."""

    seeds: set[str] = field(default_factory=set)  # Re-timed along with their dependents
    anchors: dict[str, datetime] = field(default_factory=dict)
    growth: list[str] = field(default_factory=list)  # Changes that justify a worse score


class ScheduleAdapter:
    """Recomputes a schedule after changes, re-timing only invalidated tasks.

    The adaptation:
    1. Applies each change to the graph, collecting a dirty set by explicit
       propagation to transitive dependents
    2. Recomputes feasibility windows on the weakly connected components that
       contain changed tasks; prior windows are reused elsewhere
    3. Pins every non-dirty prior assignment and schedules only the dirty tasks,
       never before "now"
    4. Compares the whole-schedule score to the prior one; an unexplained
       regression beyond the tolerance triggers a fallback that re-pins dirty
       tasks whose prior placement is still valid
    """

    def __init__(self, calendar: AvailabilityCalendar, config: SchedulingConfig | None = None):
        self.calendar = calendar
        self.config = config or SchedulingConfig()

    def adapt(
        self,
        graph: TaskGraph,
        prior: Schedule,
        changes: Iterable[ScheduleChange],
        *,
        now: datetime | None = None,
        allow_slip: bool = False,
    ) -> AdaptationResult:
        """Apply changes and return the adapted schedule.

        Args:
            graph: Graph the prior schedule was built from
            prior: Prior schedule
            changes: Changes to apply, in order
            now: Re-timed tasks may not start before this (defaults to the plan start)
            allow_slip: Place dirty tasks that no longer fit their window late and
                report them as must_slip rather than unschedulable

        Returns:
            AdaptationResult with the new graph, schedule and dirty/pinned sets

        Raises:
            MissingReferenceError: If a change names an unknown task
            CyclicDependencyError: If a dependency change introduces a cycle
        """
        now = now or prior.plan_start
        change_set = _ChangeSet()

        for change in changes:
            logger.changes(f"Applying change: {describe_change(change)}")
            graph = self._apply(graph, prior, change, now, change_set)

        active = set(graph.active_ids)

        # Retry earlier failures, and time anything the prior schedule never saw
        for task_id in active:
            if task_id in prior.unschedulable_ids or task_id not in prior.assignments:
                change_set.seeds.add(task_id)

        dirty = graph.with_dependents(change_set.seeds) & active

        report = self._reanalyze(graph, prior, dirty, now, change_set.anchors)
        pinned = {
            task_id: prior.assignments[task_id]
            for task_id in graph.topo_order
            if task_id in active and task_id not in dirty and task_id in prior.assignments
        }
        logger.checks(f"  Dirty: {sorted(dirty)}; pinned: {len(pinned)}")

        schedule = self._schedule(graph, report, pinned, now, change_set.anchors, allow_slip)
        used_fallback = False
        tolerance = self.config.adapt_tolerance
        prior_total = prior.score.total

        if schedule.score.total > prior_total + tolerance and not self._explained(
            prior, schedule, change_set
        ):
            logger.checks(
                f"  Score regressed {prior_total:.2f} -> {schedule.score.total:.2f}; "
                "trying to keep prior placements"
            )
            repinned = self._still_valid(graph, prior, dirty, pinned, change_set.anchors, now)
            if repinned:
                fallback = self._schedule(
                    graph, report, {**pinned, **repinned}, now, change_set.anchors, allow_slip
                )
                if fallback.score.total < schedule.score.total:
                    schedule = fallback
                    pinned.update(repinned)
                    dirty = dirty - set(repinned)
                    used_fallback = True

            if schedule.score.total > prior_total + tolerance:
                message = (
                    f"schedule score regressed from {prior_total:.2f} to "
                    f"{schedule.score.total:.2f} without a reported cause"
                )
                logger.warning(message)
                schedule = replace(schedule, warnings=[*schedule.warnings, message])

        return AdaptationResult(
            graph=graph,
            schedule=schedule,
            report=report,
            dirty=frozenset(dirty),
            pinned=frozenset(pinned),
            prior_score=prior_total,
            explanations=change_set.growth,
            used_fallback=used_fallback,
        )

    def _apply(  # noqa: PLR0912 - One branch per change kind
        self,
        graph: TaskGraph,
        prior: Schedule,
        change: ScheduleChange,
        now: datetime,
        change_set: _ChangeSet,
    ) -> TaskGraph:
        if isinstance(change, TaskAdded):
            if change.task.id in graph:
                raise ValidationError(f"Task already exists: {change.task.id}")
            for dep_id in change.task.depends_on:
                graph.task(dep_id)
            change_set.seeds.add(change.task.id)
            change_set.growth.append(
                f"added {change.task.id} ({format_hours(change.task.remaining_hours)})"
            )
            return graph.with_task(change.task)

        if isinstance(change, TaskRemoved):
            graph.task(change.task_id)
            change_set.seeds.discard(change.task_id)
            return graph.without_task(change.task_id)

        if isinstance(change, DeadlineChanged):
            if change.task_id is None:
                if change.deadline is None:
                    raise ValidationError("The goal deadline cannot be cleared")
                if change.deadline < graph.goal.deadline:
                    change_set.growth.append("goal deadline tightened")
                inheriting = [task.id for task in graph if task.deadline is None]
                change_set.seeds.update(inheriting)
                return graph.with_goal(graph.goal.with_deadline(change.deadline))

            task = graph.task(change.task_id)
            new_task = replace(task, deadline=change.deadline)
            if change.deadline is not None and change.deadline < graph.deadline_for(task.id):
                change_set.growth.append(f"deadline of {task.id} tightened")
            change_set.seeds.add(task.id)
            return graph.with_task(new_task)

        if isinstance(change, EffortReestimated):
            task = graph.task(change.task_id)
            if change.effort_hours < 0:
                raise ValidationError(f"Negative effort for {task.id}: {change.effort_hours}")
            if change.effort_hours > task.effort_hours:
                change_set.growth.append(
                    f"{task.id} grew by {format_hours(change.effort_hours - task.effort_hours)}"
                )
            change_set.seeds.add(task.id)
            return graph.with_task(replace(task, effort_hours=change.effort_hours))

        if isinstance(change, DependenciesChanged):
            task = graph.task(change.task_id)
            for dep_id in change.depends_on:
                if dep_id not in graph:
                    raise MissingReferenceError(
                        f"Task {task.id} depends on unknown task: {dep_id}"
                    )
            change_set.seeds.add(task.id)
            change_set.growth.append(f"dependencies of {task.id} changed")
            return graph.with_task(replace(task, depends_on=tuple(change.depends_on)))

        if isinstance(change, TaskMarkedOverdue):
            task = graph.task(change.task_id)
            logged = task.logged_hours if change.logged_hours is None else change.logged_hours
            change_set.seeds.add(task.id)
            change_set.growth.append(f"{task.id} overdue")
            return graph.with_task(
                replace(task, status=TaskStatus.OVERDUE, not_before=now, logged_hours=logged)
            )

        task = graph.task(change.task_id)
        completed_at = change.completed_at
        previous = prior.get(task.id)
        if previous is not None and completed_at > previous.end:
            change_set.growth.append(f"{task.id} completed late")
        change_set.seeds.discard(task.id)
        for dependent_id in graph.dependents[task.id]:
            placed = prior.get(dependent_id)
            if placed is not None and placed.start < completed_at:
                change_set.seeds.add(dependent_id)
                anchor = change_set.anchors.get(dependent_id)
                change_set.anchors[dependent_id] = max(anchor or completed_at, completed_at)
        return graph.with_task(
            replace(task, status=TaskStatus.COMPLETED, logged_hours=task.effort_hours)
        )

    def _reanalyze(
        self,
        graph: TaskGraph,
        prior: Schedule,
        dirty: set[str],
        now: datetime,
        anchors: dict[str, datetime],
    ) -> FeasibilityReport:
        """Recompute windows of dirty tasks on the components that contain them."""
        component = graph.component_of(dirty)
        windows = {
            task_id: window
            for task_id, window in prior.windows.items()
            if task_id in graph and not graph.tasks[task_id].is_completed
        }
        if component:
            # Dirty tasks are analyzed from now, matching how they will be placed
            tasks = [
                replace(
                    task,
                    not_before=max(task.not_before or now, anchors.get(task.id, now), now),
                )
                if task.id in dirty
                else task
                for task in graph.subgraph(component)
            ]
            subgraph = TaskGraph.from_tasks(graph.goal, tasks)
            analyzer = FeasibilityAnalyzer(self.calendar, self.config)
            # Pinned tasks keep the windows their placement was scored against
            for task_id, window in analyzer.analyze(subgraph, prior.plan_start).windows.items():
                if task_id in dirty or task_id not in windows:
                    windows[task_id] = window
            logger.debug(f"    Reanalyzed {len(component)} task(s) in affected components")

        ordered = {task_id: windows[task_id] for task_id in graph.active_ids if task_id in windows}
        return FeasibilityReport(start=prior.plan_start, windows=ordered)

    def _schedule(  # noqa: PLR0913 - Mirrors ListScheduler's keyword options
        self,
        graph: TaskGraph,
        report: FeasibilityReport,
        pinned: dict[str, ScheduledTask],
        now: datetime,
        anchors: dict[str, datetime],
        allow_slip: bool,
    ) -> Schedule:
        scheduler = ListScheduler(
            graph,
            report,
            self.calendar,
            config=self.config,
            pinned=pinned,
            not_before=now,
            anchors=anchors,
            allow_slip=allow_slip,
        )
        return scheduler.schedule()

    def _explained(self, prior: Schedule, schedule: Schedule, change_set: _ChangeSet) -> bool:
        """True if a regression is accounted for by a reported delta or by added work."""
        if schedule.unschedulable_ids - prior.unschedulable_ids:
            return True
        if schedule.must_slip_ids - prior.must_slip_ids:
            return True
        return bool(change_set.growth)

    def _still_valid(  # noqa: PLR0913 - Validity depends on all of these
        self,
        graph: TaskGraph,
        prior: Schedule,
        dirty: set[str],
        pinned: dict[str, ScheduledTask],
        anchors: dict[str, datetime],
        now: datetime,
    ) -> dict[str, ScheduledTask]:
        """Dirty tasks whose prior placement still satisfies every constraint."""
        kept: dict[str, ScheduledTask] = {}
        for task_id in graph.topo_order:
            if task_id not in dirty:
                continue
            previous = prior.get(task_id)
            if previous is None:
                continue
            task = graph.tasks[task_id]
            if previous.effort_hours != task.remaining_hours or previous.start < now:
                continue
            if task.not_before and previous.start < task.not_before:
                continue
            if task_id in anchors and previous.start < anchors[task_id]:
                continue
            if previous.end > graph.deadline_for(task_id):
                continue

            valid = True
            for dep_id in graph.predecessors[task_id]:
                if graph.tasks[dep_id].is_completed:
                    continue
                dep = kept.get(dep_id) or pinned.get(dep_id)
                if dep is None or dep.end > previous.start:
                    valid = False
                    break
            if valid:
                kept[task_id] = previous
                logger.checks(f"  Keeping prior placement of {task_id}")
        return kept


def adapt(  # noqa: PLR0913 - Keyword-only parameters reduce API complexity
    graph: TaskGraph,
    prior: Schedule,
    changes: Iterable[ScheduleChange],
    calendar: AvailabilityCalendar,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> AdaptationResult:
    """Adapt a prior schedule to a sequence of changes."""
    return ScheduleAdapter(calendar, config).adapt(graph, prior, changes, now=now)
