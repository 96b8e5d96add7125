"""High-level planning service."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import get_logger
from goalplan.models import Goal

from .adapter import ScheduleAdapter
from .changes import ScheduleChange
from .config import SchedulingConfig
from .core import AdaptationResult, FeasibilityReport, Plan, RecoveryResult
from .decomposition import decompose_goal
from .feasibility import FeasibilityAnalyzer
from .graph import TaskGraph
from .protocols import GoalDecomposer
from .recovery import OverdueRecovery
from .scheduler import ListScheduler

logger = get_logger()


class PlanningService:
    """Boundary operations of the planning engine.

    This service coordinates:
    - Graph building (from a GoalDecomposer's drafts)
    - FeasibilityAnalyzer (critical-path windows)
    - ListScheduler (initial placement)
    - ScheduleAdapter / OverdueRecovery (incremental updates)

    Every operation takes explicit snapshots and returns new objects; callers
    serialize calls per user.
    """

    def __init__(self, calendar: AvailabilityCalendar, config: SchedulingConfig | None = None):
        """Initialize planning service.

        Args:
            calendar: Availability calendar used by every call
            config: Optional scheduling configuration
        """
        self.calendar = calendar
        self.config = config or SchedulingConfig()

    def decompose_goal(
        self,
        goal: Goal,
        decomposer: GoalDecomposer,
        user_context: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> TaskGraph:
        """Turn a decomposer's drafts into a validated task graph."""
        return decompose_goal(goal, decomposer, user_context, now=now, config=self.config)

    def analyze(self, graph: TaskGraph, start: datetime) -> FeasibilityReport:
        return FeasibilityAnalyzer(self.calendar, self.config).analyze(graph, start)

    def generate_schedule(self, graph: TaskGraph, start: datetime | None = None) -> Plan:
        """Analyze and schedule a graph from scratch.

        Args:
            graph: Task graph to schedule
            start: Plan start (defaults to the goal's created_at, then the current time)

        Returns:
            Plan bundling the graph, its schedule and the feasibility report
        """
        start = start or graph.goal.created_at or datetime.now()  # noqa: DTZ005
        logger.changes(f"Scheduling {len(graph)} task(s) from {start:%Y-%m-%d %H:%M}")
        report = self.analyze(graph, start)
        schedule = ListScheduler(graph, report, self.calendar, config=self.config).schedule()

        infeasible = [
            f"Task '{item.task_id}' is infeasible: {item.reason}" for item in report.infeasible
        ]
        if infeasible:
            schedule = replace(schedule, warnings=[*schedule.warnings, *infeasible])

        return Plan(graph=graph, schedule=schedule, report=report)

    def adjust_schedule(
        self,
        plan: Plan,
        changes: Iterable[ScheduleChange],
        now: datetime | None = None,
    ) -> AdaptationResult:
        adapter = ScheduleAdapter(self.calendar, self.config)
        return adapter.adapt(plan.graph, plan.schedule, changes, now=now)

    def recover_overdue(
        self,
        plan: Plan,
        overdue_ids: Iterable[str],
        now: datetime,
        progress: Mapping[str, float] | None = None,
    ) -> RecoveryResult:
        recovery = OverdueRecovery(self.calendar, self.config)
        return recovery.recover(plan.graph, plan.schedule, overdue_ids, now, progress)
