"""Overdue recovery: re-anchor work that fell behind at "now"."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from goalplan.calendar import AvailabilityCalendar
from goalplan.logger import format_hours, get_logger

from .adapter import ScheduleAdapter
from .changes import TaskMarkedOverdue
from .config import SchedulingConfig
from .core import RecoveryResult, Schedule, hours
from .graph import TaskGraph

logger = get_logger()


class OverdueRecovery:
    """Adapter specialization for tasks whose progress fell behind.

    Each overdue task restarts at "now" with its remaining effort (estimate minus
    logged progress). The overdue tasks and their transitive dependents are the
    invalidated subset; everything else stays pinned. Tasks that still cannot
    meet their deadline are flagged must_slip, and a goal deadline that would
    accommodate them is recommended but never applied.
    """

    def __init__(self, calendar: AvailabilityCalendar, config: SchedulingConfig | None = None):
        self.calendar = calendar
        self.config = config or SchedulingConfig()

    def recover(
        self,
        graph: TaskGraph,
        prior: Schedule,
        overdue_ids: Iterable[str],
        now: datetime,
        progress: Mapping[str, float] | None = None,
    ) -> RecoveryResult:
        """Re-anchor overdue tasks at now and reschedule their dependents.

        Args:
            graph: Graph the prior schedule was built from
            prior: Prior schedule
            overdue_ids: Tasks that fell behind
            now: Current instant; no re-timed work starts before it
            progress: Optional logged hours per overdue task (replaces recorded progress)

        Returns:
            RecoveryResult wrapping the adaptation and any recommended goal deadline

        Raises:
            MissingReferenceError: If an overdue id names an unknown task
        """
        progress = progress or {}
        overdue = list(dict.fromkeys(overdue_ids))
        for task_id in overdue:
            graph.task(task_id)

        changes = [TaskMarkedOverdue(task_id, progress.get(task_id)) for task_id in overdue]
        logger.changes(f"Recovering {len(overdue)} overdue task(s) at {now:%Y-%m-%d %H:%M}")
        adaptation = ScheduleAdapter(self.calendar, self.config).adapt(
            graph, prior, changes, now=now, allow_slip=True
        )

        recommended: datetime | None = None
        goal_deadline = adaptation.graph.goal.deadline
        for slip in adaptation.schedule.must_slip:
            logger.changes(
                f"  {slip.task_id} must slip by {format_hours(hours(slip.extension))}"
            )
            if slip.projected_finish > goal_deadline and (
                recommended is None or slip.projected_finish > recommended
            ):
                recommended = slip.projected_finish

        if recommended is not None:
            logger.changes(f"  Recommended goal deadline: {recommended:%Y-%m-%d %H:%M}")

        return RecoveryResult(
            adaptation=adaptation,
            overdue_ids=frozenset(overdue),
            now=now,
            recommended_goal_deadline=recommended,
        )


def recover_overdue(  # noqa: PLR0913 - Keyword-only parameters reduce API complexity
    graph: TaskGraph,
    prior: Schedule,
    overdue_ids: Iterable[str],
    now: datetime,
    calendar: AvailabilityCalendar,
    *,
    config: SchedulingConfig | None = None,
    progress: Mapping[str, float] | None = None,
) -> RecoveryResult:
    """Recover a prior schedule from overdue tasks."""
    return OverdueRecovery(calendar, config).recover(graph, prior, overdue_ids, now, progress)
