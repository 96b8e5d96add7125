"""Optimality score of a schedule (lower is better)."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta

from .config import OptimalityWeights
from .core import FeasibilityWindow, ScheduledTask, ScoreBreakdown, hours
from .graph import TaskGraph


def score_schedule(
    graph: TaskGraph,
    assignments: Mapping[str, ScheduledTask],
    windows: Mapping[str, FeasibilityWindow],
    unschedulable_count: int,
    weights: OptimalityWeights,
) -> ScoreBreakdown:
    """Compute the weighted optimality score of a set of assignments.

    Components:
    - Slack consumed: how far each assigned finish lies past the task's earliest
      possible finish (the buffer given up for future changes)
    - Unschedulable count: tasks left out of the schedule
    - Weighted lateness: hours past each task's own deadline, scaled by the
      priority weight

    Args:
        graph: Graph the assignments belong to
        assignments: Placed tasks
        windows: Feasibility windows the schedule was built against
        unschedulable_count: Number of tasks that could not be placed
        weights: Named score weights

    Returns:
        ScoreBreakdown with every component and the weighted total
    """
    slack_consumed = 0.0
    lateness = 0.0
    last_finish = None

    for task_id, assignment in assignments.items():
        window = windows.get(task_id)
        if window is not None:
            slack_consumed += hours(max(assignment.end - window.earliest_finish, timedelta()))

        late = assignment.end - graph.deadline_for(task_id)
        if late > timedelta():
            priority = graph.tasks[task_id].priority.value
            lateness += weights.priority_weight(priority) * hours(late)

        if last_finish is None or assignment.end > last_finish:
            last_finish = assignment.end

    total = (
        weights.slack_weight * slack_consumed
        + weights.unschedulable_weight * unschedulable_count
        + weights.lateness_weight * lateness
    )
    buffer = hours(graph.goal.deadline - last_finish) if last_finish else 0.0

    return ScoreBreakdown(
        slack_consumed_hours=slack_consumed,
        unschedulable_count=unschedulable_count,
        weighted_lateness_hours=lateness,
        total=total,
        buffer_hours=buffer,
    )
