"""Plain-text rendering of feasibility reports, schedules and adaptations."""

from __future__ import annotations

from datetime import datetime

from .logger import format_hours
from .planner import (
    AdaptationResult,
    FeasibilityReport,
    RecoveryResult,
    Schedule,
    TaskGraph,
)
from .planner.core import hours

RULE = "=" * 80


def _ts(moment: datetime) -> str:
    return f"{moment:%Y-%m-%d %H:%M}"


def format_report(graph: TaskGraph, report: FeasibilityReport) -> str:
    """Render feasibility windows and every infeasible task."""
    lines = ["Feasibility Windows", RULE, ""]
    for task_id, window in report.windows.items():
        task = graph.tasks[task_id]
        lines.append(f"{task.title} ({task_id})")
        lines.append(f"  Earliest: {_ts(window.earliest_start)} -> {_ts(window.earliest_finish)}")
        lines.append(f"  Latest:   {_ts(window.latest_start)} -> {_ts(window.latest_finish)}")
        lines.append(f"  Slack:    {format_hours(hours(window.slack))}")
        lines.append("")

    if report.infeasible:
        lines.append("Infeasible:")
        for item in report.infeasible:
            lines.append(
                f"  - {item.task_id} [{item.kind.value}]: {item.reason}; "
                f"extend by {format_hours(hours(item.required_extension))}"
            )
    else:
        lines.append("All tasks feasible.")
    return "\n".join(lines)


def format_schedule(graph: TaskGraph, schedule: Schedule) -> str:
    """Render a schedule with its score breakdown."""
    lines = ["Schedule Results", RULE, ""]
    slipping = {item.task_id: item for item in schedule.must_slip}

    for task_id, assignment in schedule.assignments.items():
        task = graph.tasks.get(task_id)
        title = task.title if task else task_id
        lines.append(f"{title} ({task_id})")
        lines.append(f"  Start:    {_ts(assignment.start)}")
        lines.append(f"  End:      {_ts(assignment.end)}")
        lines.append(f"  Effort:   {format_hours(assignment.effort_hours)}")
        if task_id in graph.tasks:
            lines.append(f"  Deadline: {_ts(graph.deadline_for(task_id))}")
        if task_id in slipping:
            extension = format_hours(hours(slipping[task_id].extension))
            lines.append(f"  MUST SLIP by {extension}")
        lines.append("")

    if schedule.unschedulable:
        lines.append("Unschedulable:")
        for item in schedule.unschedulable:
            lines.append(f"  - {item.task_id}: {item.reason}")
        lines.append("")

    score = schedule.score
    lines.append(
        f"Score: {score.total:.2f} (slack consumed {score.slack_consumed_hours:.2f}h, "
        f"unschedulable {score.unschedulable_count}, "
        f"weighted lateness {score.weighted_lateness_hours:.2f}h)"
    )
    lines.append(f"Buffer before goal deadline: {format_hours(score.buffer_hours)}")
    return "\n".join(lines)


def format_adaptation(result: AdaptationResult) -> str:
    """Render an adaptation: the new schedule plus what moved and why."""
    lines = [format_schedule(result.graph, result.schedule), ""]
    lines.append(f"Re-timed: {', '.join(sorted(result.dirty)) or 'none'}")
    lines.append(f"Pinned:   {len(result.pinned)} task(s)")
    lines.append(
        f"Score change: {result.prior_score:.2f} -> {result.schedule.score.total:.2f} "
        f"({result.score_delta:+.2f})"
    )
    if result.explanations:
        lines.append("Because: " + "; ".join(result.explanations))
    if result.used_fallback:
        lines.append("(kept prior placements where still valid)")
    return "\n".join(lines)


def format_recovery(result: RecoveryResult) -> str:
    """Render a recovery, including any recommended goal deadline."""
    lines = [format_adaptation(result.adaptation), ""]
    lines.append(f"Recovered at {_ts(result.now)}: {', '.join(sorted(result.overdue_ids))}")
    if result.recommended_goal_deadline is not None:
        lines.append(
            f"Recommended goal deadline: {_ts(result.recommended_goal_deadline)} "
            "(not applied)"
        )
    return "\n".join(lines)
