"""Schedule snapshot files.

Snapshots preserve a schedule (assignments, windows, score) between CLI runs, so
a later run can adapt or recover from it instead of planning from scratch.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, cast

import yaml

from goalplan.exceptions import ParseError

from .core import (
    FeasibilityWindow,
    MustSlip,
    Schedule,
    ScheduledTask,
    ScoreBreakdown,
    UnschedulableTask,
)

SNAPSHOT_VERSION = 1


def _fmt(moment: datetime) -> str:
    return moment.isoformat()


def write_snapshot(path: Path, schedule: Schedule) -> None:
    """Export a schedule to a snapshot file.

    Args:
        path: Path to write the snapshot
        schedule: Schedule to export
    """
    assignments: dict[str, dict[str, Any]] = {}
    for task_id, assignment in schedule.assignments.items():
        assignments[task_id] = {
            "start": _fmt(assignment.start),
            "end": _fmt(assignment.end),
            "effort_hours": assignment.effort_hours,
            "segments": [[_fmt(start), _fmt(end)] for start, end in assignment.segments],
        }

    windows: dict[str, dict[str, Any]] = {}
    for task_id, window in schedule.windows.items():
        windows[task_id] = {
            "earliest_start": _fmt(window.earliest_start),
            "earliest_finish": _fmt(window.earliest_finish),
            "latest_start": _fmt(window.latest_start),
            "latest_finish": _fmt(window.latest_finish),
            "deadline": _fmt(window.deadline),
            "capacity_limited": window.capacity_limited,
        }

    score = schedule.score
    output: dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "plan_start": _fmt(schedule.plan_start),
        "score": {
            "slack_consumed_hours": score.slack_consumed_hours,
            "unschedulable_count": score.unschedulable_count,
            "weighted_lateness_hours": score.weighted_lateness_hours,
            "total": score.total,
            "buffer_hours": score.buffer_hours,
        },
        "assignments": assignments,
        "windows": windows,
        "unschedulable": [
            {"task_id": item.task_id, "reason": item.reason, "blocked_by": item.blocked_by}
            for item in schedule.unschedulable
        ],
        "must_slip": [
            {
                "task_id": item.task_id,
                "deadline": _fmt(item.deadline),
                "projected_finish": _fmt(item.projected_finish),
            }
            for item in schedule.must_slip
        ],
        "warnings": list(schedule.warnings),
    }

    with path.open("w") as f:
        yaml.safe_dump(output, f, default_flow_style=False, sort_keys=False)


def _moment(value: Any, context: str) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = datetime.fromisoformat(str(value))
        except ValueError as e:
            raise ParseError(f"Invalid timestamp in {context}: {e}") from e
    if moment.tzinfo is not None:
        raise ParseError(f"Timestamp in {context} has a UTC offset; snapshots use local time")
    return moment


def _mapping(value: Any, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(f"Snapshot '{context}' field must be a mapping")
    return cast(dict[str, Any], value)


def _field(data: Mapping[str, Any], key: str, context: str) -> Any:
    if key not in data:
        raise ParseError(f"Snapshot entry for '{context}' missing '{key}'")
    return data[key]


def read_snapshot(path: Path) -> Schedule:
    """Load a snapshot file.

    Args:
        path: Path to the snapshot

    Returns:
        The stored Schedule

    Raises:
        ParseError: If the file is malformed or its version is unsupported
    """
    if not path.exists():
        raise ParseError(f"Snapshot not found: {path}")
    try:
        with path.open() as f:
            raw_data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML in {path}: {e}") from e

    data = _mapping(raw_data, "root")
    version = data.get("version")
    if version is None:
        raise ParseError("Snapshot missing 'version' field")
    if version != SNAPSHOT_VERSION:
        raise ParseError(f"Unsupported snapshot version {version}, expected {SNAPSHOT_VERSION}")

    plan_start = _moment(_field(data, "plan_start", "root"), "plan_start")

    assignments: dict[str, ScheduledTask] = {}
    for task_id, raw in _mapping(data.get("assignments", {}), "assignments").items():
        entry = _mapping(raw, task_id)
        start = _moment(_field(entry, "start", task_id), task_id)
        end = _moment(_field(entry, "end", task_id), task_id)
        try:
            segments = tuple(
                (_moment(seg_start, task_id), _moment(seg_end, task_id))
                for seg_start, seg_end in entry.get("segments") or []
            )
            effort_hours = float(_field(entry, "effort_hours", task_id))
        except (TypeError, ValueError) as e:
            raise ParseError(f"Invalid assignment for '{task_id}' in snapshot: {e}") from e
        assignments[task_id] = ScheduledTask(
            task_id=task_id,
            start=start,
            end=end,
            effort_hours=effort_hours,
            segments=segments,
        )

    windows: dict[str, FeasibilityWindow] = {}
    for task_id, raw in _mapping(data.get("windows", {}), "windows").items():
        entry = _mapping(raw, task_id)
        windows[task_id] = FeasibilityWindow(
            task_id=task_id,
            earliest_start=_moment(_field(entry, "earliest_start", task_id), task_id),
            earliest_finish=_moment(_field(entry, "earliest_finish", task_id), task_id),
            latest_start=_moment(_field(entry, "latest_start", task_id), task_id),
            latest_finish=_moment(_field(entry, "latest_finish", task_id), task_id),
            deadline=_moment(_field(entry, "deadline", task_id), task_id),
            capacity_limited=bool(entry.get("capacity_limited", False)),
        )

    score_data = _mapping(_field(data, "score", "root"), "score")
    try:
        score = ScoreBreakdown(
            slack_consumed_hours=float(score_data.get("slack_consumed_hours", 0.0)),
            unschedulable_count=int(score_data.get("unschedulable_count", 0)),
            weighted_lateness_hours=float(score_data.get("weighted_lateness_hours", 0.0)),
            total=float(_field(score_data, "total", "score")),
            buffer_hours=float(score_data.get("buffer_hours", 0.0)),
        )
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid score in snapshot: {e}") from e

    unschedulable = [
        UnschedulableTask(
            task_id=str(_field(item, "task_id", "unschedulable")),
            reason=str(item.get("reason", "")),
            blocked_by=item.get("blocked_by"),
        )
        for item in (_mapping(raw, "unschedulable") for raw in data.get("unschedulable") or [])
    ]
    must_slip = [
        MustSlip(
            task_id=str(_field(item, "task_id", "must_slip")),
            deadline=_moment(_field(item, "deadline", "must_slip"), "must_slip"),
            projected_finish=_moment(_field(item, "projected_finish", "must_slip"), "must_slip"),
        )
        for item in (_mapping(raw, "must_slip") for raw in data.get("must_slip") or [])
    ]

    return Schedule(
        plan_start=plan_start,
        assignments=assignments,
        windows=windows,
        score=score,
        unschedulable=unschedulable,
        must_slip=must_slip,
        warnings=[str(w) for w in data.get("warnings") or []],
    )
