"""YAML parsers for goal files and changes files."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import DraftProblem, DraftRejectedError, ParseError, ValidationError
from .models import DraftTask, Goal
from .planner.builder import DraftNormalizer
from .planner.changes import (
    DeadlineChanged,
    DependenciesChanged,
    EffortReestimated,
    ScheduleChange,
    TaskAdded,
    TaskCompleted,
    TaskMarkedOverdue,
    TaskRemoved,
)
from .planner.config import SchedulingConfig
from .schemas import (
    AddedChangeSchema,
    ChangesFileSchema,
    CompletedChangeSchema,
    DeadlineChangeSchema,
    DependenciesChangeSchema,
    DraftTaskSchema,
    EffortChangeSchema,
    GoalFileSchema,
    OverdueChangeSchema,
    RemovedChangeSchema,
)


@dataclass
class GoalDocument:
    """A parsed goal file: the goal and its draft tasks, in file order."""

    goal: Goal
    drafts: list[DraftTask]


def _load_yaml(file_path: Path | str) -> dict[str, Any]:
    path = Path(file_path)
    if not path.exists():
        raise ParseError(f"File not found: {file_path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("YAML must contain a dictionary at the root level")
    return data  # type: ignore[return-value]


def _to_draft(task_id: str, schema: DraftTaskSchema) -> DraftTask:
    return DraftTask(
        id=task_id,
        title=schema.title,
        description=schema.description,
        effort=schema.effort,
        priority=schema.priority,
        depends_on=list(schema.depends_on),
        deadline=schema.deadline,
        done_when=schema.done_when,
        status=schema.status,
        logged_hours=schema.logged_hours,
    )


class GoalFileParser:
    """Parser for goal YAML files.

    Only handles YAML parsing and conversion to drafts; validation of the
    drafts themselves belongs to the graph builder.
    """

    def parse_file(self, file_path: Path | str) -> GoalDocument:
        """Parse a YAML file into a GoalDocument."""
        return self._parse_data(_load_yaml(file_path))

    def _parse_data(self, data: dict[str, Any]) -> GoalDocument:
        try:
            schema = GoalFileSchema(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid YAML structure: {e}") from e

        goal = Goal(
            id=schema.goal.id,
            title=schema.goal.title,
            deadline=schema.goal.deadline,
            complexity=schema.goal.complexity,
            created_at=schema.goal.created_at,
        )
        drafts = [_to_draft(task_id, task) for task_id, task in schema.tasks.items()]
        return GoalDocument(goal=goal, drafts=drafts)


class YamlDecomposer:
    """GoalDecomposer that reads pre-authored drafts from a goal file."""

    def __init__(self, file_path: Path | str):
        self.document = GoalFileParser().parse_file(file_path)

    def decompose(self, goal: Goal, user_context: Mapping[str, Any]) -> Sequence[DraftTask]:
        return list(self.document.drafts)


def parse_changes_file(
    file_path: Path | str,
    goal: Goal,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> list[ScheduleChange]:
    """Parse a changes file into schedule changes.

    Added tasks go through the same normalization as goal-file drafts.

    Raises:
        ParseError: If the file is not valid YAML
        ValidationError: If a change record is malformed
        DraftRejectedError: If an added task fails normalization
    """
    data = _load_yaml(file_path)
    try:
        schema = ChangesFileSchema(**data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid changes file: {e}") from e

    normalizer = DraftNormalizer(config, now)
    changes: list[ScheduleChange] = []
    problems: list[DraftProblem] = []

    for record in schema.changes:
        if isinstance(record, AddedChangeSchema):
            assert record.task.id is not None
            task, task_problems = normalizer.normalize(_to_draft(record.task.id, record.task), goal)
            problems.extend(task_problems)
            if task is not None:
                changes.append(TaskAdded(task))
        elif isinstance(record, RemovedChangeSchema):
            changes.append(TaskRemoved(record.task))
        elif isinstance(record, DeadlineChangeSchema):
            changes.append(DeadlineChanged(deadline=record.deadline, task_id=record.task))
        elif isinstance(record, EffortChangeSchema):
            try:
                effort = normalizer.parse_effort(record.effort)
            except ValueError as e:
                raise ValidationError(f"Change for {record.task}: {e}") from e
            if effort is None or effort < 0:
                raise ValidationError(f"Change for {record.task}: invalid effort {record.effort!r}")
            changes.append(EffortReestimated(record.task, effort))
        elif isinstance(record, DependenciesChangeSchema):
            changes.append(DependenciesChanged(record.task, tuple(record.depends_on)))
        elif isinstance(record, OverdueChangeSchema):
            changes.append(TaskMarkedOverdue(record.task, record.logged_hours))
        elif isinstance(record, CompletedChangeSchema):
            changes.append(TaskCompleted(record.task, record.at))

    if problems:
        raise DraftRejectedError(problems)
    return changes
