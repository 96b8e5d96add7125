"""Pydantic schemas for YAML data validation."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import ComplexityTier


def _end_of_day(value: Any) -> Any:
    """Bare dates (objects or "YYYY-MM-DD" strings) mean the end of that day."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time(23, 59, 59))
    if isinstance(value, str) and len(value.strip()) == 10:
        return datetime.combine(date.fromisoformat(value.strip()), time(23, 59, 59))
    return value


def _local_time(value: Any) -> Any:
    """Reject offset-aware datetimes; calendars are in local wall-clock time."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        raise ValueError(f"timezone offsets are not supported, use local time: {value.isoformat()}")
    return value


class GoalSchema(BaseModel):
    """Schema for the goal block of a goal file."""

    id: str
    title: str
    deadline: datetime
    complexity: ComplexityTier = ComplexityTier.MODERATE
    created_at: datetime | None = None

    @field_validator("deadline", mode="before")
    @classmethod
    def coerce_deadline(cls, v: Any) -> Any:
        return _end_of_day(v)

    @field_validator("deadline", "created_at")
    @classmethod
    def check_local(cls, v: Any) -> Any:
        return _local_time(v)

    @field_validator("id", "title", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        """Ensure ids and titles are strings (YAML may read them as numbers)."""
        if isinstance(v, (int, float)):
            return str(v)
        return v


class DraftTaskSchema(BaseModel):
    """Schema for one draft task; fields stay loose for the graph builder to judge."""

    id: str | None = None  # Taken from the mapping key in goal files
    title: str
    description: str = ""
    effort: str | float | None = None
    priority: str | int | None = None
    depends_on: list[str] = Field(default_factory=list)
    deadline: datetime | date | str | None = None
    done_when: str | None = None
    status: str | None = None
    logged_hours: float = 0.0

    @field_validator("depends_on", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Ensure value is a list."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) for item in v]  # type: ignore[misc]
        return [str(v)]

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("deadline")
    @classmethod
    def check_local(cls, v: Any) -> Any:
        return _local_time(v)


class AddedChangeSchema(BaseModel):
    kind: Literal["added"]
    task: DraftTaskSchema

    @model_validator(mode="after")
    def require_task_id(self) -> AddedChangeSchema:
        if not self.task.id:
            raise ValueError("an added task needs an 'id'")
        return self


class RemovedChangeSchema(BaseModel):
    kind: Literal["removed"]
    task: str


class DeadlineChangeSchema(BaseModel):
    """Deadline change; omit 'task' to move the goal deadline."""

    kind: Literal["deadline"]
    task: str | None = None
    deadline: datetime | None

    @field_validator("deadline", mode="before")
    @classmethod
    def coerce_deadline(cls, v: Any) -> Any:
        return _end_of_day(v)

    @field_validator("deadline")
    @classmethod
    def check_local(cls, v: Any) -> Any:
        return _local_time(v)


class EffortChangeSchema(BaseModel):
    kind: Literal["effort"]
    task: str
    effort: str | float


class DependenciesChangeSchema(BaseModel):
    kind: Literal["dependencies"]
    task: str
    depends_on: list[str] = Field(default_factory=list)


class OverdueChangeSchema(BaseModel):
    kind: Literal["overdue"]
    task: str
    logged_hours: float | None = Field(default=None, ge=0)


class CompletedChangeSchema(BaseModel):
    kind: Literal["completed"]
    task: str
    at: datetime

    @field_validator("at")
    @classmethod
    def check_local(cls, v: Any) -> Any:
        return _local_time(v)


ChangeSchema = Annotated[
    Union[
        AddedChangeSchema,
        RemovedChangeSchema,
        DeadlineChangeSchema,
        EffortChangeSchema,
        DependenciesChangeSchema,
        OverdueChangeSchema,
        CompletedChangeSchema,
    ],
    Field(discriminator="kind"),
]


class ChangesFileSchema(BaseModel):
    """Schema for a changes file."""

    changes: list[ChangeSchema] = Field(default_factory=list)


class GoalFileSchema(BaseModel):
    """Schema for the entire goal file."""

    goal: GoalSchema
    tasks: dict[str, DraftTaskSchema] = Field(default_factory=dict)
