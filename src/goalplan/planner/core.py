"""Core dataclasses for the scheduling engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .graph import TaskGraph

# A concrete block of work: [start, end)
Segment = tuple[datetime, datetime]


def hours(delta: timedelta) -> float:
    """Convert a timedelta to fractional hours."""
    return delta.total_seconds() / 3600.0


def _default_str_list() -> list[str]:
    return []


class ConflictKind(str, Enum):
    """Why a task has no valid feasibility window."""

    INFEASIBLE = "infeasible"  # Forward and backward constraints cross
    CAPACITY_EXCEEDED = "capacity_exceeded"  # Not enough availability in the horizon


@dataclass(frozen=True)
class FeasibilityWindow:
    """Critical-path bounds for one task."""

    task_id: str
    earliest_start: datetime
    earliest_finish: datetime
    latest_start: datetime
    latest_finish: datetime
    deadline: datetime  # Own deadline, or the goal deadline
    capacity_limited: bool = False  # Work did not fit in the planning horizon

    @property
    def slack(self) -> timedelta:
        """Buffer before the task becomes critical (latest - earliest finish)."""
        return self.latest_finish - self.earliest_finish

    @property
    def feasible(self) -> bool:
        return not self.capacity_limited and self.earliest_finish <= self.latest_finish


@dataclass(frozen=True)
class InfeasibleTask:
    """A task whose window is empty, with the minimal relaxation that fixes it."""

    task_id: str
    kind: ConflictKind
    reason: str
    required_extension: timedelta  # How far its latest finish must move out


@dataclass
class FeasibilityReport:
    """Result of the feasibility analysis."""

    start: datetime  # Plan start the forward pass was anchored to
    windows: dict[str, FeasibilityWindow]

    @property
    def infeasible(self) -> list[InfeasibleTask]:
        """Every task without a valid window, in window order."""
        result: list[InfeasibleTask] = []
        for window in self.windows.values():
            if window.feasible:
                continue
            extension = max(window.earliest_finish - window.latest_finish, timedelta())
            if window.capacity_limited:
                result.append(
                    InfeasibleTask(
                        task_id=window.task_id,
                        kind=ConflictKind.CAPACITY_EXCEEDED,
                        reason="not enough availability within the planning horizon",
                        required_extension=extension,
                    )
                )
            else:
                result.append(
                    InfeasibleTask(
                        task_id=window.task_id,
                        kind=ConflictKind.INFEASIBLE,
                        reason=(
                            f"earliest finish {window.earliest_finish:%Y-%m-%d %H:%M} is after "
                            f"latest finish {window.latest_finish:%Y-%m-%d %H:%M}"
                        ),
                        required_extension=extension,
                    )
                )
        return result

    @property
    def is_feasible(self) -> bool:
        return all(window.feasible for window in self.windows.values())

    @property
    def required_extension(self) -> timedelta:
        """Largest single extension needed to make every window valid."""
        return max((item.required_extension for item in self.infeasible), default=timedelta())


@dataclass(frozen=True)
class ScheduledTask:
    """A task that has been placed on the calendar."""

    task_id: str
    start: datetime
    end: datetime
    effort_hours: float
    segments: tuple[Segment, ...] = ()


@dataclass(frozen=True)
class UnschedulableTask:
    """A task left out of the schedule; the rest of the schedule stays usable."""

    task_id: str
    reason: str
    blocked_by: str | None = None  # Predecessor that could not be scheduled


@dataclass(frozen=True)
class MustSlip:
    """A placed task that cannot meet its deadline."""

    task_id: str
    deadline: datetime
    projected_finish: datetime

    @property
    def extension(self) -> timedelta:
        """Minimal deadline extension that would make this placement on time."""
        return self.projected_finish - self.deadline


@dataclass(frozen=True)
class ScoreBreakdown:
    """Optimality score components; lower total is better."""

    slack_consumed_hours: float
    unschedulable_count: int
    weighted_lateness_hours: float
    total: float
    # Informational: time between the last finish and the goal deadline
    buffer_hours: float = 0.0


@dataclass(frozen=True)
class Schedule:
    """Frozen result of a scheduling call; derive changed copies with dataclasses.replace."""

    plan_start: datetime
    assignments: dict[str, ScheduledTask]
    windows: dict[str, FeasibilityWindow]
    score: ScoreBreakdown
    unschedulable: list[UnschedulableTask] = field(default_factory=list)
    must_slip: list[MustSlip] = field(default_factory=list)
    warnings: list[str] = field(default_factory=_default_str_list)

    def get(self, task_id: str) -> ScheduledTask | None:
        return self.assignments.get(task_id)

    @property
    def unschedulable_ids(self) -> set[str]:
        return {item.task_id for item in self.unschedulable}

    @property
    def must_slip_ids(self) -> set[str]:
        return {item.task_id for item in self.must_slip}

    @property
    def is_fully_feasible(self) -> bool:
        return not self.unschedulable and not self.must_slip


@dataclass
class Plan:
    """A graph snapshot together with the schedule built from it."""

    graph: TaskGraph
    schedule: Schedule
    report: FeasibilityReport


@dataclass
class AdaptationResult:
    """Outcome of adapting a schedule to a set of changes."""

    graph: TaskGraph
    schedule: Schedule
    report: FeasibilityReport
    dirty: frozenset[str]  # Tasks that were re-timed (or retried)
    pinned: frozenset[str]  # Tasks copied unchanged from the prior schedule
    prior_score: float
    explanations: list[str] = field(default_factory=_default_str_list)
    used_fallback: bool = False

    @property
    def score_delta(self) -> float:
        return self.schedule.score.total - self.prior_score

    @property
    def plan(self) -> Plan:
        return Plan(graph=self.graph, schedule=self.schedule, report=self.report)


@dataclass
class RecoveryResult:
    """Outcome of re-anchoring overdue work at "now"."""

    adaptation: AdaptationResult
    overdue_ids: frozenset[str]
    now: datetime
    # Suggested new goal deadline when work must slip; never applied automatically
    recommended_goal_deadline: datetime | None = None

    @property
    def schedule(self) -> Schedule:
        return self.adaptation.schedule

    @property
    def must_slip(self) -> list[MustSlip]:
        return self.adaptation.schedule.must_slip
