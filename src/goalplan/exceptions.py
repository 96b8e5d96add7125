"""Custom exceptions for goalplan."""

from __future__ import annotations

from dataclasses import dataclass


class GoalPlanError(Exception):
    """Base exception for all goalplan errors."""

    pass


class ValidationError(GoalPlanError):
    """Raised when validation fails."""

    pass


class CyclicDependencyError(ValidationError):
    """Raised when the task dependencies contain a cycle.

    Attributes:
        cycle: Task ids forming the cycle, in dependency order
    """

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic dependency detected: {' -> '.join([*cycle, cycle[0]])}")


class MissingReferenceError(ValidationError):
    """Raised when a referenced task id does not exist."""

    pass


@dataclass(frozen=True)
class DraftProblem:
    """One reason a draft task was rejected."""

    task_id: str
    reason: str

    def __str__(self) -> str:
        return f"{self.task_id}: {self.reason}"


class DraftRejectedError(ValidationError):
    """Raised when one or more draft tasks fail normalization.

    Attributes:
        problems: Every problem found, not just the first
    """

    def __init__(self, problems: list[DraftProblem]):
        self.problems = problems
        lines = "\n".join(f"  - {problem}" for problem in problems)
        super().__init__(f"{len(problems)} draft task(s) rejected:\n{lines}")


class ParseError(GoalPlanError):
    """Raised when YAML parsing fails."""

    pass


class ConfigError(GoalPlanError):
    """Raised when a configuration file is invalid."""

    pass
