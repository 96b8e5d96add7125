"""Configuration classes for the scheduling engine."""

from pydantic import BaseModel, Field

DEFAULT_ACTION_VERBS = [
    "add",
    "analyze",
    "apply",
    "book",
    "build",
    "buy",
    "call",
    "clean",
    "collect",
    "compare",
    "complete",
    "configure",
    "contact",
    "create",
    "deploy",
    "design",
    "document",
    "draft",
    "edit",
    "email",
    "fill",
    "finish",
    "fix",
    "implement",
    "install",
    "interview",
    "learn",
    "list",
    "measure",
    "meet",
    "migrate",
    "outline",
    "plan",
    "practice",
    "prepare",
    "present",
    "publish",
    "read",
    "record",
    "refactor",
    "register",
    "research",
    "review",
    "run",
    "schedule",
    "send",
    "set",
    "ship",
    "sketch",
    "study",
    "submit",
    "summarize",
    "test",
    "train",
    "update",
    "upload",
    "validate",
    "watch",
    "write",
]

DEFAULT_COMPLETION_MARKERS = [
    "done when",
    "complete when",
    "finished when",
    "until",
    "so that",
    "such that",
    "resulting in",
    "ready for",
    "covering",
    "including",
]


class OptimalityWeights(BaseModel):
    """Weights of the schedule optimality score (lower score is better)."""

    slack_weight: float = 1.0  # Per hour of slack consumed
    unschedulable_weight: float = 1000.0  # Per task left out of the schedule
    lateness_weight: float = 10.0  # Per priority-weighted hour past a deadline
    # Lateness multiplier by priority name
    priority_weights: dict[str, float] = Field(
        default_factory=lambda: {"low": 1.0, "medium": 2.0, "high": 3.0, "critical": 4.0}
    )

    def priority_weight(self, priority: str) -> float:
        return self.priority_weights.get(priority, 1.0)


class ActionabilityPolicy(BaseModel):
    """Rules a draft task's wording must satisfy to be accepted.

    A draft is actionable when its title or description contains one of the
    action verbs and a completion condition can be defined: an explicit
    done_when, a completion marker phrase, or (optionally) a measurable quantity.
    """

    enabled: bool = True
    action_verbs: list[str] = Field(default_factory=lambda: list(DEFAULT_ACTION_VERBS))
    completion_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMPLETION_MARKERS)
    )
    accept_quantities: bool = True  # "Read 3 chapters" defines its own completion


class SchedulingConfig(BaseModel):
    """Configuration for analysis, scheduling and adaptation."""

    # Calendar walks never look further than this many days past the plan start
    horizon_days: int = Field(default=365, gt=0)
    max_tasks_per_goal: int = Field(default=200, gt=0)
    # Allowed score regression (score units) before the adapter falls back
    adapt_tolerance: float = Field(default=1.0, ge=0.0)

    weights: OptimalityWeights = OptimalityWeights()
    actionability: ActionabilityPolicy = ActionabilityPolicy()
