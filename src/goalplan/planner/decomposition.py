"""Goal decomposition through a pluggable draft-task source."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from goalplan.logger import get_logger
from goalplan.models import DraftTask, Goal

from .builder import build_graph
from .config import SchedulingConfig
from .graph import TaskGraph
from .protocols import GoalDecomposer

logger = get_logger()


class StaticDecomposer:
    """Decomposer returning a fixed list of drafts (tests, pre-authored plans)."""

    def __init__(self, drafts: Sequence[DraftTask]):
        self.drafts = list(drafts)

    def decompose(self, goal: Goal, user_context: Mapping[str, Any]) -> Sequence[DraftTask]:
        return list(self.drafts)


def decompose_goal(
    goal: Goal,
    decomposer: GoalDecomposer,
    user_context: Mapping[str, Any] | None = None,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> TaskGraph:
    """Ask a decomposer for draft tasks and validate them into a graph.

    Raises:
        DraftRejectedError: If any proposed draft fails validation
        CyclicDependencyError: If the proposed dependencies contain a cycle
    """
    drafts = decomposer.decompose(goal, user_context or {})
    logger.checks(f"Decomposer proposed {len(drafts)} draft(s) for goal {goal.id}")
    return build_graph(drafts, goal, now=now, config=config)
