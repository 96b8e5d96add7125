"""Protocol definitions for external collaborators."""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from goalplan.models import DraftTask, Goal


class GoalDecomposer(Protocol):
    """Protocol for sources of draft tasks (e.g., a text-generation service)."""

    def decompose(self, goal: Goal, user_context: Mapping[str, Any]) -> Sequence[DraftTask]:
        """Propose draft tasks for a goal.

        Only the declared output shape is relied on: drafts are validated and
        timed by the graph builder, their wording is never edited.

        Args:
            goal: Goal to decompose (its deadline included)
            user_context: Opaque hints about the user (skills, preferences)

        Returns:
            Draft task descriptors
        """
        ...
