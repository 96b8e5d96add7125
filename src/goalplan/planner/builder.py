"""Draft task normalization and task graph assembly."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime, time

from goalplan.exceptions import DraftProblem, DraftRejectedError
from goalplan.logger import format_hours, get_logger
from goalplan.models import DraftTask, Goal, Priority, Task, TaskStatus

from .config import SchedulingConfig
from .graph import TaskGraph

logger = get_logger()

_EFFORT_RE = re.compile(r"^(-?\d+(?:\.\d+)?)\s*(m|min|h|hr|hrs)?$")
_QUANTITY_RE = re.compile(r"\b\d+\b")
_WORD_RE = re.compile(r"[a-z]+")

# A deadline given as a bare date means the end of that day
END_OF_DAY = time(23, 59, 59)


class DraftNormalizer:
    """Normalizes loosely typed draft tasks into Task records.

    Every check reports a problem instead of raising, so a whole draft list can
    be triaged at once.
    """

    def __init__(self, config: SchedulingConfig | None = None, now: datetime | None = None):
        """Initialize normalizer.

        Args:
            config: Scheduling configuration (actionability policy, limits)
            now: Fallback earliest plausible start when the goal has no created_at
        """
        self.config = config or SchedulingConfig()
        self.now = now

    def parse_effort(self, value: str | float | None) -> float | None:
        """Parse an effort estimate to hours.

        Supported formats:
        - "90m" / "90min" = 1.5 hours
        - "1.5h" = 1.5 hours
        - "2" or 2 = 2 hours

        Returns:
            Hours, or None if no estimate was given

        Raises:
            ValueError: If the value is not a recognizable effort
        """
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError(f"invalid effort estimate: {value!r}")
        if isinstance(value, (int, float)):
            return float(value)

        text = value.strip().lower()
        if not text:
            return None
        match = _EFFORT_RE.match(text)
        if not match:
            raise ValueError(f"invalid effort estimate: {value!r}")

        number, unit = match.groups()
        if unit in ("m", "min"):
            return float(number) / 60.0
        return float(number)

    def parse_moment(self, value: str | date | datetime | None) -> datetime | None:
        """Parse an ISO date or datetime; bare dates mean the end of that day.

        Raises:
            ValueError: If the value is not an ISO date or datetime, or has a UTC offset
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            moment = value
        elif isinstance(value, date):
            return datetime.combine(value, END_OF_DAY)
        else:
            text = value.strip()
            try:
                if len(text) == 10:
                    return datetime.combine(date.fromisoformat(text), END_OF_DAY)
                moment = datetime.fromisoformat(text)
            except ValueError:
                raise ValueError(f"invalid date: {value!r}") from None

        if moment.tzinfo is not None:
            raise ValueError(f"timezone offsets are not supported, use local time: {value!s}")
        return moment

    def check_actionability(self, draft: DraftTask) -> str | None:
        """Check a draft's wording against the actionability policy.

        Returns:
            Reason the draft is not actionable, or None if it passes
        """
        policy = self.config.actionability
        if not policy.enabled:
            return None

        text = f"{draft.title} {draft.description}".lower()
        verbs = {verb.lower() for verb in policy.action_verbs}
        words = _WORD_RE.findall(text)
        if not any(_verb_form(word, verbs) for word in words):
            return "no concrete action verb in title or description"

        if draft.done_when and draft.done_when.strip():
            return None
        if any(marker.lower() in text for marker in policy.completion_markers):
            return None
        if policy.accept_quantities and _QUANTITY_RE.search(text):
            return None
        return "no definable completion condition (add done_when)"

    def normalize(self, draft: DraftTask, goal: Goal) -> tuple[Task | None, list[DraftProblem]]:
        """Normalize one draft against its goal.

        Returns:
            Tuple of (task, problems); task is None whenever problems is non-empty
        """
        problems: list[DraftProblem] = []

        def reject(reason: str) -> None:
            problems.append(DraftProblem(task_id=draft.id, reason=reason))

        effort: float | None = None
        try:
            effort = self.parse_effort(draft.effort)
        except ValueError as e:
            reject(str(e))
        else:
            if effort is None:
                reject("missing effort estimate")
            elif effort < 0:
                reject(f"negative effort estimate: {draft.effort}")

        priority = Priority.MEDIUM
        try:
            priority = Priority.parse(draft.priority)
        except ValueError as e:
            reject(str(e))

        status = TaskStatus.PENDING
        if draft.status:
            try:
                status = TaskStatus(draft.status.strip().lower())
            except ValueError:
                reject(f"unknown status: {draft.status!r}")

        deadline: datetime | None = None
        try:
            deadline = self.parse_moment(draft.deadline)
        except ValueError as e:
            reject(str(e))
        earliest = goal.created_at or self.now
        if deadline is not None and earliest is not None and deadline < earliest:
            reject(f"deadline {deadline:%Y-%m-%d %H:%M} is before the goal's earliest start")

        if draft.logged_hours < 0:
            reject("logged hours cannot be negative")

        reason = self.check_actionability(draft)
        if reason:
            reject(reason)

        if problems:
            return (None, problems)

        assert effort is not None
        task = Task(
            id=draft.id,
            goal_id=goal.id,
            title=draft.title,
            description=draft.description,
            effort_hours=effort,
            priority=priority,
            depends_on=tuple(draft.depends_on),
            status=status,
            deadline=deadline,
            logged_hours=draft.logged_hours,
            done_when=draft.done_when,
        )
        return (task, [])


def _verb_form(word: str, verbs: set[str]) -> bool:
    """True if word is a verb or its third-person form ("writes", "fixes")."""
    if word in verbs:
        return True
    if word.endswith("es") and word[:-2] in verbs:
        return True
    return word.endswith("s") and word[:-1] in verbs


def build_graph(
    drafts: Iterable[DraftTask],
    goal: Goal,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> TaskGraph:
    """Validate draft tasks and assemble them into a dependency graph.

    Args:
        drafts: Draft task descriptors, e.g. from a goal decomposer
        goal: Goal the tasks belong to
        now: Earliest plausible start when the goal has no created_at
        config: Scheduling configuration

    Returns:
        TaskGraph over the normalized tasks

    Raises:
        DraftRejectedError: If any draft fails validation (all problems listed)
        CyclicDependencyError: If the declared dependencies contain a cycle
    """
    config = config or SchedulingConfig()
    normalizer = DraftNormalizer(config, now)
    drafts = list(drafts)
    problems: list[DraftProblem] = []

    if len(drafts) > config.max_tasks_per_goal:
        problems.append(
            DraftProblem(
                task_id=goal.id,
                reason=f"{len(drafts)} tasks exceeds the limit of {config.max_tasks_per_goal}",
            )
        )

    seen: set[str] = set()
    for draft in drafts:
        if draft.id in seen:
            problems.append(DraftProblem(task_id=draft.id, reason="duplicate task id"))
        seen.add(draft.id)

    tasks: list[Task] = []
    for draft in drafts:
        task, task_problems = normalizer.normalize(draft, goal)
        problems.extend(task_problems)
        for dep_id in draft.depends_on:
            if dep_id not in seen:
                problems.append(
                    DraftProblem(task_id=draft.id, reason=f"depends on unknown task: {dep_id}")
                )
        if task is not None:
            tasks.append(task)
            logger.checks(f"  Accepted {task.id} ({format_hours(task.effort_hours)})")

    if problems:
        raise DraftRejectedError(problems)

    graph = TaskGraph.from_tasks(goal, tasks)
    logger.changes(f"Built graph for goal {goal.id}: {len(graph)} tasks")
    return graph
