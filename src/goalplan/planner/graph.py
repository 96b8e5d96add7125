"""Task dependency graph.

Tasks are stored in an arena keyed by id. Predecessor and dependent edges are
computed once per construction and stored as id tuples in both directions, so
the graph holds no object cross-references and every derivation returns a new
graph.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from datetime import datetime

from goalplan.exceptions import CyclicDependencyError, MissingReferenceError
from goalplan.models import Goal, Task


def topological_sort(tasks: Mapping[str, Task]) -> list[str]:
    """Order task ids so every task follows all of its predecessors (Kahn's algorithm).

    Ties are broken by insertion order, so the result is deterministic.

    Raises:
        CyclicDependencyError: If the topological sort cannot consume every task,
            naming the task ids of one offending cycle
    """
    in_degree = {task_id: len(task.depends_on) for task_id, task in tasks.items()}
    dependents: dict[str, list[str]] = {task_id: [] for task_id in tasks}
    for task in tasks.values():
        for dep_id in task.depends_on:
            dependents[dep_id].append(task.id)

    queue = deque(task_id for task_id, degree in in_degree.items() if degree == 0)
    result: list[str] = []

    while queue:
        task_id = queue.popleft()
        result.append(task_id)
        for dependent_id in dependents[task_id]:
            in_degree[dependent_id] -= 1
            if in_degree[dependent_id] == 0:
                queue.append(dependent_id)

    if len(result) != len(tasks):
        remaining = {task_id for task_id, degree in in_degree.items() if degree > 0}
        raise CyclicDependencyError(_find_cycle(tasks, remaining))

    return result


def _find_cycle(tasks: Mapping[str, Task], remaining: set[str]) -> list[str]:
    """Extract one cycle from the tasks Kahn's algorithm could not consume.

    Every leftover task still has a leftover predecessor, so walking predecessors
    from any of them must revisit a task; the revisited stretch is the cycle.
    """
    start = next(task_id for task_id in tasks if task_id in remaining)
    path: list[str] = []
    seen: dict[str, int] = {}
    current = start
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        current = next(dep for dep in tasks[current].depends_on if dep in remaining)
    cycle = path[seen[current] :]
    cycle.reverse()  # Predecessor first
    return cycle


@dataclass(frozen=True)
class TaskGraph:
    """Dependency DAG over the tasks of one goal."""

    goal: Goal
    tasks: Mapping[str, Task]
    predecessors: Mapping[str, tuple[str, ...]]
    dependents: Mapping[str, tuple[str, ...]]
    topo_order: tuple[str, ...]

    @classmethod
    def from_tasks(cls, goal: Goal, tasks: Iterable[Task]) -> TaskGraph:
        """Assemble a graph, validating references and acyclicity.

        Raises:
            MissingReferenceError: If a task depends on an unknown id
            CyclicDependencyError: If the dependencies contain a cycle
        """
        by_id: dict[str, Task] = {}
        for task in tasks:
            by_id[task.id] = task

        for task in by_id.values():
            for dep_id in task.depends_on:
                if dep_id not in by_id:
                    raise MissingReferenceError(f"Task {task.id} depends on unknown task: {dep_id}")

        order = topological_sort(by_id)
        dependents: dict[str, list[str]] = {task_id: [] for task_id in by_id}
        for task_id in order:
            for dep_id in by_id[task_id].depends_on:
                dependents[dep_id].append(task_id)

        return cls(
            goal=goal,
            tasks=by_id,
            predecessors={task_id: tuple(task.depends_on) for task_id, task in by_id.items()},
            dependents={task_id: tuple(ids) for task_id, ids in dependents.items()},
            topo_order=tuple(order),
        )

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.tasks

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        """Iterate tasks in topological order."""
        return (self.tasks[task_id] for task_id in self.topo_order)

    def task(self, task_id: str) -> Task:
        """Look up a task by id.

        Raises:
            MissingReferenceError: If no such task exists
        """
        try:
            return self.tasks[task_id]
        except KeyError:
            raise MissingReferenceError(f"Unknown task: {task_id}") from None

    def deadline_for(self, task_id: str) -> datetime:
        """Task's own deadline, or the goal deadline if unset."""
        return self.tasks[task_id].deadline or self.goal.deadline

    @property
    def active_ids(self) -> list[str]:
        """Ids of tasks still to be worked on, in topological order."""
        return [task_id for task_id in self.topo_order if not self.tasks[task_id].is_completed]

    def with_dependents(self, seeds: Iterable[str]) -> set[str]:
        """Seeds plus everything transitively downstream of them."""
        result: set[str] = set()
        stack = [seed for seed in seeds if seed in self.tasks]
        while stack:
            task_id = stack.pop()
            if task_id in result:
                continue
            result.add(task_id)
            stack.extend(self.dependents[task_id])
        return result

    def component_of(self, seeds: Iterable[str]) -> set[str]:
        """All tasks weakly connected to any seed (edges followed both ways)."""
        result: set[str] = set()
        stack = [seed for seed in seeds if seed in self.tasks]
        while stack:
            task_id = stack.pop()
            if task_id in result:
                continue
            result.add(task_id)
            stack.extend(self.predecessors[task_id])
            stack.extend(self.dependents[task_id])
        return result

    def subgraph(self, task_ids: Iterable[str]) -> TaskGraph:
        """Graph restricted to task_ids; edges leaving the subset are dropped."""
        keep = set(task_ids)
        tasks = [
            replace(task, depends_on=tuple(dep for dep in task.depends_on if dep in keep))
            for task_id, task in self.tasks.items()
            if task_id in keep
        ]
        return TaskGraph.from_tasks(self.goal, tasks)

    def with_task(self, task: Task) -> TaskGraph:
        """Graph with task added, or replaced if its id already exists."""
        tasks = dict(self.tasks)
        tasks[task.id] = task
        return TaskGraph.from_tasks(self.goal, tasks.values())

    def without_task(self, task_id: str) -> TaskGraph:
        """Graph with task removed; dependents lose the edge to it."""
        self.task(task_id)
        tasks = [
            replace(task, depends_on=tuple(dep for dep in task.depends_on if dep != task_id))
            for other_id, task in self.tasks.items()
            if other_id != task_id
        ]
        return TaskGraph.from_tasks(self.goal, tasks)

    def with_goal(self, goal: Goal) -> TaskGraph:
        return replace(self, goal=goal)
