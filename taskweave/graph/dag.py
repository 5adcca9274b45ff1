from __future__ import annotations

import logging
from collections import deque
from collections.abc import Hashable, Iterable, Iterator
from enum import Enum, auto

from taskweave.command import CommandWork
from taskweave.config.types import ProjectConfig
from taskweave.task import Task

from .types import CycleError, MissingDependencyError

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 40


class _Visit(Enum):
    UNVISITED = auto()
    VISITING = auto()
    VISITED = auto()


class DependencyGraph:
    """Tasks plus parent -> children edges.

    Edges are registered child first (`add_dependency(child, parent)`) and are
    not checked against the known tasks until the graph is sorted.
    """

    def __init__(self) -> None:
        self._tasks: dict[Hashable, Task] = {}
        self._children: dict[Hashable, list[Hashable]] = {}

    @classmethod
    def from_project(cls, project: ProjectConfig) -> DependencyGraph:
        graph = cls()
        for task_config in project:
            work = CommandWork(
                task_config.command, task_config.env, task_config.working_dir
            )
            graph.add_task(Task(task_config.id, work))
            for dep in task_config.deps:
                graph.add_dependency(task_config.id, dep)

        return graph

    @property
    def tasks(self) -> dict[Hashable, Task]:
        return dict(self._tasks)

    @property
    def parent_to_children(self) -> dict[Hashable, list[Hashable]]:
        return {parent: list(children) for parent, children in self._children.items()}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._tasks)

    def add_task(self, task: Task) -> None:
        self._tasks[task.id] = task

    def add_dependency(self, child_id: Hashable, parent_id: Hashable) -> None:
        children = self._children.setdefault(parent_id, [])
        # Each edge is waited on once
        if child_id not in children:
            children.append(child_id)

    def children(self, parent_id: Hashable) -> list[Hashable]:
        return list(self._children.get(parent_id, ()))

    def parents(self, child_id: Hashable) -> list[Hashable]:
        return [
            parent
            for parent, children in self._children.items()
            if child_id in children
        ]

    def get_task(self, task_id: Hashable) -> Task | None:
        return self._tasks.get(task_id)

    def topological_sort(self) -> list[Hashable]:
        self._check_known_ids()

        in_degree = {tid: 0 for tid in self._tasks}
        for children in self._children.values():
            for child in children:
                in_degree[child] += 1

        queue: deque[Hashable] = deque(
            tid for tid, degree in in_degree.items() if degree == 0
        )
        out: list[Hashable] = []

        while queue:
            current = queue.popleft()
            out.append(current)
            for child in self._children.get(current, ()):
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    queue.append(child)

        if len(out) != len(self._tasks):
            cycle = self.cycle_path() or []
            logger.debug(
                "Cycle detected after ordering %d of %d tasks", len(out), len(self._tasks)
            )
            raise CycleError(
                cycle, in_degree, len(out), len(self._tasks), self.find_cycle()
            )

        return out

    def cycle_path(self) -> list[Hashable] | None:
        """Return the first cycle found as a closed path, or None.

        The path follows dependencies: each element depends on the next one,
        and the first and last elements are the same task.
        """
        state: dict[Hashable, _Visit] = {}
        parent_of: dict[Hashable, Hashable] = {}

        def visit(tid: Hashable) -> Hashable | None:
            state[tid] = _Visit.VISITING
            for child in self._children.get(tid, ()):
                child_state = state.get(child, _Visit.UNVISITED)
                if child_state == _Visit.UNVISITED:
                    parent_of[child] = tid
                    trigger = visit(child)
                    if trigger is not None:
                        return trigger
                elif child_state == _Visit.VISITING:
                    parent_of[child] = tid
                    return child

            state[tid] = _Visit.VISITED
            return None

        for tid in self._tasks:
            if state.get(tid, _Visit.UNVISITED) != _Visit.UNVISITED:
                continue
            trigger = visit(tid)
            if trigger is not None:
                return _backtrack(trigger, parent_of)

        return None

    def find_cycle(self) -> str:
        path = self.cycle_path()
        if path is None:
            return "No cycle detected in the graph."
        return _format_cycle(path)

    def subgraph(self, targets: Iterable[Hashable]) -> DependencyGraph:
        needed: set[Hashable] = set()
        worklist: list[Hashable] = []
        for target in targets:
            if target not in self._tasks:
                raise KeyError(target)
            worklist.append(target)

        while worklist:
            task_id = worklist.pop()
            if task_id in needed:
                continue
            needed.add(task_id)
            worklist.extend(self.parents(task_id))

        sub = DependencyGraph()
        for task_id, task in self._tasks.items():
            if task_id in needed:
                sub.add_task(task)
        for parent, children in self._children.items():
            if parent not in needed:
                continue
            for child in children:
                if child in needed:
                    sub.add_dependency(child, parent)

        return sub

    def visualize(self) -> str:
        lines = ["Graphical Representation of DAG Tasks and Dependencies", SEPARATOR]
        order: list[Hashable] | None = None

        try:
            order = self.topological_sort()
        except CycleError:
            lines.append("Cycle Detected")
        else:
            for task_id in order:
                children = self._children.get(task_id)
                if children:
                    lines.append(f"{task_id} -> ({', '.join(map(str, children))})")
                else:
                    lines.append(f"{task_id} [No children]")

        lines.append(SEPARATOR)
        if order is not None:
            lines.append("Topological Order of Execution:")
            lines.append(" -> ".join(map(str, order)))

        return "\n".join(lines) + "\n"

    def _check_known_ids(self) -> None:
        missing = [
            (child, parent)
            for parent, children in self._children.items()
            for child in children
            if child not in self._tasks or parent not in self._tasks
        ]
        if missing:
            raise MissingDependencyError(missing)


def _backtrack(trigger: Hashable, parent_of: dict[Hashable, Hashable]) -> list[Hashable]:
    path = [trigger]
    current = parent_of[trigger]
    while current != trigger:
        path.append(current)
        current = parent_of[current]
    path.append(trigger)
    return path


def _format_cycle(path: list[Hashable]) -> str:
    parts = [
        f"Task {task_id} depends on Task {parent_id}"
        for task_id, parent_id in zip(path, path[1:])
    ]
    return ", but also ".join(parts) + "."
