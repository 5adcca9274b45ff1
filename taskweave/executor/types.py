from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any

from taskweave.task import Task


@dataclass(frozen=True)
class RunResult:
    order: list[Hashable]
    tasks: list[Task]
    results: dict[Hashable, Any]
    duration_s: float

    def final_task(self) -> Task | None:
        return self.tasks[-1] if self.tasks else None

    def get(self, task_id: Hashable) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise KeyError(task_id)
