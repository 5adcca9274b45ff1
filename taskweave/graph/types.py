from __future__ import annotations

import json
from collections.abc import Hashable, Mapping


class GraphError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class CycleError(GraphError):
    def __init__(
        self,
        cycle: list[Hashable],
        in_degree: Mapping[Hashable, int],
        sorted_count: int,
        task_count: int,
        description: str,
    ):
        snapshot = json.dumps({str(k): v for k, v in in_degree.items()})
        super().__init__(
            f"Detected a cycle in the graph. {task_count} tasks but only "
            f"{sorted_count} sorted tasks. In degrees: {snapshot}. {description}"
        )
        self.cycle = cycle
        self.in_degree = dict(in_degree)


class MissingDependencyError(GraphError):
    def __init__(self, missing: list[tuple[Hashable, Hashable]]):
        edges = ", ".join(f"{child!r} -> {parent!r}" for child, parent in missing)
        super().__init__(f"Dependencies reference unknown tasks: {edges}")
        self.missing = missing
