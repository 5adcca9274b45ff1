from .executor import Executor, RunResult, SharedState
from .graph import CycleError, DependencyGraph, GraphError, MissingDependencyError
from .task import Task, TaskError, TaskStateError, TaskStatus

__all__ = [
    "DependencyGraph",
    "Executor",
    "RunResult",
    "SharedState",
    "Task",
    "TaskStatus",
    "TaskError",
    "TaskStateError",
    "GraphError",
    "CycleError",
    "MissingDependencyError",
]
