from .types import Task, TaskError, TaskStateError, TaskStatus, Work

__all__ = ["Task", "TaskStatus", "TaskError", "TaskStateError", "Work"]
