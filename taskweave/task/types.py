from __future__ import annotations

import time
import traceback
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Work = Callable[[Mapping[Hashable, Any]], Any]


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})


class TaskStateError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


@dataclass(frozen=True)
class TaskError:
    message: str
    trace: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> TaskError:
        message = str(exc) or type(exc).__name__
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(message, trace)


@dataclass(eq=False)
class Task:
    """One unit of work.

    `work` receives a mapping from parent id to the value that parent
    published (None for a failed parent). Status and timestamps are only
    changed through the mark_* methods, which enforce
    PENDING -> RUNNING -> COMPLETED | FAILED.
    """

    id: Hashable
    work: Work
    status: TaskStatus = field(default=TaskStatus.PENDING, init=False)
    result: Any = field(default=None, init=False)
    error: TaskError | None = field(default=None, init=False)
    started_at: float | None = field(default=None, init=False)
    finished_at: float | None = field(default=None, init=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def execution_time(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def mark_running(self) -> None:
        self._check_transition(TaskStatus.PENDING, TaskStatus.RUNNING)
        self.status = TaskStatus.RUNNING
        self.started_at = time.monotonic()

    def mark_completed(self, result: Any) -> None:
        self._check_transition(TaskStatus.RUNNING, TaskStatus.COMPLETED)
        self.result = result
        self.status = TaskStatus.COMPLETED
        self.finished_at = time.monotonic()

    def mark_failed(self, exc: BaseException) -> None:
        self._check_transition(TaskStatus.RUNNING, TaskStatus.FAILED)
        self.result = None
        self.error = TaskError.from_exception(exc)
        self.status = TaskStatus.FAILED
        self.finished_at = time.monotonic()

    def _check_transition(self, expected: TaskStatus, target: TaskStatus) -> None:
        if self.status != expected:
            raise TaskStateError(
                f"Task {self.id!r}: cannot go from {self.status.value} to {target.value}"
            )

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, status={self.status.value})"
