from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Hashable
from concurrent.futures import ThreadPoolExecutor

from taskweave.graph import DependencyGraph
from taskweave.task import Task, TaskStateError, TaskStatus

from .cell import ResultCell
from .types import RunResult

logger = logging.getLogger(__name__)

DEFAULT_WORKER_LIMIT = 32 + (os.cpu_count() or 1)


class Executor:
    """Runs every task of a graph, each one as soon as its parents are done.

    One unit per task is submitted up front, in topological order. A unit
    blocks on its parents' result cells, runs the task and publishes the
    task's result (None on failure) to its own cell. Task failures are
    recorded on the task and never raised from `execute`.
    """

    def __init__(self, max_workers: int | None = None):
        valid = (
            isinstance(max_workers, int)
            and not isinstance(max_workers, bool)
            and max_workers > 0
        )
        if max_workers is not None and not valid:
            raise ValueError(f"max_workers must be a positive integer, got {max_workers!r}")
        self.max_workers = max_workers

    def worker_count(self, task_count: int) -> int:
        # Units are queued FIFO in topological order, so any worker count is
        # enough: a unit is only picked up after all of its parents were.
        limit = self.max_workers or DEFAULT_WORKER_LIMIT
        return max(min(task_count, limit), 1)

    def execute(self, graph: DependencyGraph) -> RunResult:
        start = time.monotonic()
        order = graph.topological_sort()
        tasks = [graph.get_task(tid) for tid in order]

        for task in tasks:
            if task.status != TaskStatus.PENDING:
                raise TaskStateError(
                    f"Task {task.id!r} is {task.status.value}; a graph can only be run once"
                )

        cells = {tid: ResultCell(tid) for tid in order}
        finished: list[Task] = []
        finished_lock = threading.Lock()

        workers = self.worker_count(len(order))
        logger.info("Running %d tasks with %d workers", len(order), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="taskweave-") as pool:
            futures = [
                pool.submit(
                    self._run_unit,
                    task,
                    {parent: cells[parent] for parent in graph.parents(task.id)},
                    cells[task.id],
                    finished,
                    finished_lock,
                )
                for task in tasks
            ]

        for future in futures:
            # Only errors from outside the task body end up here
            future.result()

        duration = time.monotonic() - start
        failed = sum(1 for task in finished if task.status == TaskStatus.FAILED)
        logger.info(
            "Finished %d tasks in %.3fs (%d failed)", len(finished), duration, failed
        )

        return RunResult(
            order=order,
            tasks=list(finished),
            results={task.id: task.result for task in finished},
            duration_s=duration,
        )

    def _run_unit(
        self,
        task: Task,
        parent_cells: dict[Hashable, ResultCell],
        cell: ResultCell,
        finished: list[Task],
        finished_lock: threading.Lock,
    ) -> None:
        try:
            parent_results = {parent: pc.wait() for parent, pc in parent_cells.items()}

            task.mark_running()
            logger.debug("Task %r started", task.id)
            try:
                value = task.work(parent_results)
            except BaseException as exc:
                # SystemExit and friends from a task body fail only that task
                task.mark_failed(exc)
                logger.warning("Task %r failed: %s", task.id, task.error.message)
            else:
                task.mark_completed(value)
                logger.debug("Task %r completed in %.3fs", task.id, task.execution_time)
        finally:
            cell.publish(task.result)

        with finished_lock:
            finished.append(task)
