# tests/test_executor.py
from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

from taskweave.config.types import ProjectConfig, TaskConfig
from taskweave.executor import Executor, SharedState
from taskweave.executor.executor import DEFAULT_WORKER_LIMIT
from taskweave.graph import CycleError, DependencyGraph, MissingDependencyError
from taskweave.task import Task, TaskStateError, TaskStatus


def _sleeper(label: str, seconds: float):
    def work(parents):
        time.sleep(seconds)
        return label

    return work


def _graph(tasks: dict[str, tuple], edges: list[tuple[str, str]] = ()) -> DependencyGraph:
    """
    tasks: id -> (work,)
    edges: (child, parent) pairs
    """
    graph = DependencyGraph()
    for tid, (work,) in tasks.items():
        graph.add_task(Task(tid, work))
    for child, parent in edges:
        graph.add_dependency(child, parent)
    return graph


def _py(cmd: str) -> str:
    exe = str(Path(sys.executable))
    return f'"{exe}" -c "{cmd}"'


def _project(tasks: dict[str, dict]) -> ProjectConfig:
    built: dict[str, TaskConfig] = {}
    for tid, spec in tasks.items():
        built[tid] = TaskConfig(
            id=tid,
            command=spec["command"],
            deps=list(spec.get("deps", [])),
            env=dict(spec.get("env", {})),
            working_dir=spec.get("working_dir"),
        )
    return ProjectConfig(tasks=built)


def test_independent_tasks_run_in_parallel() -> None:
    graph = _graph({tid: (_sleeper(tid, 0.4),) for tid in ("a", "b", "c")})

    rr = Executor().execute(graph)

    assert sorted(task.id for task in rr.tasks) == ["a", "b", "c"]
    assert all(task.status == TaskStatus.COMPLETED for task in rr.tasks)
    assert rr.duration_s < 1.0


def test_total_time_is_bounded_by_longest_path() -> None:
    def after_a(parents):
        time.sleep(0.2)
        return f"C after {parents['A']}"

    graph = _graph(
        {
            "A": (_sleeper("A", 0.2),),
            "B": (_sleeper("B", 0.6),),
            "C": (after_a,),
        },
        [("C", "A")],
    )

    rr = Executor().execute(graph)

    assert 0.6 <= rr.duration_s < 0.95
    assert rr.results == {"A": "A", "B": "B", "C": "C after A"}
    assert rr.order == ["A", "B", "C"]


def test_chain_runs_in_order_and_passes_direct_parent_only() -> None:
    seen = SharedState({})

    def step(name: str):
        def work(parents):
            seen.modify(lambda data: {**data, name: dict(parents)})
            return f"{name}-out"

        return work

    graph = _graph(
        {"A": (step("A"),), "B": (step("B"),), "C": (step("C"),)},
        [("B", "A"), ("C", "B")],
    )

    rr = Executor().execute(graph)

    assert [task.id for task in rr.tasks] == ["A", "B", "C"]
    assert seen.read() == {"A": {}, "B": {"A": "A-out"}, "C": {"B": "B-out"}}
    a, b, c = (graph.get_task(tid) for tid in "ABC")
    assert b.started_at >= a.finished_at
    assert c.started_at >= b.finished_at
    assert rr.final_task() is c


def test_failed_parent_still_runs_child_with_none() -> None:
    def boom(parents):
        raise RuntimeError("boom")

    graph = _graph(
        {"A": (boom,), "B": (lambda parents: dict(parents),), "C": (_sleeper("C", 0),)},
        [("B", "A")],
    )

    rr = Executor().execute(graph)

    a = rr.get("A")
    assert a.status == TaskStatus.FAILED
    assert a.error.message == "boom"
    assert "RuntimeError: boom" in a.error.trace
    assert a.result is None
    assert rr.get("B").status == TaskStatus.COMPLETED
    assert rr.results["B"] == {"A": None}
    assert rr.results["A"] is None
    assert rr.get("C").status == TaskStatus.COMPLETED


def test_system_exit_in_task_body_fails_only_that_task() -> None:
    def leave(parents):
        sys.exit(3)

    graph = _graph(
        {
            "A": (leave,),
            "B": (lambda parents: dict(parents),),
            "C": (lambda parents: "C",),
        },
        [("B", "A")],
    )

    rr = Executor().execute(graph)

    a = rr.get("A")
    assert a.status == TaskStatus.FAILED
    assert a.finished_at is not None
    assert a.error.message == "3"
    assert "SystemExit" in a.error.trace
    assert rr.results == {"A": None, "B": {"A": None}, "C": "C"}
    assert rr.get("B").status == TaskStatus.COMPLETED
    assert rr.get("C").status == TaskStatus.COMPLETED


def test_failure_does_not_stop_descendants_of_other_branches() -> None:
    def fail(parents):
        raise ValueError("nope")

    graph = _graph(
        {
            "root": (lambda parents: 1,),
            "bad": (fail,),
            "good": (lambda parents: parents["root"] + 1,),
            "join": (lambda parents: parents,),
        },
        [("bad", "root"), ("good", "root"), ("join", "bad"), ("join", "good")],
    )

    rr = Executor().execute(graph)

    statuses = {task.id: task.status for task in rr.tasks}
    assert statuses == {
        "root": TaskStatus.COMPLETED,
        "bad": TaskStatus.FAILED,
        "good": TaskStatus.COMPLETED,
        "join": TaskStatus.COMPLETED,
    }
    assert rr.results["join"] == {"bad": None, "good": 2}


def test_all_children_receive_the_same_parent_value() -> None:
    payload = {"shared": [1, 2, 3]}
    received: list[object] = []
    lock = threading.Lock()

    def child(parents):
        with lock:
            received.append(parents["parent"])

    tasks = {"parent": (lambda parents: payload,)}
    tasks.update({f"child{i}": (child,) for i in range(5)})
    graph = _graph(tasks, [(f"child{i}", "parent") for i in range(5)])

    Executor().execute(graph)

    assert len(received) == 5
    assert all(value is payload for value in received)


def test_cycle_aborts_before_any_task_starts() -> None:
    calls: list[str] = []

    def record(name: str):
        return lambda parents: calls.append(name)

    graph = _graph(
        {"A": (record("A"),), "B": (record("B"),), "C": (record("C"),), "free": (record("free"),)},
        [("B", "A"), ("C", "B"), ("A", "C")],
    )

    with pytest.raises(CycleError):
        Executor().execute(graph)

    assert calls == []
    assert all(graph.get_task(tid).status == TaskStatus.PENDING for tid in graph)


def test_missing_dependency_aborts_run() -> None:
    graph = _graph({"A": (lambda parents: None,)}, [("A", "ghost")])

    with pytest.raises(MissingDependencyError):
        Executor().execute(graph)

    assert graph.get_task("A").status == TaskStatus.PENDING


def test_graph_cannot_be_run_twice() -> None:
    graph = _graph({"A": (lambda parents: 1,)})
    executor = Executor()
    executor.execute(graph)

    with pytest.raises(TaskStateError):
        executor.execute(graph)


def test_empty_graph() -> None:
    rr = Executor().execute(DependencyGraph())

    assert rr.tasks == []
    assert rr.results == {}
    assert rr.order == []
    assert rr.final_task() is None
    assert rr.duration_s >= 0


def test_single_worker_does_not_deadlock_and_runs_sequentially() -> None:
    graph = _graph(
        {
            "D": (_sleeper("D", 0.1),),
            "B": (lambda parents: parents["D"] + "B",),
            "C": (lambda parents: parents["D"] + "C",),
            "A": (lambda parents: parents["B"] + parents["C"],),
            "E": (_sleeper("E", 0.1),),
        },
        [("B", "D"), ("C", "D"), ("A", "B"), ("A", "C")],
    )

    rr = Executor(max_workers=1).execute(graph)

    assert rr.results["A"] == "DBDC"
    assert [task.id for task in rr.tasks] == rr.order
    assert rr.duration_s >= 0.2


def test_worker_cap_limits_concurrency() -> None:
    running = SharedState(0)
    peak = SharedState(0)

    def work(parents):
        current = running.modify(lambda n: n + 1)
        peak.modify(lambda p: max(p, current))
        time.sleep(0.05)
        running.modify(lambda n: n - 1)

    graph = _graph({f"t{i}": (work,) for i in range(8)})

    Executor(max_workers=2).execute(graph)

    assert peak.read() <= 2
    assert running.read() == 0


def test_default_worker_count_is_capped() -> None:
    executor = Executor()

    assert executor.worker_count(0) == 1
    assert executor.worker_count(3) == 3
    assert executor.worker_count(10_000) == DEFAULT_WORKER_LIMIT
    assert Executor(max_workers=2).worker_count(10) == 2
    assert Executor(max_workers=50).worker_count(4) == 4


@pytest.mark.parametrize("bad", [0, -1, True, 1.5, "4"])
def test_invalid_worker_count_raises(bad) -> None:
    with pytest.raises(ValueError):
        Executor(max_workers=bad)


def test_tasks_accumulate_into_shared_state() -> None:
    collected = SharedState([])

    def work_for(tid: str):
        def work(parents):
            collected.modify(lambda items: items + [tid])
            return tid

        return work

    ids = [f"t{i}" for i in range(20)]
    graph = _graph({tid: (work_for(tid),) for tid in ids})

    rr = Executor().execute(graph)

    assert sorted(collected.read()) == sorted(ids)
    assert set(rr.results) == set(ids)


def test_command_tasks_receive_parent_stdout(tmp_path: Path) -> None:
    project = _project(
        {
            "a": {"command": _py("print('hello')")},
            "b": {
                "deps": ["a"],
                "command": _py(
                    "import os, json; "
                    "print(json.loads(os.environ['TASKWEAVE_PARENTS'])['a'].strip() + '!')"
                ),
            },
        }
    )
    graph = DependencyGraph.from_project(project)

    rr = Executor().execute(graph)

    assert rr.get("b").status == TaskStatus.COMPLETED
    assert rr.results["a"].stdout.strip() == "hello"
    assert rr.results["b"].stdout.strip() == "hello!"
    assert rr.results["b"].returncode == 0


def test_failed_command_is_recorded_and_child_sees_null(tmp_path: Path) -> None:
    project = _project(
        {
            "fail": {"command": _py("raise SystemExit(5)")},
            "after": {
                "deps": ["fail"],
                "command": _py(
                    "import os, json; "
                    "print(json.loads(os.environ['TASKWEAVE_PARENTS'])['fail'] is None)"
                ),
            },
        }
    )
    graph = DependencyGraph.from_project(project)

    rr = Executor().execute(graph)

    failed = rr.get("fail")
    assert failed.status == TaskStatus.FAILED
    assert "exited with code 5" in failed.error.message
    assert rr.results["after"].stdout.strip() == "True"


def test_env_is_applied() -> None:
    project = _project(
        {
            "envtask": {
                "env": {"TW_TEST": "ok"},
                "command": _py(
                    "import os; raise SystemExit(0 if os.environ.get('TW_TEST')=='ok' else 2)"
                ),
            }
        }
    )

    rr = Executor().execute(DependencyGraph.from_project(project))

    assert rr.get("envtask").status == TaskStatus.COMPLETED


def test_working_dir_is_respected(tmp_path: Path) -> None:
    wd = tmp_path / "wd"
    wd.mkdir()
    out = wd / "written.txt"

    project = _project(
        {
            "w": {
                "working_dir": str(wd),
                "command": _py(
                    "from pathlib import Path; Path('written.txt').write_text('ok', encoding='utf-8')"
                ),
            }
        }
    )

    rr = Executor().execute(DependencyGraph.from_project(project))

    assert rr.get("w").status == TaskStatus.COMPLETED
    assert out.read_text(encoding="utf-8") == "ok"
