from __future__ import annotations

import argparse
import sys

from taskweave.config import ConfigError, load_project
from taskweave.executor import Executor, RunResult
from taskweave.graph import DependencyGraph, GraphError
from taskweave.log import configure_logging
from taskweave.task import TaskStatus

from .args import build_parser


def main() -> None:
    sys.exit(run_cli())


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        configure_logging(args.log_level)

        match args.command:
            case "run":
                return cmd_run(args)
            case "list":
                return cmd_list(args)
            case "graph":
                return cmd_graph(args)
            case _:
                return 2

    except (ConfigError, GraphError, KeyError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def cmd_run(args: argparse.Namespace) -> int:
    rr = _run_with(args)
    _print_result(rr)
    return 1 if any(task.status == TaskStatus.FAILED for task in rr.tasks) else 0


def cmd_list(args: argparse.Namespace) -> int:
    project = load_project(args.config)
    for tid in project.tasks_ids():
        print(tid)
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    project = load_project(args.config)
    graph = DependencyGraph.from_project(project)
    print(graph.visualize(), end="")
    return 0


def _run_with(args: argparse.Namespace) -> RunResult:
    project = load_project(args.config)
    graph = DependencyGraph.from_project(project)
    targets: list[str] = args.targets

    if targets:
        graph = graph.subgraph(targets)

    workers = args.workers or project.workers
    return Executor(max_workers=workers).execute(graph)


def _print_result(rr: RunResult) -> None:
    for task in rr.tasks:
        if task.status == TaskStatus.COMPLETED:
            print(f"OK {task.id}, {task.execution_time:.3f}s")
        else:
            print(f"FAIL {task.id}, {task.execution_time:.3f}s: {task.error.message}")
    print(f"Total: {rr.duration_s:.3f}s")
