from __future__ import annotations

import argparse

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskweave")

    parser.add_argument(
        "--config",
        default="taskweave.yml",
        help="Path to config file",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level (defaults to $TASKWEAVE_LOG_LEVEL or WARNING)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", help="Run tasks")
    run.add_argument(
        "targets",
        nargs="*",
        help="Target task ids (their dependencies run too)",
    )
    run.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Maximum number of tasks running at the same time",
    )

    # list
    subparsers.add_parser("list", help="List tasks")

    # graph
    subparsers.add_parser("graph", help="Show dependency graph and execution order")

    return parser
