import json
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import ConfigError, ProjectConfig, TaskConfig, UnsupportedConfigFormatError

TASK_FIELDS = frozenset({"command", "deps", "env", "working_dir"})

_Loader = Callable[[str], Any]

_FORMATS: dict[str, tuple[str, _Loader, type[Exception]]] = {
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".toml": ("TOML", tomllib.loads, tomllib.TOMLDecodeError),
    ".json": ("JSON", json.loads, json.JSONDecodeError),
}


def load_project(path: str | Path) -> ProjectConfig:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    raw_file = _parse_file(pure_path)
    return _build_project_config(raw_file)


def _parse_file(path: Path) -> Mapping[str, Any]:
    try:
        fmt, loads, decode_error = _FORMATS[path.suffix]
    except KeyError:
        raise UnsupportedConfigFormatError(
            f"Unsupported file extension: {path.suffix}\n"
            " Expected format: .yml/.yaml, .toml, .json"
        ) from None

    try:
        raw_file = loads(path.read_text(encoding="utf-8"))
    except decode_error as exc:
        raise ConfigError(f"{path}: invalid {fmt}") from exc

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: {fmt} parsed successfully but top-level value is not an object: "
            f"{type(raw_file)}"
        )

    return raw_file


def _build_project_config(raw: Mapping[str, Any]) -> ProjectConfig:
    tasks: dict[str, TaskConfig] = {}

    if "tasks" not in raw:
        raise ConfigError("Missing 'tasks' field")

    if not isinstance(raw["tasks"], Mapping):
        raise ConfigError(f"'tasks' must be a mapping, got {type(raw['tasks'])}")

    if len(raw["tasks"]) < 1:
        raise ConfigError("There must be at least one task in the config file")

    for task_id, fields in raw["tasks"].items():
        if not isinstance(fields, Mapping):
            raise ConfigError(f"{task_id} must be a mapping")

        if not isinstance(task_id, str):
            raise ConfigError(f"Task id must be a string, got {type(task_id)}")

        task_id_norm = task_id.strip()

        if len(task_id_norm) < 1:
            raise ConfigError("A task id can't be empty")

        if task_id_norm in tasks:
            raise ConfigError(f"Duplicate task id after normalization: {task_id_norm}")

        tasks[task_id_norm] = _build_task_config(task_id_norm, fields)

    for task in tasks.values():
        for dep in task.deps:
            if dep not in tasks:
                raise ConfigError(f"Task '{task.id}' has unknown dependency '{dep}'")

    return ProjectConfig(tasks=tasks, workers=_parse_workers(raw.get("workers")))


def _parse_workers(value: Any) -> int | None:
    if value is None:
        return None

    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"'workers' must be a positive integer, got {value!r}")

    return value


def _build_task_config(task_id: str, fields: Mapping[str, Any]) -> TaskConfig:
    for field in fields.keys():
        if field not in TASK_FIELDS:
            raise ConfigError(f"{task_id}: Can't process: {field}")

    if "command" not in fields:
        raise ConfigError(f"{task_id}: missing 'command'")

    if not isinstance(fields["command"], str):
        raise ConfigError(f"{task_id}: The command should be a string")

    command = fields["command"].strip()
    if len(command) < 1:
        raise ConfigError(f"{task_id}: Command missing")

    deps = _parse_deps(task_id, fields["deps"]) if "deps" in fields else []
    env = _parse_env(task_id, fields["env"]) if "env" in fields else {}
    working_dir = None
    if "working_dir" in fields:
        working_dir = _parse_working_dir(task_id, fields["working_dir"])

    return TaskConfig(task_id, command, deps, env, working_dir)


def _parse_deps(task_id: str, raw_deps: Any) -> list[str]:
    if not isinstance(raw_deps, list):
        raise ConfigError(f"{task_id}: Dependencies should be in a list.")

    deps: list[str] = []
    seen: set[str] = set()
    for item in raw_deps:
        if not isinstance(item, str):
            raise ConfigError(f"{task_id}: {item} should be a string in the dependency list")

        dep = item.strip()

        if len(dep) < 1:
            raise ConfigError(f"{task_id}: A dependency is empty")

        if dep == task_id:
            raise ConfigError(f"{task_id}: A task cannot be self dependent")

        if dep in seen:
            continue

        deps.append(dep)
        seen.add(dep)

    return deps


def _parse_env(task_id: str, raw_env: Any) -> dict[str, str]:
    if not isinstance(raw_env, Mapping):
        raise ConfigError(f"{task_id}: Env should be a mapping")

    env: dict[str, str] = {}
    for key, item in raw_env.items():
        if not isinstance(key, str):
            raise ConfigError(f"{task_id}: {key} should be a string")

        if len(key.strip()) < 1:
            raise ConfigError(f"{task_id}: A key can't be empty")

        if not isinstance(item, str):
            raise ConfigError(f"{task_id}: {item} should be a string")

        env[key.strip()] = item

    return env


def _parse_working_dir(task_id: str, raw_dir: Any) -> str:
    if not isinstance(raw_dir, str):
        raise ConfigError(f"{task_id}: The working_dir should be a string")

    if len(raw_dir.strip()) < 1:
        raise ConfigError(f"{task_id}: Please provide a string or remove this field")

    return raw_dir.strip()
