from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TaskConfig:
    id: str
    command: str
    deps: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    working_dir: str | None = None


@dataclass(frozen=True)
class ProjectConfig:
    tasks: dict[str, TaskConfig]
    workers: int | None = None

    def __iter__(self) -> Iterator[TaskConfig]:
        for task_id in self.tasks_ids():
            yield self.tasks[task_id]

    def tasks_ids(self) -> list[str]:
        return sorted(self.tasks)


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)
