from __future__ import annotations

import json
import os
import subprocess
from collections.abc import Hashable, Mapping
from typing import Any

from .types import CommandError, CommandOutput

PARENTS_ENV_VAR = "TASKWEAVE_PARENTS"


class CommandWork:
    """Work function that runs a shell command.

    Parent outputs are handed to the command as a JSON object in
    TASKWEAVE_PARENTS, keyed by parent id.
    """

    def __init__(
        self,
        command: str,
        env: Mapping[str, str] | None = None,
        working_dir: str | None = None,
    ):
        self.command = command
        self.env = dict(env or {})
        self.working_dir = working_dir

    def __call__(self, parents: Mapping[Hashable, Any]) -> CommandOutput:
        result = subprocess.run(
            self.command,
            shell=True,
            cwd=self.working_dir or None,
            env={**os.environ, **self.env, PARENTS_ENV_VAR: _encode_parents(parents)},
            capture_output=True,
            text=True,
        )
        output = CommandOutput(result.returncode, result.stdout, result.stderr)

        if result.returncode != 0:
            raise CommandError(self.command, output)

        return output

    def __repr__(self) -> str:
        return f"CommandWork({self.command!r})"


def _encode_parents(parents: Mapping[Hashable, Any]) -> str:
    encoded: dict[str, str | None] = {}
    for parent_id, value in parents.items():
        if isinstance(value, CommandOutput):
            encoded[str(parent_id)] = value.stdout
        elif value is None:
            encoded[str(parent_id)] = None
        else:
            encoded[str(parent_id)] = str(value)
    return json.dumps(encoded)
