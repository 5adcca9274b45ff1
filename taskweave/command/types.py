from dataclasses import dataclass


@dataclass(frozen=True)
class CommandOutput:
    returncode: int
    stdout: str
    stderr: str


class CommandError(Exception):
    def __init__(self, command: str, output: CommandOutput):
        message = f"Command exited with code {output.returncode}: {command}"
        stderr = output.stderr.strip()
        if stderr:
            message += f"\n{stderr}"
        super().__init__(message)
        self.command = command
        self.output = output
