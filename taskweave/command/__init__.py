from .types import CommandError, CommandOutput
from .work import PARENTS_ENV_VAR, CommandWork

__all__ = ["CommandWork", "CommandOutput", "CommandError", "PARENTS_ENV_VAR"]
