from .cell import ResultCell, ResultCellError
from .executor import Executor
from .shared import SharedState
from .types import RunResult

__all__ = ["Executor", "RunResult", "ResultCell", "ResultCellError", "SharedState"]
