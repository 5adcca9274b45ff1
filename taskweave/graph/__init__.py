from .dag import DependencyGraph
from .types import CycleError, GraphError, MissingDependencyError

__all__ = ["DependencyGraph", "GraphError", "CycleError", "MissingDependencyError"]
