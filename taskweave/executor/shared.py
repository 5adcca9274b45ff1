from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class SharedState(Generic[T]):
    """A value guarded by a lock, for task bodies that accumulate side results.

    Pass one instance to every task closure that needs it and only change the
    value through `modify`.
    """

    def __init__(self, value: T) -> None:
        self._lock = threading.Lock()
        self._value = value

    def modify(self, modifier: Callable[[T], T]) -> T:
        with self._lock:
            self._value = modifier(self._value)
            return self._value

    def read(self) -> T:
        with self._lock:
            return self._value
