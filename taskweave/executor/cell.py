from __future__ import annotations

import threading
from typing import Any


class ResultCellError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class ResultCell:
    """Single-assignment value that any number of threads can wait on."""

    def __init__(self, name: object = None) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._value: Any = None

    def publish(self, value: Any) -> None:
        with self._lock:
            if self._ready.is_set():
                raise ResultCellError(f"Result for {self.name!r} was already published")
            self._value = value
            self._ready.set()

    def wait(self) -> Any:
        self._ready.wait()
        return self._value

    @property
    def is_published(self) -> bool:
        return self._ready.is_set()
