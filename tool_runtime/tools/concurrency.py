from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from tool_runtime.tools.errors import ToolCancelled
from tool_runtime.tools.sandbox import normalize_path


class CancellationToken:
    """Cooperative cancellation signal shared by a dispatch and its collaborators."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str = "tool call") -> None:
        if self._event.is_set():
            raise ToolCancelled(f"Cancelled: {operation}")


class _PathLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class PathLockArena:
    """Per-path mutexes serializing read-modify-write cycles on one file.

    An entry lives only while some caller holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _PathLock] = {}

    @contextmanager
    def hold(self, path: str) -> Iterator[None]:
        key = normalize_path(path)
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _PathLock()
                self._locks[key] = entry
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
