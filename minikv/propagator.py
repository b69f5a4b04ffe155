"""Fan-out of write commands to connected replicas."""

from __future__ import annotations

import threading
from collections.abc import Callable

Sink = Callable[[str], None]


class CommandPropagator:
    """Sends each propagated command to every replica sink.

    A sink that raises ``OSError`` is treated as disconnected and dropped.
    """

    def __init__(self) -> None:
        self._replicas: list[Sink] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._replicas)

    def add_replica(self, sink: Sink) -> None:
        with self._lock:
            self._replicas.append(sink)

    def remove_replica(self, sink: Sink) -> None:
        with self._lock:
            if sink in self._replicas:
                self._replicas.remove(sink)

    def propagate(self, command: str) -> None:
        with self._lock:
            alive = []
            for sink in self._replicas:
                try:
                    sink(command)
                except OSError:
                    continue
                alive.append(sink)
            self._replicas = alive