"""Wake-up queues for clients blocked on list keys."""

from __future__ import annotations

import threading
from collections import deque
from typing import Protocol


class Waiter(Protocol):
    def set(self) -> None: ...


class Notifier:
    """Keeps, per key, a FIFO of waiters; each push wakes the oldest one."""

    def __init__(self) -> None:
        self._waiters: dict[str, deque[Waiter]] = {}
        self._lock = threading.Lock()

    def add_waiter(self, key: str, waiter: Waiter) -> None:
        with self._lock:
            self._waiters.setdefault(key, deque()).append(waiter)

    def notify_waiter(self, key: str) -> bool:
        """Wake the oldest waiter on ``key``. Returns whether one was woken."""
        with self._lock:
            queue = self._waiters.get(key)
            if queue is None:
                return False
            waiter = queue.popleft() if queue else None
            if not queue:
                del self._waiters[key]
        if waiter is None:
            return False
        waiter.set()
        return True