"""The in-memory keyspace: strings with expiry, and lists."""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterable
from typing import Optional

from .models import Entry
from .notifier import Notifier

WRONGTYPE_MESSAGE = "WRONGTYPE Operation against a key holding the wrong kind of value"
NOT_INTEGER_MESSAGE = "value is not an integer or out of range"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class StoreError(Exception):
    """A command could not be applied to the keyspace."""


class WrongTypeError(StoreError):
    def __init__(self) -> None:
        super().__init__(WRONGTYPE_MESSAGE)


class NotAnIntegerError(StoreError):
    def __init__(self) -> None:
        super().__init__(NOT_INTEGER_MESSAGE)


class InMemoryDB:
    """Key-value store. Not thread-safe; callers serialise access."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: dict[str, Entry] = {}
        self._clock = clock
        self._wall_clock = wall_clock

    def _live(self, key: str) -> Optional[Entry]:
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    def _live_list(self, key: str) -> Optional[list[str]]:
        entry = self._live(key)
        if entry is None:
            return None
        if not isinstance(entry.value, list):
            raise WrongTypeError()
        return entry.value

    # Strings

    def set(self, key: str, value: str) -> None:
        self._entries[key] = Entry(value)

    def set_with_expiry(self, key: str, value: str, ttl_ms: int) -> None:
        self._entries[key] = Entry(value, self._clock() + ttl_ms / 1000)

    def set_with_absolute_expiry(self, key: str, value: str, expiry_ms: int) -> None:
        now_ms = int(self._wall_clock() * 1000)
        self.set_with_expiry(key, value, max(0, expiry_ms - now_ms))

    def get(self, key: str) -> Optional[str]:
        entry = self._live(key)
        if entry is None:
            return None
        if isinstance(entry.value, list):
            raise WrongTypeError()
        return entry.value

    def keys(self) -> list[str]:
        now = self._clock()
        self._entries = {k: e for k, e in self._entries.items() if not e.is_expired(now)}
        return list(self._entries)

    def incr(self, key: str) -> int:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = Entry("0")
        elif entry.is_expired(self._clock()):
            entry.value = "0"
            entry.expires_at = None
        if isinstance(entry.value, list):
            raise WrongTypeError()
        if not _INTEGER.fullmatch(entry.value):
            raise NotAnIntegerError()
        number = int(entry.value)
        if not _I64_MIN <= number < _I64_MAX:
            raise NotAnIntegerError()
        number += 1
        entry.value = str(number)
        return number

    # Lists

    def _list_for_push(self, key: str) -> list[str]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = Entry([])
        if not isinstance(entry.value, list):
            raise WrongTypeError()
        return entry.value

    def rpush(self, key: str, elements: Iterable[str], notifier: Optional[Notifier]) -> int:
        items = self._list_for_push(key)
        items.extend(elements)
        if notifier is not None:
            notifier.notify_waiter(key)
        return len(items)

    def lpush(self, key: str, elements: Iterable[str], notifier: Optional[Notifier]) -> int:
        items = self._list_for_push(key)
        items[:0] = reversed(list(elements))
        if notifier is not None:
            notifier.notify_waiter(key)
        return len(items)

    def lpop(self, key: str) -> Optional[str]:
        items = self._live_list(key)
        if not items:
            return None
        element = items.pop(0)
        if not items:
            del self._entries[key]
        return element

    def lpop_count(self, key: str, count: int) -> list[str]:
        items = self._live_list(key)
        if items is None:
            return []
        popped = items[:count]
        del items[:count]
        if not items:
            del self._entries[key]
        return popped

    def llen(self, key: str) -> int:
        items = self._live_list(key)
        return 0 if items is None else len(items)

    def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self._live_list(key)
        if items is None:
            return []
        length = len(items)
        if start < 0:
            start += length
        if stop < 0:
            stop += length
        start = max(0, start)
        stop = max(0, stop)
        if start >= length or start > stop:
            return []
        return items[start : min(stop, length - 1) + 1]