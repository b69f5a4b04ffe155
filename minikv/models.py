"""Plain data records shared across the server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

Value = Union[str, list]


@dataclass
class Entry:
    """A stored value with an optional monotonic-clock deadline in seconds."""

    value: Value
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass(frozen=True)
class Config:
    dir: str = "."
    dbfilename: str = "dump.rdb"


@dataclass
class ServerState:
    role: str
    master_replid: str
    master_repl_offset: int = 0


@dataclass(frozen=True)
class RdbEntry:
    """A key's value as read from a snapshot, with an absolute expiry in ms."""

    value: str
    expiry_ms: Optional[int] = None