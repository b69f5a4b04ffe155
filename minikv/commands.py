"""Handlers for individual client commands; each returns a RESP reply."""

from __future__ import annotations

import logging
import math
import queue
import re
import threading
from collections.abc import Sequence
from typing import Optional, Protocol

from .models import Config, ServerState
from .notifier import Notifier
from .propagator import CommandPropagator
from .resp import (
    encode_array,
    encode_bulk_string,
    encode_error,
    encode_integer,
    encode_null_bulk_string,
    encode_simple_string,
)
from .store import NOT_INTEGER_MESSAGE, InMemoryDB, StoreError

logger = logging.getLogger(__name__)

EMPTY_RDB = bytes.fromhex(
    "524544495330303131fa0972656469732d76657205372e322e30fa0a72656469732d62697473"
    "c040fa056374696d65c26d08bc65fa08757365642d6d656dc2283a0400fa0c616f662d707265"
    "616d626c65c001ff25343234ff33313936"
)

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"\+?[0-9]+")
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_U64_MAX = 2**64 - 1


class _Stream(Protocol):
    def sendall(self, data: bytes) -> None: ...


def _parse_signed(text: str) -> Optional[int]:
    if not _SIGNED.fullmatch(text):
        return None
    number = int(text)
    return number if _I64_MIN <= number <= _I64_MAX else None


def _parse_unsigned(text: str) -> Optional[int]:
    if not _UNSIGNED.fullmatch(text):
        return None
    number = int(text)
    return number if number <= _U64_MAX else None


def _parse_timeout(text: str) -> Optional[float]:
    if text != text.strip() or "_" in text:
        return None
    try:
        seconds = float(text)
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _arity_error(name: str) -> str:
    return encode_error(f"wrong number of arguments for '{name}' command")


def handle_ping(args: Sequence[str]) -> str:
    return encode_simple_string("PONG")


def handle_echo(args: Sequence[str]) -> str:
    if len(args) < 2:
        return _arity_error("echo")
    return encode_bulk_string(args[1])


def handle_get(args: Sequence[str], db: InMemoryDB) -> str:
    if len(args) != 2:
        return _arity_error("get")
    try:
        value = db.get(args[1])
    except StoreError as exc:
        return encode_error(str(exc))
    return encode_null_bulk_string() if value is None else encode_bulk_string(value)


def handle_config(args: Sequence[str], config: Config) -> str:
    if len(args) < 3 or args[1].upper() != "GET":
        return encode_error("Only CONFIG GET is supported")
    name = args[2]
    if name == "dir":
        return encode_array(["dir", config.dir])
    if name == "dbfilename":
        return encode_array(["dbfilename", config.dbfilename])
    return encode_error("Unknown CONFIG key")


def handle_keys(args: Sequence[str], db: InMemoryDB) -> str:
    if len(args) == 2 and args[1] == "*":
        return encode_array(db.keys())
    return encode_error("Only KEYS * is supported")


def handle_llen(args: Sequence[str], db: InMemoryDB) -> str:
    if len(args) != 2:
        return _arity_error("llen")
    try:
        return encode_integer(db.llen(args[1]))
    except StoreError as exc:
        return encode_error(str(exc))


def handle_lrange(args: Sequence[str], db: InMemoryDB) -> str:
    if len(args) != 4:
        return _arity_error("lrange")
    start = _parse_signed(args[2])
    stop = _parse_signed(args[3])
    if start is None or stop is None:
        return encode_error(NOT_INTEGER_MESSAGE)
    try:
        return encode_array(db.lrange(args[1], start, stop))
    except StoreError as exc:
        return encode_error(str(exc))


def handle_info(args: Sequence[str], state: ServerState) -> str:
    if len(args) > 1 and args[1].lower() == "replication":
        info = (
            f"role:{state.role}\r\n"
            f"master_replid:{state.master_replid}\r\n"
            f"master_repl_offset:{state.master_repl_offset}"
        )
        return encode_bulk_string(info)
    return encode_bulk_string("")


def handle_replconf(args: Sequence[str]) -> str:
    return encode_simple_string("OK")


def handle_set(args: Sequence[str], db: InMemoryDB) -> str:
    logger.debug("SET %s", list(args[1:2]))
    if len(args) < 3:
        return _arity_error("set")
    key, value = args[1], args[2]
    if len(args) >= 5 and args[3].upper() == "PX":
        ttl_ms = _parse_unsigned(args[4])
        if ttl_ms is None:
            return encode_error(NOT_INTEGER_MESSAGE)
        db.set_with_expiry(key, value, ttl_ms)
    else:
        db.set(key, value)
    return encode_simple_string("OK")


def handle_incr(args: Sequence[str], db: InMemoryDB) -> str:
    if len(args) != 2:
        return _arity_error("incr")
    try:
        return encode_integer(db.incr(args[1]))
    except StoreError as exc:
        return encode_error(str(exc))


def handle_lpush(args: Sequence[str], db: InMemoryDB, notifier: Optional[Notifier]) -> str:
    if len(args) < 3:
        return _arity_error("lpush")
    try:
        return encode_integer(db.lpush(args[1], args[2:], notifier))
    except StoreError as exc:
        return encode_error(str(exc))


def handle_rpush(args: Sequence[str], db: InMemoryDB, notifier: Optional[Notifier]) -> str:
    if len(args) < 3:
        return _arity_error("rpush")
    try:
        return encode_integer(db.rpush(args[1], args[2:], notifier))
    except StoreError as exc:
        return encode_error(str(exc))


def handle_lpop(args: Sequence[str], db: InMemoryDB) -> str:
    if not 2 <= len(args) <= 3:
        return _arity_error("lpop")
    try:
        if len(args) == 2:
            element = db.lpop(args[1])
            if element is None:
                return encode_null_bulk_string()
            return encode_bulk_string(element)
        count = _parse_unsigned(args[2])
        if count is None:
            return encode_error(NOT_INTEGER_MESSAGE)
        return encode_array(db.lpop_count(args[1], count))
    except StoreError as exc:
        return encode_error(str(exc))


def handle_blpop(
    args: Sequence[str],
    db: InMemoryDB,
    lock: threading.Lock,
    notifier: Notifier,
) -> str:
    """Pop from a list, waiting for a push if empty. A timeout of 0 waits forever."""
    if len(args) != 3:
        return _arity_error("blpop")
    key = args[1]
    timeout = _parse_timeout(args[2])
    if timeout is None:
        return encode_error("timeout is not a float or out of range")
    while True:
        with lock:
            try:
                element = db.lpop(key)
            except StoreError:
                element = None
            if element is not None:
                return encode_array([key, element])
            woken = threading.Event()
            notifier.add_waiter(key, woken)
        if timeout == 0.0:
            woken.wait()
        elif not woken.wait(timeout):
            return encode_null_bulk_string()


def handle_psync(
    args: Sequence[str],
    state: ServerState,
    stream: _Stream,
    propagator: CommandPropagator,
) -> None:
    """Answer a full resync and then stream propagated writes until the replica goes away.

    ``OSError`` from the initial handshake writes is raised to the caller.
    """
    if len(args) != 3 or args[1] != "?" or args[2] != "-1":
        stream.sendall(encode_error("PSYNC not supported").encode())
        return
    stream.sendall(encode_simple_string(f"FULLRESYNC {state.master_replid} 0").encode())
    stream.sendall(f"${len(EMPTY_RDB)}\r\n".encode())
    stream.sendall(EMPTY_RDB)

    pending: queue.Queue[str] = queue.Queue()
    sink = pending.put
    propagator.add_replica(sink)
    try:
        while True:
            command = pending.get()
            try:
                stream.sendall(command.encode())
            except OSError:
                break
    finally:
        propagator.remove_replica(sink)