"""Per-connection command loop, including MULTI/EXEC transactions."""

from __future__ import annotations

import socket
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .commands import (
    handle_blpop,
    handle_config,
    handle_echo,
    handle_get,
    handle_incr,
    handle_info,
    handle_keys,
    handle_llen,
    handle_lpop,
    handle_lpush,
    handle_lrange,
    handle_ping,
    handle_psync,
    handle_replconf,
    handle_rpush,
    handle_set,
)
from .models import Config, ServerState
from .notifier import Notifier
from .propagator import CommandPropagator
from .resp import encode_array, encode_error, encode_simple_string, parse_resp
from .store import InMemoryDB


@dataclass
class ServerContext:
    """Everything shared between client connections."""

    db: InMemoryDB
    config: Config
    state: ServerState
    notifier: Notifier = field(default_factory=Notifier)
    propagator: CommandPropagator = field(default_factory=CommandPropagator)
    db_lock: threading.Lock = field(default_factory=threading.Lock)


Handler = Callable[[Sequence[str], ServerContext], str]

_READS: dict[str, Handler] = {
    "PING": lambda args, ctx: handle_ping(args),
    "ECHO": lambda args, ctx: handle_echo(args),
    "REPLCONF": lambda args, ctx: handle_replconf(args),
    "GET": lambda args, ctx: handle_get(args, ctx.db),
    "INFO": lambda args, ctx: handle_info(args, ctx.state),
    "CONFIG": lambda args, ctx: handle_config(args, ctx.config),
    "KEYS": lambda args, ctx: handle_keys(args, ctx.db),
    "LLEN": lambda args, ctx: handle_llen(args, ctx.db),
    "LRANGE": lambda args, ctx: handle_lrange(args, ctx.db),
}

_WRITES: dict[str, Handler] = {
    "SET": lambda args, ctx: handle_set(args, ctx.db),
    "INCR": lambda args, ctx: handle_incr(args, ctx.db),
    "LPUSH": lambda args, ctx: handle_lpush(args, ctx.db, ctx.notifier),
    "RPUSH": lambda args, ctx: handle_rpush(args, ctx.db, ctx.notifier),
    "LPOP": lambda args, ctx: handle_lpop(args, ctx.db),
}

_TRANSACTION_READS = frozenset({"PING", "ECHO", "GET", "LLEN", "LRANGE"})


def _is_error(response: str) -> bool:
    return response.startswith("-")


class Session:
    """Command state of one client connection."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context
        self.in_transaction = False
        self._queued: list[list[str]] = []

    def process(self, args: Sequence[str]) -> str:
        """Run one command and return its reply; successful writes are propagated."""
        if not args:
            raise ValueError("empty command")
        ctx = self.context
        name = args[0].upper()

        if name == "BLPOP":
            return handle_blpop(args, ctx.db, ctx.db_lock, ctx.notifier)
        if name == "MULTI":
            if self.in_transaction:
                return encode_error("MULTI calls can not be nested")
            self.in_transaction = True
            self._queued.clear()
            return encode_simple_string("OK")
        if name == "DISCARD":
            if not self.in_transaction:
                return encode_error("DISCARD without MULTI")
            self.in_transaction = False
            self._queued.clear()
            return encode_simple_string("OK")
        if name == "EXEC":
            return self._exec()
        if self.in_transaction:
            self._queued.append(list(args))
            return encode_simple_string("QUEUED")

        with ctx.db_lock:
            if name in _READS:
                return _READS[name](args, ctx)
            if name not in _WRITES:
                return encode_error("Unknown command")
            response = _WRITES[name](args, ctx)
        if not _is_error(response):
            ctx.propagator.propagate(encode_array(args))
        return response

    def _exec(self) -> str:
        if not self.in_transaction:
            return encode_error("EXEC without MULTI")
        self.in_transaction = False
        queued, self._queued = self._queued, []
        ctx = self.context
        parts = []
        with ctx.db_lock:
            for args in queued:
                name = args[0].upper()
                if name in _WRITES:
                    part = _WRITES[name](args, ctx)
                    if not _is_error(part):
                        ctx.propagator.propagate(encode_array(args))
                elif name in _TRANSACTION_READS:
                    part = _READS[name](args, ctx)
                else:
                    part = encode_error("command not allowed in transaction")
                parts.append(part)
        return f"*{len(parts)}\r\n" + "".join(parts)


def handle_client(stream: socket.socket, context: ServerContext) -> None:
    """Serve one connection until it closes; a PSYNC turns it into a replica feed."""
    session = Session(context)
    try:
        while True:
            try:
                data = stream.recv(1024)
            except OSError:
                return
            if not data:
                return
            args = parse_resp(data.decode("utf-8", errors="replace"))
            if not args:
                continue
            if args[0].upper() == "PSYNC":
                try:
                    handle_psync(args, context.state, stream, context.propagator)
                except OSError as exc:
                    print(f"Error during PSYNC, closing replica connection: {exc}", file=sys.stderr)
                return
            response = session.process(args)
            try:
                stream.sendall(response.encode())
            except OSError:
                return
    finally:
        stream.close()