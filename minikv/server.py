"""Command-line entry point: option parsing, snapshot loading and the accept loop."""

from __future__ import annotations

import os
import re
import socket
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .handler import ServerContext, handle_client
from .models import Config, ServerState
from .rdb import RdbError, load_db_from_rdb
from .resp import encode_array
from .store import InMemoryDB

DEFAULT_PORT = 6379
MASTER_REPLID = "8371b4fb1155b71f4a04d3e1bc3e18c4a990aeeb"

_PORT = re.compile(r"\+?[0-9]+")


@dataclass
class ServerOptions:
    """Settings taken from the command line."""

    port: int = DEFAULT_PORT
    dir: str = "."
    dbfilename: str = "dump.rdb"
    role: str = "master"
    master_address: Optional[str] = None

    @property
    def rdb_path(self) -> Path:
        return Path(self.dir) / self.dbfilename


def _parse_port(text: str) -> int:
    if _PORT.fullmatch(text):
        number = int(text)
        if number <= 0xFFFF:
            return number
    return DEFAULT_PORT


def parse_args(argv: Sequence[str]) -> ServerOptions:
    """Build options from arguments (without the program name); unknown ones are ignored."""
    options = ServerOptions()
    args = iter(argv)
    for flag in args:
        if flag == "--port":
            value = next(args, None)
            if value is not None:
                options.port = _parse_port(value)
        elif flag == "--replicaof":
            options.role = "slave"
            value = next(args, None)
            if value is not None:
                parts = value.split()
                if len(parts) == 2:
                    options.master_address = f"{parts[0]}:{parts[1]}"
        elif flag == "--dir":
            value = next(args, None)
            if value is not None:
                options.dir = value
        elif flag == "--dbfilename":
            value = next(args, None)
            if value is not None:
                options.dbfilename = value
    return options


def load_rdb_into(db: InMemoryDB, path: Union[str, os.PathLike]) -> int:
    """Load a snapshot into ``db`` and return how many keys it held.

    Raises ``RdbError`` if the file exists but cannot be parsed.
    """
    data = load_db_from_rdb(path)
    for key, entry in data.items():
        if entry.expiry_ms is not None:
            db.set_with_absolute_expiry(key, entry.value, entry.expiry_ms)
        else:
            db.set(key, entry.value)
    return len(data)


def connect_to_master(address: str, port: int) -> bool:
    """Run the replica handshake against ``host:port``.

    Returns False if the master cannot be reached; errors after connecting are raised.
    """
    host, sep, port_text = address.rpartition(":")
    if not sep or not port_text.isdigit():
        print("Failed to connect to master.", file=sys.stderr)
        return False
    try:
        connection = socket.create_connection((host, int(port_text)))
    except OSError:
        print("Failed to connect to master.", file=sys.stderr)
        return False
    with connection:
        connection.sendall(encode_array(["PING"]).encode())
        connection.recv(1024)
        connection.sendall(encode_array(["REPLCONF", "listening-port", str(port)]).encode())
        connection.recv(1024)
        connection.sendall(encode_array(["REPLCONF", "capa", "psync2"]).encode())
        connection.recv(1024)
        connection.sendall(encode_array(["PSYNC", "?", "-1"]).encode())
    return True


def serve(options: ServerOptions) -> None:
    """Load the snapshot and serve clients forever on 127.0.0.1."""
    if options.master_address is not None:
        threading.Thread(
            target=connect_to_master,
            args=(options.master_address, options.port),
            daemon=True,
        ).start()

    context = ServerContext(
        db=InMemoryDB(),
        config=Config(dir=options.dir, dbfilename=options.dbfilename),
        state=ServerState(role=options.role, master_replid=MASTER_REPLID),
    )
    load_rdb_into(context.db, options.rdb_path)

    address = f"127.0.0.1:{options.port}"
    with socket.create_server(("127.0.0.1", options.port)) as listener:
        print(f"Listening on {address}", flush=True)
        while True:
            try:
                connection, _ = listener.accept()
            except OSError as exc:
                print(f"Connection error: {exc}", file=sys.stderr)
                continue
            threading.Thread(
                target=handle_client, args=(connection, context), daemon=True
            ).start()


def main(argv: Optional[Sequence[str]] = None) -> int:
    options = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        serve(options)
    except RdbError as exc:
        print(f"Error loading RDB file: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())