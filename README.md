# minikv

minikv is a small key-value server that speaks the Redis wire protocol (RESP).
It listens on 127.0.0.1 and answers a subset of Redis commands. Each client
connection is served on its own thread.

## Commands

- Strings: `SET key value [PX milliseconds]`, `GET key`, `INCR key`, `KEYS *`
- Lists: `LPUSH`, `RPUSH`, `LPOP key [count]`, `LLEN`, `LRANGE key start stop`,
  and `BLPOP key timeout`. `BLPOP` takes one key. It waits up to `timeout` seconds for a push,
  and waits forever when the timeout is `0`.
- Transactions: `MULTI`, `EXEC`, `DISCARD`. While a transaction is open, commands are queued.
  `EXEC` runs the queued `SET`, `INCR`, `LPUSH`, `RPUSH`, `LPOP`, `PING`, `ECHO`, `GET`, `LLEN`
  and `LRANGE` commands. Any other queued command gets the error
  `command not allowed in transaction` in the `EXEC` reply.
- Server: `PING`, `ECHO`, `INFO replication`, `CONFIG GET dir`, `CONFIG GET dbfilename`,
  `REPLCONF` (always answers `OK`), `PSYNC ? -1`

Error replies have the form `-ERR <message>`. An unrecognised command gets
`-ERR Unknown command`.

## Installation

```
pip install .
```

## Running

```
minikv
minikv --port 6380
minikv --dir /var/lib/minikv --dbfilename dump.rdb
minikv --port 6380 --replicaof "127.0.0.1 6379"
```

| Option | Default | Meaning |
| --- | --- | --- |
| `--port` | `6379` | TCP port to listen on, always on 127.0.0.1. A value that is not a valid port falls back to 6379. |
| `--dir` | `.` | Directory that holds the RDB file |
| `--dbfilename` | `dump.rdb` | Name of the RDB file to load at start-up |
| `--replicaof` | none | `"<host> <port>"` of a master. The server then reports the role `slave`. |

The server does not recognise other options and ignores them.

At start-up the server reads `<dir>/<dbfilename>`. It loads the string keys in the file.
It also loads their expiry times, given in seconds or in milliseconds. If the file cannot be opened, the server
starts with an empty store. If the file is malformed, the server prints
`Error loading RDB file: ...` and exits with status 1.

## Replication

A client that sends `PSYNC ? -1` receives `+FULLRESYNC <replid> 0` and an empty
RDB snapshot. After that it receives every write command that succeeds (`SET`,
`INCR`, `LPUSH`, `RPUSH`, `LPOP`, including those run by `EXEC`), encoded as a RESP array.

When the server is started with `--replicaof`, it connects to the master in the background.
It sends `PING`, `REPLCONF listening-port <port>`, `REPLCONF capa psync2` and `PSYNC ? -1`.

## Using it as a library

```python
from minikv.store import InMemoryDB, WrongTypeError
from minikv.resp import encode_array, parse_resp
from minikv.rdb import load_db_from_rdb, parse_rdb

db = InMemoryDB()
db.set("greeting", "hello")
db.get("greeting")                      # "hello"
db.incr("counter")                      # 1
db.rpush("items", ["a", "b"], None)     # 2 (the last argument is an optional Notifier)
db.lrange("items", 0, -1)               # ["a", "b"]

encode_array(["SET", "k", "v"])
# "*3\r\n$3\r\nSET\r\n$1\r\nk\r\n$1\r\nv\r\n"
parse_resp("*2\r\n$4\r\nECHO\r\n$2\r\nhi\r\n")
# ["ECHO", "hi"]

entries = load_db_from_rdb("dump.rdb")  # {key: RdbEntry(value, expiry_ms)}
```

Other pieces of the package:

- `minikv.commands`: one `handle_*` function per command. Each returns the RESP reply as a string.
- `minikv.handler`: `Session.process(args)` runs one command for a connection, including
  transactions. `handle_client(stream, context)` serves a socket.
- `minikv.server`: `parse_args`, `load_rdb_into`, `connect_to_master`, `serve` and `main`.

Exceptions:

- `WrongTypeError` is raised by an operation on a key that holds the wrong kind of value.
- `NotAnIntegerError` is raised by `incr` on a value that is not an integer.
- `minikv.rdb.RdbError` is raised for a malformed snapshot.

## What it does not do

- It never writes snapshots. RDB files are only read, and only their string keys are read.
- As a replica, it performs the handshake and then closes the connection to the master.
  It does not receive or apply the master's data or commands.
- It treats each read from a connection, of up to 1024 bytes, as one command. Pipelined
  commands and larger requests are not handled correctly.
- It has no commands for deleting keys, setting expiry on existing keys or reading TTLs.
  `SET` takes only the `PX` option.

## Tests

```
pip install ".[test]"
pytest
```