"""A small Redis-compatible key-value server: RESP codec, in-memory store, RDB reader and TCP server."""

__version__ = "0.1.0"