"""Reader for the string-only subset of the RDB snapshot format."""

from __future__ import annotations

import os
from typing import Optional, Union

from .models import RdbEntry

Buffer = Union[bytes, bytearray, memoryview]

_HEADER = b"REDIS0011"


class RdbError(ValueError):
    """The snapshot is malformed or uses an unsupported encoding."""


def _require(buf: Buffer, size: int) -> None:
    if len(buf) < size:
        raise RdbError("Buffer too short")


def decode_length(buf: Buffer) -> tuple[int, int]:
    """Decode a length prefix; return ``(length, bytes_consumed)``."""
    _require(buf, 1)
    first = buf[0]
    flag = first >> 6
    if flag == 0b00:
        return first & 0x3F, 1
    if flag == 0b01:
        _require(buf, 2)
        return ((first & 0x3F) << 8) | buf[1], 2
    if flag == 0b10:
        _require(buf, 5)
        return int.from_bytes(bytes(buf[1:5]), "big"), 5
    raise RdbError("Unsupported length encoding")


def decode_string(buf: Buffer) -> tuple[str, int]:
    """Decode a string or integer-encoded string; return ``(text, bytes_consumed)``."""
    _require(buf, 1)
    first = buf[0]
    if first >> 6 != 0b11:
        length, used = decode_length(buf)
        total = used + length
        _require(buf, total)
        return bytes(buf[used:total]).decode("utf-8", errors="replace"), total
    widths = {0xC0: 1, 0xC1: 2, 0xC2: 4}
    width = widths.get(first)
    if width is None:
        raise RdbError(f"Unsupported special string format: {first:02X}")
    _require(buf, width + 1)
    value = int.from_bytes(bytes(buf[1 : width + 1]), "little", signed=True)
    return str(value), width + 1


def parse_rdb(data: Buffer) -> dict[str, RdbEntry]:
    """Parse a whole snapshot into its string keys."""
    data = bytes(data)
    if len(data) < 10 or data[:9] != _HEADER:
        raise RdbError("Invalid RDB file header")

    view = memoryview(data)
    pos = len(_HEADER)
    result: dict[str, RdbEntry] = {}
    expiry_ms: Optional[int] = None

    while pos < len(view):
        opcode = view[pos]
        if opcode == 0xFA:
            pos += 1
            _, used = decode_string(view[pos:])
            pos += used
            _, used = decode_string(view[pos:])
            pos += used
        elif opcode == 0xFE:
            pos += 1
            _, used = decode_length(view[pos:])
            pos += used
        elif opcode == 0xFB:
            pos += 1
            _, used = decode_length(view[pos:])
            pos += used
            _, used = decode_length(view[pos:])
            pos += used
        elif opcode == 0xFD:
            if pos + 5 > len(view):
                raise RdbError("Invalid RDB: file ends during FD expiry")
            expiry_ms = int.from_bytes(view[pos + 1 : pos + 5], "little") * 1000
            pos += 5
        elif opcode == 0xFC:
            if pos + 9 > len(view):
                raise RdbError("Invalid RDB: file ends during FC expiry")
            expiry_ms = int.from_bytes(view[pos + 1 : pos + 9], "little")
            pos += 9
        elif opcode == 0x00:
            pos += 1
            key, used = decode_string(view[pos:])
            pos += used
            value, used = decode_string(view[pos:])
            pos += used
            result[key] = RdbEntry(value, expiry_ms)
            expiry_ms = None
        elif opcode == 0xFF:
            break
        else:
            raise RdbError(f"Unknown RDB section type: 0x{opcode:02X}")
    return result


def load_db_from_rdb(path: Union[str, os.PathLike]) -> dict[str, RdbEntry]:
    """Load a snapshot file; a file that cannot be opened yields no keys."""
    try:
        handle = open(path, "rb")
    except OSError:
        return {}
    with handle:
        try:
            data = handle.read()
        except OSError as exc:
            raise RdbError("Failed to read RDB file") from exc
    return parse_rdb(data)