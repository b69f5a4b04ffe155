"""Encoding and decoding of the RESP wire protocol."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


def _lines(text: str) -> Iterator[str]:
    """Yield lines split on ``\\n``, dropping one trailing ``\\r`` from each."""
    pieces = text.split("\n")
    if pieces and pieces[-1] == "":
        pieces.pop()
    for piece in pieces:
        yield piece[:-1] if piece.endswith("\r") else piece


def parse_resp(text: str) -> list[str]:
    """Extract the bulk-string arguments from a RESP request.

    Array headers are skipped; each ``$`` length line is followed by the
    argument itself. Any other line is ignored.
    """
    parts: list[str] = []
    lines = _lines(text)
    for line in lines:
        if line.startswith("*"):
            continue
        if line.startswith("$"):
            data = next(lines, None)
            if data is not None:
                parts.append(data)
    return parts


def encode_simple_string(text: str) -> str:
    return f"+{text}\r\n"


def encode_bulk_string(text: str) -> str:
    return f"${len(text.encode('utf-8'))}\r\n{text}\r\n"


def encode_null_bulk_string() -> str:
    return "$-1\r\n"


def encode_array(items: Iterable[str]) -> str:
    items = list(items)
    return f"*{len(items)}\r\n" + "".join(encode_bulk_string(item) for item in items)


def encode_error(message: str) -> str:
    return f"-ERR {message}\r\n"


def encode_integer(number: int) -> str:
    return f":{number}\r\n"