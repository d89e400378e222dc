"""
Incremental NDJSON Reading

Splits an arbitrarily fragmented byte stream into complete newline-terminated
records and decodes each record as JSON. Nothing here knows about HTTP, so the
reader can be fed synthetic fragments directly.
"""

from __future__ import annotations

import json
from typing import Any

from session_gateway.common.errors import MalformedRecordError


class NDJSONLineReader:
    """
    Incremental line splitter

    - Keeps the trailing fragment of every chunk until its newline arrives
    - Supports CRLF (\r\n)
    - Skips blank lines

    Splitting raw bytes is safe for UTF-8: 0x0A never occurs inside a multi-byte sequence.
    """

    def __init__(self) -> None:
        self._buf = b""

    def feed(self, chunk: bytes) -> list[bytes]:
        """
        Append bytes and return every line completed by this chunk, in order.
        """
        if not chunk:
            return []

        parts = (self._buf + chunk).split(b"\n")
        self._buf = parts.pop()  # Keep last incomplete line

        lines: list[bytes] = []
        for part in parts:
            line = part.rstrip(b"\r")
            if line.strip():
                lines.append(line)
        return lines

    def close(self) -> bytes:
        """Return and clear the unterminated tail"""
        tail, self._buf = self._buf, b""
        return tail


def decode_record(line: bytes) -> dict[str, Any]:
    """
    Decode one NDJSON line into a JSON object

    Raises:
        MalformedRecordError: line is not UTF-8, not JSON, or not a JSON object
    """
    try:
        record = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedRecordError(
            f"Malformed upstream record: {e}",
            details={"line": line[:200].decode("utf-8", errors="replace")},
        ) from e

    if not isinstance(record, dict):
        raise MalformedRecordError(
            f"Upstream record is not an object: {type(record).__name__}",
            details={"line": line[:200].decode("utf-8", errors="replace")},
        )
    return record
