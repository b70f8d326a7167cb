"""Per-connection HTTP/2 stream records and request-path decoding."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Iterator

_HEX_DIGITS = frozenset(string.hexdigits.encode("ascii"))


def _as_byte(c) -> int:
    if isinstance(c, int):
        return c
    if isinstance(c, (bytes, bytearray)):
        if len(c) != 1:
            raise ValueError(f"expected a single byte, got {c!r}")
        return c[0]
    if isinstance(c, str):
        if len(c) != 1:
            raise ValueError(f"expected a single character, got {c!r}")
        return ord(c)
    raise TypeError(f"expected a character or byte value, got {type(c).__name__}")


def hex_to_uint(c) -> int:
    """Return the value of the hex digit ``c``, or 0 if it is not one."""
    code = _as_byte(c)
    if ord("0") <= code <= ord("9"):
        return code - ord("0")
    if ord("A") <= code <= ord("F"):
        return code - ord("A") + 10
    if ord("a") <= code <= ord("f"):
        return code - ord("a") + 10
    return 0


def _decode_bytes(raw: bytes) -> bytes:
    if len(raw) <= 3:
        return raw
    out = bytearray()
    i = 0
    end = len(raw) - 2
    while i < end:
        if raw[i] != ord("%") or raw[i + 1] not in _HEX_DIGITS or raw[i + 2] not in _HEX_DIGITS:
            out.append(raw[i])
            i += 1
            continue
        out.append((hex_to_uint(raw[i + 1]) << 4) + hex_to_uint(raw[i + 2]))
        i += 3
    out += raw[i:]
    return bytes(out)


def percent_decode(value):
    """Decode ``%XX`` escapes in ``value``; values of 3 or fewer units are returned as is.

    Accepts ``str`` or ``bytes`` and returns the same type.
    """
    if isinstance(value, (bytes, bytearray)):
        return _decode_bytes(bytes(value))
    if isinstance(value, str):
        if len(value) <= 3:
            return value
        decoded = _decode_bytes(value.encode("utf-8", errors="surrogateescape"))
        return decoded.decode("utf-8", errors="surrogateescape")
    raise TypeError(f"expected str or bytes, got {type(value).__name__}")


@dataclass
class StreamData:
    """State kept for one stream of a connection."""

    request_path: str
    stream_id: int
    fd: int


class StreamTable:
    """The streams open on one connection, in creation order."""

    def __init__(self):
        self._streams: list[StreamData] = []

    def __len__(self) -> int:
        return len(self._streams)

    def __iter__(self) -> Iterator[StreamData]:
        return iter(self._streams)

    def __contains__(self, stream_id) -> bool:
        return self.contains(stream_id)

    def create(self, stream_id, fd) -> StreamData:
        """Add a stream with an empty request path and return it."""
        stream = StreamData("", stream_id, fd)
        self._streams.append(stream)
        return stream

    def contains(self, stream_id) -> bool:
        """Whether a stream with ``stream_id`` exists."""
        return any(s.stream_id == stream_id for s in self._streams)

    def delete(self, stream_id) -> None:
        """Remove every stream with ``stream_id``."""
        self._streams = [s for s in self._streams if s.stream_id != stream_id]

    def get(self, stream_id) -> StreamData:
        """Return the first stream with ``stream_id``; raise KeyError if absent."""
        for stream in self._streams:
            if stream.stream_id == stream_id:
                return stream
        raise KeyError(stream_id)