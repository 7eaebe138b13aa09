"""NUL-terminated string and memory helpers over bytes."""

from __future__ import annotations

import itertools
import re
from typing import BinaryIO, Iterator, Union

BytesLike = Union[bytes, bytearray, memoryview, str]

_DIGITS = re.compile(rb"[0-9]*")


def _as_bytes(s: BytesLike) -> bytes:
    if isinstance(s, str):
        return s.encode("latin-1")
    return bytes(s)


def _cstr(s: BytesLike) -> bytes:
    """Contents of s up to, not including, the first NUL."""
    return _as_bytes(s).split(b"\0", 1)[0]


def _chars(s: BytesLike) -> Iterator[int]:
    """Bytes of s up to the terminator, then NUL forever."""
    return itertools.chain(_cstr(s), itertools.repeat(0))


def memcmp(a: BytesLike, b: BytesLike, n: int) -> int:
    """Compare the first n bytes; return the difference of the first mismatch."""
    a, b = _as_bytes(a), _as_bytes(b)
    if n > len(a) or n > len(b):
        raise ValueError("n exceeds buffer length")
    return next((x - y for x, y in zip(a[:n], b[:n]) if x != y), 0)


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy n bytes within buf from src to dst; overlapping ranges are safe."""
    if n < 0 or min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise IndexError("memmove out of range")
    buf[dst:dst + n] = bytes(buf[src:src + n])
    return buf


def strncmp(p: BytesLike, q: BytesLike, n: int) -> int:
    """Compare at most n characters of two NUL-terminated strings."""
    for x, y in itertools.islice(zip(_chars(p), _chars(q)), max(n, 0)):
        if x != y or x == 0:
            return x - y
    return 0


def strcmp(p: BytesLike, q: BytesLike) -> int:
    """Compare two NUL-terminated strings."""
    for x, y in zip(_chars(p), _chars(q)):
        if x != y or x == 0:
            return x - y
    return 0  # unreachable: the iterators end in NULs


def strncpy(t: BytesLike, n: int) -> bytes:
    """Copy into an n-byte field, zero padding; not terminated if t is long."""
    if n <= 0:
        return b""
    return _cstr(t)[:n].ljust(n, b"\0")


def safestrcpy(t: BytesLike, n: int) -> bytes:
    """Copy at most n-1 characters and always NUL-terminate."""
    if n <= 0:
        return b""
    return _cstr(t)[:n - 1] + b"\0"


def atoi(s: BytesLike) -> int:
    """Value of the leading decimal digits of s; 0 if there are none."""
    digits = _DIGITS.match(_as_bytes(s)).group()
    return int(digits) if digits else 0


def gets(stream: BinaryIO, limit: int) -> bytes:
    """Read up to limit-1 bytes, stopping after a newline or carriage return."""
    line = bytearray()
    while len(line) + 1 < limit:
        c = stream.read(1)
        if not c:
            break
        line += c
        if c in (b"\n", b"\r"):
            break
    return bytes(line)