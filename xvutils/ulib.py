"""Small string and input helpers."""

from __future__ import annotations

from itertools import zip_longest
from typing import IO, AnyStr


def atoi(s: str) -> int:
    """Value of the leading decimal digits of ``s``; 0 if there are none."""
    n = 0
    for ch in s:
        if not "0" <= ch <= "9":
            break
        n = n * 10 + ord(ch) - ord("0")
    return n


def _as_bytes(s: str | bytes) -> bytes:
    raw = s.encode() if isinstance(s, str) else bytes(s)
    return raw.partition(b"\0")[0]


def strcmp(p: str | bytes, q: str | bytes) -> int:
    """Compare byte-wise; negative, zero or positive like the C function."""
    for a, b in zip_longest(_as_bytes(p), _as_bytes(q), fillvalue=0):
        if a != b or a == 0:
            return a - b
    return 0


def gets(stream: IO[AnyStr], max_len: int) -> AnyStr:
    """Read one line of at most ``max_len - 1`` characters.

    Reading stops after a newline or carriage return, which is kept,
    or at end of input.
    """
    parts = []
    while len(parts) + 1 < max_len:
        c = stream.read(1)
        if not c:
            break
        parts.append(c)
        if c in ("\n", "\r", b"\n", b"\r"):
            break
    if parts:
        return parts[0][:0].join(parts)
    probe = stream.read(0)
    return probe[:0]