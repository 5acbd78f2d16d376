"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable

_SPACE = frozenset(b" \r\t\n\v\0")
_CHUNK = 512


@dataclass(frozen=True)
class Counts:
    """Line, word and byte totals."""

    lines: int = 0
    words: int = 0
    chars: int = 0


def _tally(chunks: Iterable[bytes]) -> Counts:
    lines = words = chars = 0
    inword = False
    for chunk in chunks:
        chars += len(chunk)
        lines += chunk.count(b"\n")
        for b in chunk:
            if b in _SPACE:
                inword = False
            elif not inword:
                words += 1
                inword = True
    return Counts(lines, words, chars)


def count(data: bytes | str) -> Counts:
    """Count the lines, words and bytes of ``data``."""
    if isinstance(data, str):
        data = data.encode()
    return _tally([bytes(data)])


def main(argv: list[str] | None = None) -> int:
    """Command entry point; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        stdin = sys.stdin.buffer
        c = _tally(iter(lambda: stdin.read(_CHUNK), b""))
        sys.stdout.write(f"{c.lines} {c.words} {c.chars} \n")
        return 0
    for name in args:
        try:
            f = open(name, "rb")
        except OSError:
            sys.stdout.write(f"wc: cannot open {name}\n")
            return 1
        with f:
            try:
                c = _tally(iter(lambda: f.read(_CHUNK), b""))
            except OSError:
                sys.stdout.write("wc: read error\n")
                return 1
        sys.stdout.write(f"{c.lines} {c.words} {c.chars} {name}\n")
    return 0