"""Formatted output understanding %d, %l, %x, %p, %s, %c and %%."""

from __future__ import annotations

import sys
from typing import Any, Iterator, TextIO

_DIGITS = "0123456789ABCDEF"
_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF


def _next(args: Iterator[Any]) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _int32(value: int) -> int:
    value &= _U32
    return value - (1 << 32) if value & 0x80000000 else value


def _printint(x: int, base: int, signed: bool) -> str:
    neg = signed and x < 0
    if neg:
        x = -x
    digits = []
    while True:
        x, r = divmod(x, base)
        digits.append(_DIGITS[r])
        if x == 0:
            break
    if neg:
        digits.append("-")
    return "".join(reversed(digits))


def _printptr(x: int) -> str:
    x &= _U64
    return "0x" + "".join(_DIGITS[(x >> shift) & 0xF] for shift in range(60, -4, -4))


def format_string(fmt: str, *args: Any) -> str:
    """Render ``fmt`` with ``args``; unknown conversions are echoed."""
    it = iter(args)
    out = []
    pending = False
    for c in fmt:
        if not pending:
            if c == "%":
                pending = True
            else:
                out.append(c)
            continue
        pending = False
        if c == "d":
            out.append(_printint(_int32(_next(it)), 10, True))
        elif c == "l":
            out.append(_printint(_next(it) & _U64, 10, False))
        elif c == "x":
            out.append(_printint(_next(it) & _U32, 16, False))
        elif c == "p":
            out.append(_printptr(_next(it)))
        elif c == "s":
            s = _next(it)
            out.append("(null)" if s is None else str(s))
        elif c == "c":
            value = _next(it)
            out.append(chr(value & 0xFF) if isinstance(value, int) else str(value)[0])
        elif c == "%":
            out.append("%")
        else:
            out.append("%" + c)
    return "".join(out)


def fprintf(stream: TextIO, fmt: str, *args: Any) -> None:
    """Write the formatted text to ``stream``."""
    stream.write(format_string(fmt, *args))


def printf(fmt: str, *args: Any) -> None:
    """Write the formatted text to standard output."""
    fprintf(sys.stdout, fmt, *args)