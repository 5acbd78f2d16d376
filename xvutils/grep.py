"""Print lines matching a simple regular expression (^ . * $)."""

from __future__ import annotations

import sys
from typing import Iterator, TextIO

_BUFSIZE = 1024


def _matchhere(re: str, text: str) -> bool:
    if not re:
        return True
    if len(re) > 1 and re[1] == "*":
        return _matchstar(re[0], re[2:], text)
    if re == "$":
        return not text
    if text and (re[0] == "." or re[0] == text[0]):
        return _matchhere(re[1:], text[1:])
    return False


def _matchstar(c: str, re: str, text: str) -> bool:
    i = 0
    while True:
        if _matchhere(re, text[i:]):
            return True
        if i < len(text) and (text[i] == c or c == "."):
            i += 1
            continue
        return False


def match(pattern: str, text: str) -> bool:
    """True if ``pattern`` matches somewhere in ``text``."""
    if pattern.startswith("^"):
        return _matchhere(pattern[1:], text)
    return any(_matchhere(pattern, text[i:]) for i in range(len(text) + 1))


def grep_lines(pattern: str, stream: TextIO) -> Iterator[str]:
    """Yield newline-terminated lines of ``stream`` that match ``pattern``.

    A final line without a newline is not reported, and reading stops
    once a single line fills the 1024-character buffer.
    """
    pending = ""
    while True:
        chunk = stream.read(_BUFSIZE - 1 - len(pending))
        if not chunk:
            break
        pending += chunk
        *lines, pending = pending.split("\n")
        for line in lines:
            if match(pattern, line):
                yield line + "\n"


def main(argv: list[str] | None = None) -> int:
    """Command entry point; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        sys.stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern, files = args[0], args[1:]
    if not files:
        sys.stdout.writelines(grep_lines(pattern, sys.stdin))
        return 0
    for name in files:
        try:
            f = open(name, encoding="utf-8", errors="replace", newline="")
        except OSError:
            sys.stdout.write(f"grep: cannot open {name}\n")
            return 1
        with f:
            sys.stdout.writelines(grep_lines(pattern, f))
    return 0