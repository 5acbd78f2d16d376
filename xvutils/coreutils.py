"""Small file and process commands: cat, echo, kill, ln, mkdir, rm."""

from __future__ import annotations

import os
import signal
import sys
from typing import BinaryIO

from xvutils.ulib import atoi

_CHUNK = 512


def _args(argv: list[str] | None) -> list[str]:
    return sys.argv[1:] if argv is None else list(argv)


def cat(src: BinaryIO, dst: BinaryIO) -> None:
    """Copy everything from ``src`` to ``dst``."""
    for chunk in iter(lambda: src.read(_CHUNK), b""):
        written = dst.write(chunk)
        if written is not None and written != len(chunk):
            raise OSError("cat: write error")


def echo(args: list[str]) -> str:
    """The words of ``args`` joined by spaces, ended by a newline."""
    if not args:
        return ""
    return " ".join(args) + "\n"


def cat_main(argv: list[str] | None = None) -> int:
    """Concatenate files, or standard input, to standard output."""
    args = _args(argv)
    sys.stdout.flush()
    out = sys.stdout.buffer
    try:
        if not args:
            cat(sys.stdin.buffer, out)
            return 0
        for name in args:
            try:
                f = open(name, "rb")
            except OSError:
                sys.stderr.write(f"cat: cannot open {name}\n")
                return 1
            with f:
                try:
                    cat(f, out)
                except OSError as exc:
                    if "write error" in str(exc):
                        raise
                    sys.stderr.write("cat: read error\n")
                    return 1
        return 0
    except OSError:
        sys.stderr.write("cat: write error\n")
        return 1
    finally:
        out.flush()


def echo_main(argv: list[str] | None = None) -> int:
    """Print the arguments."""
    sys.stdout.write(echo(_args(argv)))
    return 0


def kill_main(argv: list[str] | None = None) -> int:
    """Kill each process id given."""
    args = _args(argv)
    if not args:
        sys.stderr.write("usage: kill pid...\n")
        return 1
    sig = getattr(signal, "SIGKILL", signal.SIGTERM)
    for arg in args:
        pid = atoi(arg)
        if pid <= 0:
            continue
        try:
            os.kill(pid, sig)
        except OSError:
            pass
    return 0


def ln_main(argv: list[str] | None = None) -> int:
    """Create a hard link ``new`` to ``old``."""
    args = _args(argv)
    if len(args) != 2:
        sys.stderr.write("Usage: ln old new\n")
        return 1
    old, new = args
    try:
        os.link(old, new)
    except OSError:
        sys.stderr.write(f"link {old} {new}: failed\n")
    return 0


def mkdir_main(argv: list[str] | None = None) -> int:
    """Create directories, stopping at the first failure."""
    args = _args(argv)
    if not args:
        sys.stderr.write("Usage: mkdir files...\n")
        return 1
    for name in args:
        try:
            os.mkdir(name)
        except OSError:
            sys.stderr.write(f"mkdir: {name} failed to create\n")
            break
    return 0


def rm_main(argv: list[str] | None = None) -> int:
    """Remove files or empty directories, stopping at the first failure."""
    args = _args(argv)
    if not args:
        sys.stderr.write("Usage: rm files...\n")
        return 1
    for name in args:
        try:
            if os.path.isdir(name) and not os.path.islink(name):
                os.rmdir(name)
            else:
                os.unlink(name)
        except OSError:
            sys.stderr.write(f"rm: {name} failed to delete\n")
            break
    return 0