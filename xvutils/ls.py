"""List files and directories."""

from __future__ import annotations

import os
import sys
from typing import TextIO

from xvutils.filestat import FileType, Stat

DIRSIZ = 14
_BUFSIZE = 512


def fmtname(path: str) -> str:
    """Last component of ``path``, blank-padded to ``DIRSIZ`` characters.

    Names of ``DIRSIZ`` characters or more are returned unchanged.
    """
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _describe(path: str) -> Stat:
    return Stat.from_os(os.stat(path))


def ls(path: str, out: TextIO) -> bool:
    """Write a listing of ``path`` to ``out``.

    A file is listed on one line as name, type, inode number and size;
    a directory is listed entry by entry, starting with ``.`` and ``..``.
    Returns False if the path could not be opened or was too long.
    """
    try:
        st = _describe(path)
    except OSError:
        sys.stderr.write(f"ls: cannot open {path}\n")
        return False

    if st.type != FileType.DIR:
        out.write(f"{fmtname(path)} {int(st.type)} {st.ino} {st.size}\n")
        return True

    if len(path) + 1 + DIRSIZ + 1 > _BUFSIZE:
        out.write("ls: path too long\n")
        return False

    try:
        names = sorted(os.listdir(path))
    except OSError:
        sys.stderr.write(f"ls: cannot open {path}\n")
        return False

    for name in (".", "..", *names):
        full = f"{path}/{name}"
        try:
            entry = _describe(full)
        except OSError:
            out.write(f"ls: cannot stat {full}\n")
            continue
        out.write(f"{fmtname(full)} {int(entry.type)} {entry.ino} {entry.size}\n")
    return True


def main(argv: list[str] | None = None) -> int:
    """Command entry point; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        ls(".", sys.stdout)
        return 0
    for path in args:
        ls(path, sys.stdout)
    return 0