"""Process exercises: fork exhaustion, parallel file stress, and a zombie."""

from __future__ import annotations

import argparse
import os
import sys
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TextIO

from xvutils.openflags import OpenFlag, to_os_flags

FORK_ATTEMPTS = 1000
DEFAULT_SLOTS = 64
_STRESS_WORKERS = 5
_STRESS_BLOCKS = 20
_STRESS_BLOCK_SIZE = 512


class ForkTestError(RuntimeError):
    """Fork or wait misbehaved while filling the process table."""


class _ProcessTable:
    """A fixed number of process slots; children exit at once."""

    def __init__(self, slots: int) -> None:
        self._slots = slots
        self._zombies: deque[int] = deque()
        self._next_pid = 2

    def fork(self) -> int:
        if len(self._zombies) >= self._slots:
            return -1
        pid = self._next_pid
        self._next_pid += 1
        self._zombies.append(pid)
        return pid

    def wait(self) -> int:
        return self._zombies.popleft() if self._zombies else -1


def forktest(limit: int = DEFAULT_SLOTS, out: TextIO | None = None) -> int:
    """Fork until a table of ``limit`` slots is full, then reap every child.

    Returns the number of successful forks.
    """
    if limit < 0:
        raise ValueError("limit must not be negative")
    out = sys.stdout if out is None else out
    table = _ProcessTable(limit)
    out.write("fork test\n")
    forks = 0
    while forks < FORK_ATTEMPTS:
        if table.fork() < 0:
            break
        forks += 1
    if forks == FORK_ATTEMPTS:
        raise ForkTestError("fork claimed to work N times!")
    for _ in range(forks):
        if table.wait() < 0:
            raise ForkTestError("wait stopped early")
    if table.wait() != -1:
        raise ForkTestError("wait got too many")
    out.write("fork test OK\n")
    return forks


def stressfs(directory: str | os.PathLike, out: TextIO | None = None) -> list[Path]:
    """Have five workers each write and read back their own file at once.

    Returns the paths of the files written, ``stressfs0`` to ``stressfs4``.
    """
    out = sys.stdout if out is None else out
    directory = Path(directory)
    lock = threading.Lock()
    data = b"a" * _STRESS_BLOCK_SIZE
    flags = to_os_flags(OpenFlag.CREATE | OpenFlag.RDWR)

    def emit(text: str) -> None:
        with lock:
            out.write(text)

    def worker(i: int) -> Path:
        emit(f"write {i}\n")
        path = directory / f"stressfs{i}"
        with os.fdopen(os.open(path, flags, 0o666), "r+b") as f:
            for _ in range(_STRESS_BLOCKS):
                f.write(data)
        emit("read\n")
        with open(path, "rb") as f:
            for _ in range(_STRESS_BLOCKS):
                f.read(_STRESS_BLOCK_SIZE)
        return path

    emit("stressfs starting\n")
    with ThreadPoolExecutor(max_workers=_STRESS_WORKERS) as pool:
        return list(pool.map(worker, range(_STRESS_WORKERS)))


def zombie(delay: float = 0.5) -> bool:
    """Start a child that exits at once while the parent sleeps ``delay``.

    Returns True if the child had finished before the parent woke.
    """
    if delay < 0:
        raise ValueError("delay must not be negative")
    exited = threading.Event()
    child = threading.Thread(target=exited.set)
    child.start()
    time.sleep(delay)
    finished = exited.is_set()
    child.join()
    return finished


def forktest_main(argv: list[str] | None = None) -> int:
    """Command entry point for the fork test."""
    parser = argparse.ArgumentParser(prog="forktest")
    parser.add_argument("slots", nargs="?", type=int, default=DEFAULT_SLOTS)
    args = parser.parse_args(argv)
    try:
        forktest(args.slots, sys.stdout)
    except (ForkTestError, ValueError) as exc:
        sys.stdout.write(f"{exc}\n")
        return 1
    return 0


def stressfs_main(argv: list[str] | None = None) -> int:
    """Command entry point for the file-system stress run."""
    parser = argparse.ArgumentParser(prog="stressfs")
    parser.add_argument("directory", nargs="?", default=".")
    args = parser.parse_args(argv)
    try:
        stressfs(args.directory, sys.stdout)
    except OSError as exc:
        sys.stderr.write(f"stressfs: {exc}\n")
        return 1
    return 0


def zombie_main(argv: list[str] | None = None) -> int:
    """Command entry point: leave a child to exit before its parent."""
    parser = argparse.ArgumentParser(prog="zombie")
    parser.add_argument("delay", nargs="?", type=float, default=0.5)
    args = parser.parse_args(argv)
    zombie(args.delay)
    return 0