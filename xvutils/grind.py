"""Run random file-system operations over and over to shake out bugs.

Each worker keeps its own current directory inside a sandbox root, so
paths such as ``/grindir/../a`` never leave that root.
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import tempfile
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from xvutils.coreutils import cat, echo
from xvutils.openflags import OpenFlag, to_os_flags

_U64 = (1 << 64) - 1
_MODULUS = 0x7FFFFFFF
_OPERATIONS = 23
_BUF_SIZE = 999
_PROGRESS_EVERY = 500
_RDWR_CREATE = to_os_flags(OpenFlag.CREATE | OpenFlag.RDWR)


def do_rand(ctx: int) -> int:
    """Next Park-Miller value after ``ctx``, in the range [0, 0x7ffffffd].

    Computes (7^5 * x) mod (2^31 - 1) on the state moved into [1, 0x7ffffffe].
    """
    x = (ctx & _U64) % 0x7FFFFFFE + 1
    hi, lo = divmod(x, 127773)
    x = 16807 * lo - 2836 * hi
    if x < 0:
        x += _MODULUS
    return x - 1


class ParkMiller:
    """The minimal-standard pseudo-random generator."""

    def __init__(self, seed: int = 1) -> None:
        self.state = seed & _U64

    def next(self) -> int:
        """Advance the state and return it."""
        self.state = do_rand(self.state)
        return self.state


def _close(fd: int) -> None:
    if fd >= 0:
        try:
            os.close(fd)
        except OSError:
            pass


class _Tree:
    """A current directory inside a sandbox root."""

    def __init__(self, root: Path, cwd: tuple[str, ...] = ()) -> None:
        self.root = root
        self.cwd = cwd

    def _parts(self, path: str) -> tuple[str, ...]:
        parts = [] if path.startswith("/") else list(self.cwd)
        for comp in path.split("/"):
            if comp in ("", "."):
                continue
            if comp == "..":
                if parts:
                    parts.pop()
            else:
                parts.append(comp)
        return tuple(parts)

    def path(self, path: str) -> Path:
        return self.root.joinpath(*self._parts(path))

    def child(self) -> "_Tree":
        return _Tree(self.root, self.cwd)

    def chdir(self, path: str) -> bool:
        parts = self._parts(path)
        if not self.root.joinpath(*parts).is_dir():
            return False
        self.cwd = parts
        return True

    def mkdir(self, path: str) -> bool:
        if not self._parts(path):
            return False
        try:
            os.mkdir(self.path(path))
        except OSError:
            return False
        return True

    def unlink(self, path: str) -> bool:
        if path.rstrip("/").rsplit("/", 1)[-1] in (".", "..", ""):
            return False
        if not self._parts(path):
            return False
        target = self.path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                os.rmdir(target)
            else:
                os.unlink(target)
        except OSError:
            return False
        return True

    def link(self, old: str, new: str) -> bool:
        try:
            os.link(self.path(old), self.path(new))
        except OSError:
            return False
        return True

    def open(self, path: str) -> int:
        try:
            return os.open(self.path(path), _RDWR_CREATE, 0o666)
        except OSError:
            return -1


def _check_c(tree: _Tree) -> None:
    tree.unlink("c")
    fd1 = tree.open("c")
    if fd1 < 0:
        raise RuntimeError("grind: create c failed")
    try:
        try:
            written = os.write(fd1, b"x")
        except OSError:
            written = -1
        if written != 1:
            raise RuntimeError("grind: write c failed")
        try:
            size = os.fstat(fd1).st_size
        except OSError:
            raise RuntimeError("grind: fstat failed") from None
        if size != 1:
            raise RuntimeError(f"grind: fstat reports wrong size {size}")
    finally:
        _close(fd1)
    tree.unlink("c")


def _pipe_roundtrip() -> None:
    rfd, wfd = os.pipe()
    try:
        try:
            ok = os.write(wfd, b"x") == 1
        except OSError:
            ok = False
        if not ok:
            sys.stdout.write("grind: pipe write failed\n")
        try:
            ok = len(os.read(rfd, 1)) == 1
        except OSError:
            ok = False
        if not ok:
            sys.stdout.write("grind: pipe read failed\n")
    finally:
        _close(rfd)
        _close(wfd)


def _echo_pipeline() -> None:
    dst = io.BytesIO()
    cat(io.BytesIO(echo(["hi"]).encode()), dst)
    got = dst.getvalue()[:3].decode("utf-8", "replace")
    if got != "hi\n":
        raise RuntimeError(f'grind: exec pipeline failed 0 0 "{got}"')


def go(which_child: int, iterations: int, root: str | os.PathLike, rng: ParkMiller) -> Counter:
    """Perform ``iterations`` random operations under ``root``.

    Returns how many times each operation number was chosen. Raises
    RuntimeError when an operation that must succeed fails.
    """
    if iterations < 0:
        raise ValueError("iterations must not be negative")
    tree = _Tree(Path(root))
    tree.mkdir("grindir")
    if not tree.chdir("grindir"):
        raise RuntimeError("grind: chdir grindir failed")
    tree.chdir("/")

    buf = bytearray(_BUF_SIZE)
    brk = 0
    fd = -1
    counts: Counter = Counter()
    try:
        for iters in range(1, iterations + 1):
            if iters % _PROGRESS_EVERY == 0:
                sys.stdout.write("B" if which_child else "A")
                sys.stdout.flush()
            what = rng.next() % _OPERATIONS
            counts[what] += 1
            # Operations 0, 13, 14 and 18 only create and reap processes,
            # which leave no trace in the file system.
            if what == 1:
                _close(tree.open("grindir/../a"))
            elif what == 2:
                _close(tree.open("grindir/../grindir/../b"))
            elif what == 3:
                tree.unlink("grindir/../a")
            elif what == 4:
                if not tree.chdir("grindir"):
                    raise RuntimeError("grind: chdir grindir failed")
                tree.unlink("../b")
                tree.chdir("/")
            elif what == 5:
                _close(fd)
                fd = tree.open("/grindir/../a")
            elif what == 6:
                _close(fd)
                fd = tree.open("/./grindir/./../b")
            elif what == 7:
                if fd >= 0:
                    try:
                        os.write(fd, bytes(buf))
                    except OSError:
                        pass
            elif what == 8:
                if fd >= 0:
                    try:
                        data = os.read(fd, _BUF_SIZE)
                        buf[:len(data)] = data
                    except OSError:
                        pass
            elif what == 9:
                tree.mkdir("grindir/../a")
                _close(tree.open("a/../a/./a"))
                tree.unlink("a/a")
            elif what == 10:
                tree.mkdir("/../b")
                _close(tree.open("grindir/../b/b"))
                tree.unlink("b/b")
            elif what == 11:
                tree.unlink("b")
                tree.link("../grindir/./../a", "../b")
            elif what == 12:
                tree.unlink("../grindir/../a")
                tree.link(".././b", "/grindir/../a")
            elif what == 15:
                brk += 6011
            elif what == 16:
                brk = 0
            elif what == 17:
                _close(tree.child().open("a"))
                if not tree.chdir("../grindir/.."):
                    raise RuntimeError("grind: chdir failed")
            elif what == 19:
                _pipe_roundtrip()
            elif what == 20:
                child = tree.child()
                child.unlink("a")
                child.mkdir("a")
                child.chdir("a")
                child.unlink("../a")
                cfd = child.open("x")
                child.unlink("x")
                _close(cfd)
            elif what == 21:
                _check_c(tree)
            elif what == 22:
                _echo_pipeline()
    finally:
        _close(fd)
    return counts


def _round(root: Path, seed: int, iterations: int) -> list[str]:
    tree = _Tree(root)
    tree.unlink("a")
    tree.unlink("b")
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(go, 0, iterations, root, ParkMiller(seed ^ 31)),
            pool.submit(go, 1, iterations, root, ParkMiller(seed ^ 7177)),
        ]
    failures = []
    for future in futures:
        try:
            future.result()
        except RuntimeError as exc:
            failures.append(str(exc))
    return failures


def _drive(root: Path, rounds: int, iterations: int, pause: float) -> int:
    seed = 1
    done = 0
    while rounds == 0 or done < rounds:
        for message in _round(root, seed, iterations):
            sys.stdout.write(f"{message}\n")
        done += 1
        if pause > 0:
            time.sleep(pause)
        seed += 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Command entry point; returns the exit status."""
    parser = argparse.ArgumentParser(
        prog="grind", description="Run random file-system operations in parallel.")
    parser.add_argument("directory", nargs="?", help="sandbox directory (default: temporary)")
    parser.add_argument("--rounds", type=int, default=0, help="rounds to run; 0 runs forever")
    parser.add_argument("--iterations", type=int, default=100000,
                        help="operations per worker per round")
    parser.add_argument("--pause", type=float, default=2.0, help="seconds between rounds")
    args = parser.parse_args(argv)
    if args.rounds < 0 or args.iterations < 0 or args.pause < 0:
        parser.error("counts and pause must not be negative")
    if args.directory is None:
        with tempfile.TemporaryDirectory() as d:
            return _drive(Path(d), args.rounds, args.iterations, args.pause)
    return _drive(Path(args.directory), args.rounds, args.iterations, args.pause)