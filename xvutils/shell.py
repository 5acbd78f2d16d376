"""An interactive command shell and the init loop that keeps it running.

Commands are looked up in a table of programs. Each program is called
with its argument vector and its standard input, output and error
streams, and returns an exit status. Pipelines run their stages one
after another, passing the output of one stage on as the input of the
next; background commands run to completion before the shell goes on.
"""

from __future__ import annotations

import io
import os
import sys
from typing import Callable, Mapping, TextIO

from xvutils import coreutils
from xvutils import grep as _grep
from xvutils import ls as _ls
from xvutils import wc as _wc
from xvutils.openflags import to_os_flags
from xvutils.shparse import (
    BackCmd,
    Command,
    ExecCmd,
    ListCmd,
    PipeCmd,
    RedirCmd,
    ShellSyntaxError,
    parse_command,
)
from xvutils.ulib import gets

Program = Callable[[list, TextIO, TextIO, TextIO], int]

_LINE_MAX = 100


class _LineSource(io.RawIOBase):
    """Raw byte reader that pulls text from a stream a line at a time."""

    def __init__(self, stream: TextIO) -> None:
        super().__init__()
        self._stream = stream
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if not self._pending:
            text = self._stream.readline()
            if not text:
                return 0
            self._pending = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        n = min(len(b), len(self._pending))
        b[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n


def _adapt(entry: Callable[[list], int]) -> Program:
    """Wrap a command entry point that uses the sys streams as a program."""

    def program(argv: list, stdin: TextIO, stdout: TextIO, stderr: TextIO) -> int:
        fake_in = io.TextIOWrapper(io.BufferedReader(_LineSource(stdin)),
                                   encoding="utf-8", errors="replace", newline="")
        raw_out = io.BytesIO()
        fake_out = io.TextIOWrapper(raw_out, encoding="utf-8", newline="",
                                    write_through=True)
        fake_err = io.StringIO()
        saved = sys.stdin, sys.stdout, sys.stderr
        sys.stdin, sys.stdout, sys.stderr = fake_in, fake_out, fake_err
        try:
            status = entry(list(argv[1:]))
        finally:
            sys.stdin, sys.stdout, sys.stderr = saved
            fake_out.flush()
            stdout.write(raw_out.getvalue().decode("utf-8", "replace"))
            stderr.write(fake_err.getvalue())
        return status

    return program


def default_programs() -> dict[str, Program]:
    """The standard table of programs the shell can run."""
    entries = {
        "cat": coreutils.cat_main,
        "echo": coreutils.echo_main,
        "grep": _grep.main,
        "kill": coreutils.kill_main,
        "ln": coreutils.ln_main,
        "ls": _ls.main,
        "mkdir": coreutils.mkdir_main,
        "rm": coreutils.rm_main,
        "sh": main,
        "wc": _wc.main,
    }
    return {name: _adapt(fn) for name, fn in entries.items()}


def _flush(stream: TextIO) -> None:
    flush = getattr(stream, "flush", None)
    if flush is not None:
        flush()


class Shell:
    """Reads command lines and runs them."""

    def __init__(self, programs: Mapping[str, Program] | None = None,
                 stdin: TextIO | None = None, stdout: TextIO | None = None,
                 stderr: TextIO | None = None) -> None:
        self.programs = dict(default_programs() if programs is None else programs)
        self.stdin = sys.stdin if stdin is None else stdin
        self.stdout = sys.stdout if stdout is None else stdout
        self.stderr = sys.stderr if stderr is None else stderr

    def _lookup(self, name: str) -> Program | None:
        prog = self.programs.get(name)
        if prog is None:
            prog = self.programs.get(name.rsplit("/", 1)[-1])
        return prog

    def run(self, cmd: Command | None) -> int:
        """Run a parsed command and return its exit status."""
        return self._run(cmd, self.stdin, self.stdout, self.stderr)

    def _run(self, cmd: Command | None, stdin: TextIO, stdout: TextIO,
             stderr: TextIO) -> int:
        if cmd is None:
            return 1
        if isinstance(cmd, ExecCmd):
            if not cmd.argv:
                return 1
            prog = self._lookup(cmd.argv[0])
            if prog is None:
                stderr.write(f"exec {cmd.argv[0]} failed\n")
                return 0
            return prog(list(cmd.argv), stdin, stdout, stderr)
        if isinstance(cmd, RedirCmd):
            try:
                fd = os.open(cmd.file, to_os_flags(cmd.mode), 0o666)
            except OSError:
                stderr.write(f"open {cmd.file} failed\n")
                return 1
            mode = "r" if cmd.fd == 0 else "w"
            with os.fdopen(fd, mode, encoding="utf-8", errors="replace", newline="") as f:
                if cmd.fd == 0:
                    return self._run(cmd.cmd, f, stdout, stderr)
                if cmd.fd == 1:
                    return self._run(cmd.cmd, stdin, f, stderr)
                return self._run(cmd.cmd, stdin, stdout, f)
        if isinstance(cmd, ListCmd):
            self._run(cmd.left, stdin, stdout, stderr)
            return self._run(cmd.right, stdin, stdout, stderr)
        if isinstance(cmd, PipeCmd):
            buffer = io.StringIO()
            self._run(cmd.left, stdin, buffer, stderr)
            buffer.seek(0)
            self._run(cmd.right, buffer, stdout, stderr)
            return 0
        if isinstance(cmd, BackCmd):
            self._run(cmd.cmd, stdin, stdout, stderr)
            return 0
        raise TypeError("runcmd")

    def execute_line(self, line: str) -> int:
        """Run one input line, handling ``cd`` in the shell itself."""
        if line.startswith("cd "):
            target = line[3:]
            if target.endswith(("\n", "\r")):
                target = target[:-1]
            try:
                os.chdir(target)
            except OSError:
                self.stderr.write(f"cannot cd {target}\n")
                return 1
            return 0
        try:
            cmd = parse_command(line)
        except ShellSyntaxError as exc:
            if exc.leftover is not None:
                self.stderr.write(f"leftovers: {exc.leftover}\n")
            self.stderr.write(f"{exc}\n")
            return 1
        status = self.run(cmd)
        _flush(self.stdout)
        return status

    def repl(self) -> int:
        """Prompt for and run lines until end of input."""
        while True:
            self.stderr.write("$ ")
            _flush(self.stderr)
            line = gets(self.stdin, _LINE_MAX)
            if not line:
                break
            self.execute_line(line)
        return 0


def main(argv: list[str] | None = None) -> int:
    """Run the shell on the standard streams."""
    return Shell(default_programs(), sys.stdin, sys.stdout, sys.stderr).repl()


def init_main(argv: list[str] | None = None) -> int:
    """Start the shell, restarting it while input is an interactive terminal."""
    while True:
        sys.stdout.write("init: starting sh\n")
        _flush(sys.stdout)
        main([])
        if not sys.stdin.isatty():
            return 0