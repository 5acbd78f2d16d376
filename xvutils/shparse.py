"""Parsing of shell command lines into command trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from xvutils.openflags import OpenFlag

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"
MAXARGS = 10


class ShellSyntaxError(ValueError):
    """The command line could not be parsed."""

    def __init__(self, message: str, leftover: str | None = None) -> None:
        super().__init__(message)
        self.leftover = leftover


@dataclass
class ExecCmd:
    """Run a program with arguments."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run a command with one file descriptor redirected to a file."""

    cmd: "Command"
    file: str
    mode: int
    fd: int


@dataclass
class PipeCmd:
    """Feed the output of one command into another."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run one command, then another."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run a command without waiting for it."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


class Tokenizer:
    """Splits a command line into words and operator symbols."""

    def __init__(self, line: str) -> None:
        self.line = line
        self.pos = 0
        self.end = len(line)

    def _skip_space(self, s: int) -> int:
        while s < self.end and self.line[s] in WHITESPACE:
            s += 1
        return s

    def peek(self, toks: str) -> bool:
        """Skip whitespace; True if the next character is one of ``toks``."""
        self.pos = self._skip_space(self.pos)
        return self.pos < self.end and self.line[self.pos] in toks

    def next_token(self) -> tuple[str, str]:
        """Consume and return the next token as ``(kind, text)``.

        ``kind`` is the symbol itself, ``"+"`` for ``>>``, ``"a"`` for a
        word, or the empty string at the end of the line.
        """
        s = self._skip_space(self.pos)
        start = s
        if s >= self.end:
            kind = ""
        else:
            c = self.line[s]
            if c in "|();&<":
                kind = c
                s += 1
            elif c == ">":
                s += 1
                if s < self.end and self.line[s] == ">":
                    kind = "+"
                    s += 1
                else:
                    kind = ">"
            else:
                kind = "a"
                while (s < self.end and self.line[s] not in WHITESPACE
                       and self.line[s] not in SYMBOLS):
                    s += 1
        text = self.line[start:s]
        self.pos = self._skip_space(s)
        return kind, text


def _parseline(t: Tokenizer) -> Command:
    cmd = _parsepipe(t)
    while t.peek("&"):
        t.next_token()
        cmd = BackCmd(cmd)
    if t.peek(";"):
        t.next_token()
        cmd = ListCmd(cmd, _parseline(t))
    return cmd


def _parsepipe(t: Tokenizer) -> Command:
    cmd = _parseexec(t)
    if t.peek("|"):
        t.next_token()
        cmd = PipeCmd(cmd, _parsepipe(t))
    return cmd


def _parseredirs(cmd: Command, t: Tokenizer) -> Command:
    while t.peek("<>"):
        kind, _ = t.next_token()
        word_kind, word = t.next_token()
        if word_kind != "a":
            raise ShellSyntaxError("missing file for redirection")
        if kind == "<":
            cmd = RedirCmd(cmd, word, OpenFlag.RDONLY, 0)
        elif kind == ">":
            cmd = RedirCmd(cmd, word, OpenFlag.WRONLY | OpenFlag.CREATE | OpenFlag.TRUNC, 1)
        else:
            cmd = RedirCmd(cmd, word, OpenFlag.WRONLY | OpenFlag.CREATE, 1)
    return cmd


def _parseblock(t: Tokenizer) -> Command:
    if not t.peek("("):
        raise ShellSyntaxError("parseblock")
    t.next_token()
    cmd = _parseline(t)
    if not t.peek(")"):
        raise ShellSyntaxError("syntax - missing )")
    t.next_token()
    return _parseredirs(cmd, t)


def _parseexec(t: Tokenizer) -> Command:
    if t.peek("("):
        return _parseblock(t)
    node = ExecCmd()
    ret: Command = _parseredirs(node, t)
    while not t.peek("|)&;"):
        kind, word = t.next_token()
        if kind == "":
            break
        if kind != "a":
            raise ShellSyntaxError("syntax")
        node.argv.append(word)
        if len(node.argv) >= MAXARGS:
            raise ShellSyntaxError("too many args")
        ret = _parseredirs(ret, t)
    return ret


def parse_command(line: str) -> Command:
    """Parse a whole command line into a command tree."""
    t = Tokenizer(line)
    cmd = _parseline(t)
    t.peek("")
    if t.pos != t.end:
        raise ShellSyntaxError("syntax", leftover=line[t.pos:])
    return cmd