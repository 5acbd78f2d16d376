import pytest

from xvutils.openflags import OpenFlag
from xvutils.shparse import (
    MAXARGS,
    BackCmd,
    ExecCmd,
    ListCmd,
    PipeCmd,
    RedirCmd,
    ShellSyntaxError,
    Tokenizer,
    parse_command,
)


def test_tokenizer_sequence():
    t = Tokenizer("a>>b")
    assert t.next_token() == ("a", "a")
    assert t.next_token() == ("+", ">>")
    assert t.next_token() == ("a", "b")
    assert t.next_token() == ("", "")


def test_tokenizer_symbols_and_space():
    t = Tokenizer("  ls | wc ;\n")
    kinds = [t.next_token()[0] for _ in range(5)]
    assert kinds == ["a", "|", "a", ";", ""]
    assert t.pos == t.end


def test_tokenizer_peek():
    t = Tokenizer("   |x")
    assert t.peek("|") is True
    assert t.pos == 3
    assert t.peek("&") is False
    assert t.peek("") is False


def test_simple_exec():
    assert parse_command("echo hello world\n") == ExecCmd(["echo", "hello", "world"])


def test_empty_line():
    assert parse_command("\n") == ExecCmd([])


def test_pipe_is_right_associative():
    cmd = parse_command("a | b | c")
    assert cmd == PipeCmd(ExecCmd(["a"]), PipeCmd(ExecCmd(["b"]), ExecCmd(["c"])))


def test_list_and_background():
    cmd = parse_command("a & ; b")
    assert cmd == ListCmd(BackCmd(ExecCmd(["a"])), ExecCmd(["b"]))


def test_redirections_nest_outward():
    cmd = parse_command("cat < in > out")
    inner = RedirCmd(ExecCmd(["cat"]), "in", OpenFlag.RDONLY, 0)
    expected = RedirCmd(inner, "out", OpenFlag.WRONLY | OpenFlag.CREATE | OpenFlag.TRUNC, 1)
    assert cmd == expected


def test_append_redirection():
    cmd = parse_command("echo x >> log")
    assert cmd == RedirCmd(ExecCmd(["echo", "x"]), "log", OpenFlag.WRONLY | OpenFlag.CREATE, 1)


def test_redirection_before_words():
    cmd = parse_command("> f echo hi")
    assert isinstance(cmd, RedirCmd)
    assert cmd.file == "f"
    assert cmd.cmd == ExecCmd(["echo", "hi"])


def test_word_ends_at_symbol():
    cmd = parse_command("echo hi>f")
    assert cmd.cmd == ExecCmd(["echo", "hi"])
    assert cmd.file == "f"


def test_block():
    cmd = parse_command("(a ; b) > f")
    assert cmd == RedirCmd(
        ListCmd(ExecCmd(["a"]), ExecCmd(["b"])),
        "f",
        OpenFlag.WRONLY | OpenFlag.CREATE | OpenFlag.TRUNC,
        1,
    )


def test_missing_redirection_file():
    with pytest.raises(ShellSyntaxError, match="missing file for redirection"):
        parse_command("echo >")


def test_missing_close_paren():
    with pytest.raises(ShellSyntaxError, match="missing \\)"):
        parse_command("(echo a")


def test_too_many_args():
    parse_command(" ".join(["w"] * (MAXARGS - 1)))
    with pytest.raises(ShellSyntaxError, match="too many args"):
        parse_command(" ".join(["w"] * MAXARGS))


def test_leftovers():
    with pytest.raises(ShellSyntaxError) as info:
        parse_command("echo a ) b")
    assert str(info.value) == "syntax"
    assert info.value.leftover == ") b"


def test_symbol_as_word_is_syntax_error():
    with pytest.raises(ShellSyntaxError, match="^syntax$"):
        parse_command("echo (")