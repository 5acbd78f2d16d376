import io

import pytest

from xvutils.grep import grep_lines, main, match


@pytest.mark.parametrize(
    "pattern, text, expected",
    [
        ("abc", "xxabcxx", True),
        ("^abc", "xabc", False),
        ("^abc", "abcx", True),
        ("a.c", "abc", True),
        ("ab*c", "ac", True),
        ("ab*c", "abbbc", True),
        ("c$", "abc", True),
        ("x$", "abc", False),
        ("", "anything", True),
        (".*", "", True),
        ("q", "", False),
    ],
)
def test_match(pattern, text, expected):
    assert match(pattern, text) is expected


def test_grep_lines_selects_matches():
    stream = io.StringIO("foo\nbar\nfoobar\nbaz\n")
    assert list(grep_lines("foo", stream)) == ["foo\n", "foobar\n"]


def test_grep_lines_drops_unterminated_last_line():
    stream = io.StringIO("foo\nbar\nfoo")
    assert list(grep_lines("foo", stream)) == ["foo\n"]


def test_grep_lines_stops_on_overlong_line():
    stream = io.StringIO("a" * 2000 + "\nfoo\n")
    assert list(grep_lines("foo", stream)) == []


def test_main_usage(capsys):
    assert main([]) == 1
    assert "usage: grep pattern [file ...]" in capsys.readouterr().err


def test_main_files(tmp_path, capsys):
    f = tmp_path / "in.txt"
    f.write_text("one\ntwo\nthree\n")
    assert main(["^t", str(f)]) == 0
    assert capsys.readouterr().out == "two\nthree\n"


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "nope"
    assert main(["x", str(missing)]) == 1
    assert f"grep: cannot open {missing}" in capsys.readouterr().out