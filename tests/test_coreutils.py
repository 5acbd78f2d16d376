import io
import sys

from xvutils.coreutils import (
    cat,
    cat_main,
    echo,
    echo_main,
    kill_main,
    ln_main,
    mkdir_main,
    rm_main,
)


def test_cat_copies_everything():
    data = bytes(range(256)) * 5
    dst = io.BytesIO()
    cat(io.BytesIO(data), dst)
    assert dst.getvalue() == data


def test_cat_main_concatenates(tmp_path, capsysbinary):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"first\n")
    b.write_bytes(b"second\n")
    assert cat_main([str(a), str(b)]) == 0
    assert capsysbinary.readouterr().out == b"first\nsecond\n"


def test_cat_main_stdin(monkeypatch, capsysbinary):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"piped")))
    assert cat_main([]) == 0
    assert capsysbinary.readouterr().out == b"piped"


def test_cat_main_missing(tmp_path, capsys):
    missing = tmp_path / "nope"
    assert cat_main([str(missing)]) == 1
    assert f"cat: cannot open {missing}" in capsys.readouterr().err


def test_echo():
    assert echo(["a", "b"]) == "a b\n"
    assert echo([]) == ""


def test_echo_main(capsys):
    assert echo_main(["hello", "world"]) == 0
    assert capsys.readouterr().out == "hello world\n"


def test_kill_usage(capsys):
    assert kill_main([]) == 1
    assert "usage: kill pid..." in capsys.readouterr().err


def test_kill_ignores_non_pids():
    assert kill_main(["0", "abc"]) == 0


def test_ln(tmp_path, capsys):
    old = tmp_path / "old"
    old.write_text("x")
    new = tmp_path / "new"
    assert ln_main([str(old), str(new)]) == 0
    assert new.read_text() == "x"
    assert ln_main([str(old), str(new)]) == 0
    assert f"link {old} {new}: failed" in capsys.readouterr().err
    assert ln_main([str(old)]) == 1


def test_mkdir_stops_at_failure(tmp_path, capsys):
    a = tmp_path / "a"
    b = tmp_path / "b"
    assert mkdir_main([str(a), str(a), str(b)]) == 0
    assert a.is_dir()
    assert not b.exists()
    assert f"mkdir: {a} failed to create" in capsys.readouterr().err
    assert mkdir_main([]) == 1


def test_rm(tmp_path, capsys):
    f = tmp_path / "f"
    f.write_text("x")
    d = tmp_path / "d"
    d.mkdir()
    assert rm_main([str(f), str(d)]) == 0
    assert not f.exists()
    assert not d.exists()
    missing = tmp_path / "missing"
    assert rm_main([str(missing)]) == 0
    assert f"rm: {missing} failed to delete" in capsys.readouterr().err
    assert rm_main([]) == 1