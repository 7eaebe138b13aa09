import io
import sys

from kernsim.wc import BUFSIZE, WordCount, count, format_counts, main


def test_count_matches_simple_invariants():
    data = b"the quick brown\nfox  jumps\tover\n\nthe lazy dog"
    result = count(io.BytesIO(data))
    assert result.chars == len(data)
    assert result.lines == data.count(b"\n")
    assert result.words == len(data.split())


def test_empty_stream():
    assert count(io.BytesIO(b"")) == WordCount(0, 0, 0)


def test_word_spanning_buffer_boundary_counts_once():
    data = b"a" * (BUFSIZE * 2 + 10)
    result = count(io.BytesIO(data))
    assert result.words == 1
    assert result.chars == len(data)


def test_boundary_whitespace_splits_words():
    data = b"a" * (BUFSIZE - 1) + b" " + b"b" * 5
    assert count(io.BytesIO(data)).words == 2


def test_nul_separates_words():
    assert count(io.BytesIO(b"ab\0cd")).words == 2


def test_format_counts():
    assert format_counts(WordCount(1, 2, 3), "f") == "1 2 3 f"


def test_main_files(tmp_path, capsys):
    first = tmp_path / "one.txt"
    second = tmp_path / "two.txt"
    first.write_bytes(b"alpha beta\n")
    second.write_bytes(b"gamma\ndelta\n")
    assert main([str(first), str(second)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        format_counts(count(io.BytesIO(first.read_bytes())), str(first)),
        format_counts(count(io.BytesIO(second.read_bytes())), str(second)),
    ]
    assert lines[0].endswith(str(first))


def test_main_cannot_open(tmp_path, capsys):
    missing = tmp_path / "missing"
    assert main([str(missing)]) == 1
    assert capsys.readouterr().out == f"wc: cannot open {missing}\n"


def test_main_stdin(monkeypatch, capsys):
    data = b"x y\nz\n"
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))
    assert main([]) == 0
    expected = format_counts(count(io.BytesIO(data)), "")
    assert capsys.readouterr().out == expected + "\n"