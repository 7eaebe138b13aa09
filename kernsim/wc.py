"""Count lines, words and bytes."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Optional

BUFSIZE = 512

# NUL counts as a separator alongside the usual whitespace.
_WORD = re.compile(b"[^ \r\t\n\v\x00]+")


@dataclass(frozen=True)
class WordCount:
    """Line, word and byte totals."""

    lines: int = 0
    words: int = 0
    chars: int = 0


def count(stream: BinaryIO) -> WordCount:
    """Count lines, words and bytes in a binary stream."""
    lines = words = chars = 0
    inword = False
    for chunk in iter(lambda: stream.read(BUFSIZE), b""):
        chars += len(chunk)
        lines += chunk.count(b"\n")
        matches = list(_WORD.finditer(chunk))
        words += len(matches)
        if inword and matches and matches[0].start() == 0:
            words -= 1  # word continues from the previous chunk
        inword = bool(matches) and matches[-1].end() == len(chunk)
    return WordCount(lines, words, chars)


def format_counts(counts: WordCount, name: str) -> str:
    """Render counts the way the command prints them."""
    return f"{counts.lines} {counts.words} {counts.chars} {name}"


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Count each named file, or standard input when none is named."""
    names = sys.argv[1:] if argv is None else list(argv)
    if not names:
        try:
            counts = count(sys.stdin.buffer)
        except OSError:
            print("wc: read error")
            return 1
        print(format_counts(counts, ""))
        return 0

    for name in names:
        try:
            stream = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with stream:
            try:
                counts = count(stream)
            except OSError:
                print("wc: read error")
                return 1
        print(format_counts(counts, name))
    return 0