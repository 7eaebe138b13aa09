"""Command-line parser for the shell: tokens, command trees and redirections."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import List, NamedTuple, Union

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"
MAXARGS = 10

_WORD = re.compile("[^" + re.escape(WHITESPACE + SYMBOLS) + "]+")


class ShellSyntaxError(ValueError):
    """Raised when a command line cannot be parsed."""


class OpenMode(enum.IntFlag):
    """Flags passed to open()."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


@dataclass
class ExecCmd:
    """Run a program with arguments; argv[0] names the program."""

    argv: List[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run cmd with file descriptor fd reopened on file."""

    cmd: "Command"
    file: str
    mode: OpenMode
    fd: int


@dataclass
class PipeCmd:
    """Connect the output of left to the input of right."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run left, wait for it, then run right."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run cmd in the background."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


class Token(NamedTuple):
    """A token kind and the text it covers.

    The kind is "" at the end of input, "a" for a word, "+" for ">>",
    and the symbol itself otherwise.
    """

    kind: str
    text: str


class Tokenizer:
    """Splits a command line into words and operator symbols."""

    def __init__(self, line: str) -> None:
        # The line ends at its first NUL, as a C string would.
        self.line = line.split("\0", 1)[0]
        self.pos = 0

    @property
    def rest(self) -> str:
        return self.line[self.pos:]

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.line)

    def _skip_whitespace(self) -> None:
        while not self.at_end and self.line[self.pos] in WHITESPACE:
            self.pos += 1

    def peek(self, toks: str) -> bool:
        """Skip whitespace; tell whether the next character is one of toks."""
        self._skip_whitespace()
        return not self.at_end and self.line[self.pos] in toks

    def gettoken(self) -> Token:
        """Consume and return the next token."""
        self._skip_whitespace()
        start = self.pos
        if self.at_end:
            kind = ""
        else:
            c = self.line[self.pos]
            if c in "|();&<":
                self.pos += 1
                kind = c
            elif c == ">":
                self.pos += 1
                kind = ">"
                if self.line.startswith(">", self.pos):
                    self.pos += 1
                    kind = "+"
            else:
                match = _WORD.match(self.line, self.pos)
                self.pos = match.end()
                kind = "a"
        text = self.line[start:self.pos]
        self._skip_whitespace()
        return Token(kind, text)


def parse_command(line: str) -> Command:
    """Parse a whole command line into a command tree."""
    tokens = Tokenizer(line)
    cmd = _parse_line(tokens)
    tokens.peek("")
    if not tokens.at_end:
        raise ShellSyntaxError(f"leftovers: {tokens.rest}")
    return cmd


def _parse_line(tokens: Tokenizer) -> Command:
    cmd = _parse_pipe(tokens)
    while tokens.peek("&"):
        tokens.gettoken()
        cmd = BackCmd(cmd)
    if tokens.peek(";"):
        tokens.gettoken()
        cmd = ListCmd(cmd, _parse_line(tokens))
    return cmd


def _parse_pipe(tokens: Tokenizer) -> Command:
    cmd = _parse_exec(tokens)
    if tokens.peek("|"):
        tokens.gettoken()
        cmd = PipeCmd(cmd, _parse_pipe(tokens))
    return cmd


def _parse_redirs(cmd: Command, tokens: Tokenizer) -> Command:
    while tokens.peek("<>"):
        op = tokens.gettoken().kind
        target = tokens.gettoken()
        if target.kind != "a":
            raise ShellSyntaxError("missing file for redirection")
        if op == "<":
            cmd = RedirCmd(cmd, target.text, OpenMode.RDONLY, 0)
        else:  # ">" and ">>" both truncate-free create-or-write
            cmd = RedirCmd(cmd, target.text, OpenMode.WRONLY | OpenMode.CREATE, 1)
    return cmd


def _parse_block(tokens: Tokenizer) -> Command:
    if not tokens.peek("("):
        raise ShellSyntaxError("parseblock")
    tokens.gettoken()
    cmd = _parse_line(tokens)
    if not tokens.peek(")"):
        raise ShellSyntaxError("syntax - missing )")
    tokens.gettoken()
    return _parse_redirs(cmd, tokens)


def _parse_exec(tokens: Tokenizer) -> Command:
    if tokens.peek("("):
        return _parse_block(tokens)

    exec_cmd = ExecCmd()
    cmd = _parse_redirs(exec_cmd, tokens)
    while not tokens.peek("|)&;"):
        token = tokens.gettoken()
        if token.kind == "":
            break
        if token.kind != "a":
            raise ShellSyntaxError("syntax")
        exec_cmd.argv.append(token.text)
        if len(exec_cmd.argv) >= MAXARGS:
            raise ShellSyntaxError("too many args")
        cmd = _parse_redirs(cmd, tokens)
    return cmd