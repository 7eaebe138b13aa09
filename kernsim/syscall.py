"""System call numbers, argument fetching from user memory, and dispatch."""

from __future__ import annotations

import enum
import struct
import sys
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

from .mmu import MASK32

_INT = struct.Struct("<i")
_STAT = struct.Struct("<h2xiIh2xI")

# Hardware interrupt request lines, offset from Trap.IRQ0.
IRQ_TIMER = 0
IRQ_KBD = 1
IRQ_COM1 = 4
IRQ_IDE = 14
IRQ_ERROR = 19
IRQ_SPURIOUS = 31


class SysNum(enum.IntEnum):
    """System call numbers."""

    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21
    CRSP = 22


class Trap(enum.IntEnum):
    """x86 trap and interrupt vector numbers."""

    DIVIDE = 0
    DEBUG = 1
    NMI = 2
    BRKPT = 3
    OFLOW = 4
    BOUND = 5
    ILLOP = 6
    DEVICE = 7
    DBLFLT = 8
    TSS = 10
    SEGNP = 11
    STACK = 12
    GPFLT = 13
    PGFLT = 14
    FPERR = 16
    ALIGN = 17
    MCHK = 18
    SIMDERR = 19
    IRQ0 = 32
    SYSCALL = 64
    DEFAULT = 500


class FileType(enum.IntEnum):
    """Kinds of file system object."""

    DIR = 1
    FILE = 2
    DEV = 3


@dataclass
class Stat:
    """File status as returned by fstat."""

    type: int = 0
    dev: int = 0
    ino: int = 0
    nlink: int = 0
    size: int = 0

    def pack(self) -> bytes:
        """The record as laid out in user memory."""
        return _STAT.pack(self.type, self.dev, self.ino, self.nlink, self.size)

    @classmethod
    def unpack(cls, data: bytes) -> "Stat":
        if len(data) < _STAT.size:
            raise ValueError("truncated stat record")
        return cls(*_STAT.unpack_from(data))


class ProcState(enum.IntEnum):
    """Lifecycle states of a process."""

    UNUSED = 0
    EMBRYO = 1
    SLEEPING = 2
    RUNNABLE = 3
    RUNNING = 4
    ZOMBIE = 5


class ProcessMemory:
    """A process's user memory, from address 0 up to its size."""

    def __init__(self, data: Union[bytes, bytearray] = b"") -> None:
        self.data = bytearray(data)

    @property
    def sz(self) -> int:
        return len(self.data)

    def fetchint(self, addr: int) -> int:
        """The signed 32-bit integer at addr."""
        addr &= MASK32
        if addr >= self.sz or addr + 4 > self.sz:
            raise ValueError(f"fetchint: address {addr:#x} outside process")
        return _INT.unpack_from(self.data, addr)[0]

    def fetchstr(self, addr: int) -> bytes:
        """The NUL-terminated string at addr, without its terminator."""
        addr &= MASK32
        if addr >= self.sz:
            raise ValueError(f"fetchstr: address {addr:#x} outside process")
        end = self.data.find(b"\0", addr)
        if end < 0:
            raise ValueError(f"fetchstr: string at {addr:#x} is not terminated")
        return bytes(self.data[addr:end])

    def argint(self, esp: int, n: int) -> int:
        """The nth 32-bit argument of a call whose user stack pointer is esp."""
        return self.fetchint(esp + 4 + 4 * n)

    def argptr(self, esp: int, n: int, size: int) -> int:
        """The nth argument as the address of size bytes inside the process."""
        addr = self.argint(esp, n) & MASK32
        if size < 0 or addr >= self.sz or addr + size > self.sz:
            raise ValueError(f"argptr: block at {addr:#x} of {size} bytes outside process")
        return addr

    def argstr(self, esp: int, n: int) -> bytes:
        """The nth argument as a NUL-terminated string."""
        return self.fetchstr(self.argint(esp, n))


Handler = Callable[[], int]


class SyscallTable:
    """Maps system call numbers to their handlers."""

    def __init__(self, console: Optional[Callable[[str], object]] = None) -> None:
        self._handlers: Dict[int, Handler] = {}
        self._console = console if console is not None else sys.stdout.write

    def register(self, num: int, handler: Handler) -> None:
        """Install handler for call number num."""
        if num not in SysNum.__members__.values():
            raise ValueError(f"no system call numbered {num}")
        self._handlers[int(num)] = handler

    def dispatch(self, num: int, pid: int, name: str) -> int:
        """Run the handler for num; report and return -1 if there is none."""
        handler = self._handlers.get(num)
        if handler is None:
            self._console(f"{pid} {name}: unknown sys call {num}\n")
            return -1
        return handler()


def format_process_table(procs: Iterable[Tuple[str, int, int]]) -> str:
    """Render (name, pid, state) rows, skipping slots with pid 0."""
    lines = ["name\tpid\tstate \n", "----------------------- \n"]
    lines.extend(
        f"{name}\t{pid}\t{ProcState(state).name} \n"
        for name, pid, state in procs
        if pid
    )
    return "".join(lines)