"""ELF executable header and program header records."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, List

ELF_MAGIC = 0x464C457F

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4

_HEADER = struct.Struct("<I12sHHIIIIIHHHHHH")
_PROGRAM = struct.Struct("<8I")


class ElfError(ValueError):
    """Raised for malformed or truncated ELF data."""


@dataclass
class ElfHeader:
    """ELF file header."""

    magic: int = ELF_MAGIC
    ident: bytes = bytes(12)
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = _HEADER.size
    phentsize: int = _PROGRAM.size
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    SIZE: ClassVar[int] = _HEADER.size

    def __post_init__(self) -> None:
        if len(self.ident) != 12:
            raise ElfError("ident must be 12 bytes")

    @classmethod
    def parse(cls, data: bytes) -> "ElfHeader":
        if len(data) < cls.SIZE:
            raise ElfError("truncated ELF header")
        header = cls(*_HEADER.unpack_from(data))
        if header.magic != ELF_MAGIC:
            raise ElfError(f"bad ELF magic {header.magic:#x}")
        return header

    def pack(self) -> bytes:
        return _HEADER.pack(
            self.magic,
            self.ident,
            self.type,
            self.machine,
            self.version,
            self.entry,
            self.phoff,
            self.shoff,
            self.flags,
            self.ehsize,
            self.phentsize,
            self.phnum,
            self.shentsize,
            self.shnum,
            self.shstrndx,
        )


@dataclass
class ProgramHeader:
    """ELF program section header."""

    type: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 0

    SIZE: ClassVar[int] = _PROGRAM.size

    @property
    def is_load(self) -> bool:
        return self.type == ELF_PROG_LOAD

    @property
    def executable(self) -> bool:
        return bool(self.flags & ELF_PROG_FLAG_EXEC)

    @property
    def writable(self) -> bool:
        return bool(self.flags & ELF_PROG_FLAG_WRITE)

    @property
    def readable(self) -> bool:
        return bool(self.flags & ELF_PROG_FLAG_READ)

    @classmethod
    def parse(cls, data: bytes) -> "ProgramHeader":
        if len(data) < cls.SIZE:
            raise ElfError("truncated program header")
        return cls(*_PROGRAM.unpack_from(data))

    def pack(self) -> bytes:
        return _PROGRAM.pack(
            self.type,
            self.off,
            self.vaddr,
            self.paddr,
            self.filesz,
            self.memsz,
            self.flags,
            self.align,
        )


def program_headers(data: bytes) -> List[ProgramHeader]:
    """Parse the file header of an image and return its program headers."""
    header = ElfHeader.parse(data)
    view = memoryview(data)
    offsets = (header.phoff + i * ProgramHeader.SIZE for i in range(header.phnum))
    return [ProgramHeader.parse(view[off:off + ProgramHeader.SIZE]) for off in offsets]