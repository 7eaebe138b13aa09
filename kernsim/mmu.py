"""x86 MMU definitions: paging arithmetic, memory layout and descriptors."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Dict, Tuple

MASK32 = 0xFFFFFFFF

# Kernel parameters.
NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000

# Memory layout.
EXTMEM = 0x100000
PHYSTOP = 0xE000000
DEVSPACE = 0xFE000000
KERNBASE = 0x80000000
KERNLINK = KERNBASE + EXTMEM

# Eflags and control registers.
FL_IF = 0x00000200
CR0_PE = 0x00000001
CR0_WP = 0x00010000
CR0_PG = 0x80000000
CR4_PSE = 0x00000010

# Segment selectors.
SEG_KCODE = 1
SEG_KDATA = 2
SEG_UCODE = 3
SEG_UDATA = 4
SEG_TSS = 5
NSEGS = 6

DPL_USER = 0x3

# Application segment type bits.
STA_X = 0x8
STA_W = 0x2
STA_R = 0x2

# System segment type bits.
STS_T32A = 0x9
STS_IG32 = 0xE
STS_TG32 = 0xF

# Paging.
NPDENTRIES = 1024
NPTENTRIES = 1024
PGSIZE = 4096
PTXSHIFT = 12
PDXSHIFT = 22

PTE_P = 0x001
PTE_W = 0x002
PTE_U = 0x004
PTE_PS = 0x080

SEG_NULLASM = bytes(8)


def pdx(va: int) -> int:
    """Page directory index of a virtual address."""
    return ((va & MASK32) >> PDXSHIFT) & 0x3FF


def ptx(va: int) -> int:
    """Page table index of a virtual address."""
    return ((va & MASK32) >> PTXSHIFT) & 0x3FF


def pgaddr(d: int, t: int, o: int) -> int:
    """Build a virtual address from directory index, table index and offset."""
    return ((d << PDXSHIFT) | (t << PTXSHIFT) | o) & MASK32


def pgroundup(sz: int) -> int:
    """Round a size up to a page boundary."""
    return (sz + PGSIZE - 1) & ~(PGSIZE - 1) & MASK32


def pgrounddown(a: int) -> int:
    """Round an address down to a page boundary."""
    return a & ~(PGSIZE - 1) & MASK32


def pte_addr(pte: int) -> int:
    """Physical address held in a page table entry."""
    return pte & MASK32 & ~0xFFF


def pte_flags(pte: int) -> int:
    """Flag bits of a page table entry."""
    return pte & 0xFFF


def v2p(a: int) -> int:
    """Kernel virtual address to physical address."""
    return (a - KERNBASE) & MASK32


def p2v(a: int) -> int:
    """Physical address to kernel virtual address."""
    return (a + KERNBASE) & MASK32


def _check_fields(obj: object, layout: Tuple[Tuple[str, int], ...]) -> None:
    for name, width in layout:
        value = getattr(obj, name)
        if not 0 <= value < (1 << width):
            raise ValueError(f"{name}={value} does not fit in {width} bits")


def _pack_fields(obj: object, layout: Tuple[Tuple[str, int], ...]) -> bytes:
    word = 0
    shift = 0
    for name, width in layout:
        word |= getattr(obj, name) << shift
        shift += width
    return word.to_bytes(8, "little")


def _unpack_fields(data: bytes, layout: Tuple[Tuple[str, int], ...]) -> Dict[str, int]:
    if len(data) != 8:
        raise ValueError(f"descriptor must be 8 bytes, got {len(data)}")
    word = int.from_bytes(data, "little")
    values = {}
    for name, width in layout:
        values[name] = word & ((1 << width) - 1)
        word >>= width
    return values


@dataclass
class SegmentDescriptor:
    """A GDT segment descriptor, laid out as the hardware expects."""

    lim_15_0: int = 0
    base_15_0: int = 0
    base_23_16: int = 0
    type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    lim_19_16: int = 0
    avl: int = 0
    rsv1: int = 0
    db: int = 0
    g: int = 0
    base_31_24: int = 0

    LAYOUT: ClassVar[Tuple[Tuple[str, int], ...]] = (
        ("lim_15_0", 16),
        ("base_15_0", 16),
        ("base_23_16", 8),
        ("type", 4),
        ("s", 1),
        ("dpl", 2),
        ("p", 1),
        ("lim_19_16", 4),
        ("avl", 1),
        ("rsv1", 1),
        ("db", 1),
        ("g", 1),
        ("base_31_24", 8),
    )

    def __post_init__(self) -> None:
        _check_fields(self, self.LAYOUT)

    @property
    def base(self) -> int:
        return self.base_15_0 | (self.base_23_16 << 16) | (self.base_31_24 << 24)

    @property
    def limit(self) -> int:
        raw = (self.lim_19_16 << 16) | self.lim_15_0
        return ((raw << 12) | 0xFFF) if self.g else raw

    def pack(self) -> bytes:
        return _pack_fields(self, self.LAYOUT)

    @classmethod
    def unpack(cls, data: bytes) -> "SegmentDescriptor":
        return cls(**_unpack_fields(bytes(data), cls.LAYOUT))


@dataclass
class GateDescriptor:
    """An IDT interrupt or trap gate descriptor."""

    off_15_0: int = 0
    cs: int = 0
    args: int = 0
    rsv1: int = 0
    type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    off_31_16: int = 0

    LAYOUT: ClassVar[Tuple[Tuple[str, int], ...]] = (
        ("off_15_0", 16),
        ("cs", 16),
        ("args", 5),
        ("rsv1", 3),
        ("type", 4),
        ("s", 1),
        ("dpl", 2),
        ("p", 1),
        ("off_31_16", 16),
    )

    def __post_init__(self) -> None:
        _check_fields(self, self.LAYOUT)

    @property
    def offset(self) -> int:
        return self.off_15_0 | (self.off_31_16 << 16)

    def pack(self) -> bytes:
        return _pack_fields(self, self.LAYOUT)

    @classmethod
    def unpack(cls, data: bytes) -> "GateDescriptor":
        return cls(**_unpack_fields(bytes(data), cls.LAYOUT))


def seg(type_: int, base: int, lim: int, dpl: int) -> SegmentDescriptor:
    """Normal 32-bit segment with 4 KiB granularity."""
    base &= MASK32
    lim &= MASK32
    return SegmentDescriptor(
        lim_15_0=(lim >> 12) & 0xFFFF,
        base_15_0=base & 0xFFFF,
        base_23_16=(base >> 16) & 0xFF,
        type=type_,
        s=1,
        dpl=dpl,
        p=1,
        lim_19_16=(lim >> 28) & 0xF,
        avl=0,
        rsv1=0,
        db=1,
        g=1,
        base_31_24=(base >> 24) & 0xFF,
    )


def seg16(type_: int, base: int, lim: int, dpl: int) -> SegmentDescriptor:
    """Segment with byte granularity, as used for the TSS."""
    base &= MASK32
    lim &= MASK32
    return SegmentDescriptor(
        lim_15_0=lim & 0xFFFF,
        base_15_0=base & 0xFFFF,
        base_23_16=(base >> 16) & 0xFF,
        type=type_,
        s=1,
        dpl=dpl,
        p=1,
        lim_19_16=(lim >> 16) & 0xF,
        avl=0,
        rsv1=0,
        db=1,
        g=0,
        base_31_24=(base >> 24) & 0xFF,
    )


def seg_asm(type_: int, base: int, lim: int) -> bytes:
    """Raw bytes of a boot-time segment descriptor."""
    base &= MASK32
    lim &= MASK32
    return struct.pack(
        "<HHBBBB",
        (lim >> 12) & 0xFFFF,
        base & 0xFFFF,
        (base >> 16) & 0xFF,
        0x90 | type_,
        0xC0 | ((lim >> 28) & 0xF),
        (base >> 24) & 0xFF,
    )


def setgate(istrap: bool, sel: int, off: int, dpl: int) -> GateDescriptor:
    """Build an interrupt gate (istrap false) or trap gate (istrap true)."""
    off &= MASK32
    return GateDescriptor(
        off_15_0=off & 0xFFFF,
        cs=sel,
        args=0,
        rsv1=0,
        type=STS_TG32 if istrap else STS_IG32,
        s=0,
        dpl=dpl,
        p=1,
        off_31_16=off >> 16,
    )