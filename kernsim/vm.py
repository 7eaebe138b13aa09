"""Two-level x86 page tables kept in a simulated physical memory."""

from __future__ import annotations

import struct
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from .mmu import (
    DEVSPACE,
    EXTMEM,
    KERNBASE,
    KERNLINK,
    MASK32,
    NPDENTRIES,
    PGSIZE,
    PHYSTOP,
    PTE_P,
    PTE_U,
    PTE_W,
    p2v,
    pdx,
    pgaddr,
    pgrounddown,
    pgroundup,
    pte_addr,
    pte_flags,
    ptx,
    v2p,
)

_ENTRY = struct.Struct("<I")


class VMError(RuntimeError):
    """Raised when a page table operation cannot be carried out."""


class KernelMapping(NamedTuple):
    """A kernel virtual range mapped onto a physical range."""

    virt: int
    phys_start: int
    phys_end: int
    perm: int


def kernel_map(data: int) -> List[KernelMapping]:
    """The kernel's mappings, given the page-aligned start of kernel data."""
    if data % PGSIZE or not KERNLINK < data < p2v(PHYSTOP):
        raise ValueError(f"kernel data address {data:#x} is not a valid page address")
    return [
        KernelMapping(KERNBASE, 0, EXTMEM, PTE_W),  # I/O space
        KernelMapping(KERNLINK, v2p(KERNLINK), v2p(data), 0),  # text and rodata
        KernelMapping(data, v2p(data), PHYSTOP, PTE_W),  # data and free memory
        KernelMapping(DEVSPACE, DEVSPACE, 0, PTE_W),  # devices
    ]


class PhysicalMemory:
    """A pool of page frames handed out by kalloc and returned by kfree."""

    def __init__(self, base: int = 0x400000, npages: int = 1024) -> None:
        if base <= 0 or base % PGSIZE:
            raise ValueError("base must be a positive multiple of the page size")
        if npages < 0 or base + npages * PGSIZE > PHYSTOP:
            raise ValueError("physical pages must lie below PHYSTOP")
        self.base = base
        self.npages = npages
        self._free: List[int] = list(range(base, base + npages * PGSIZE, PGSIZE))
        self._frames: Dict[int, bytearray] = {}

    @property
    def free_pages(self) -> int:
        return len(self._free)

    def kalloc(self) -> int:
        """Allocate one zeroed page and return its physical address."""
        if not self._free:
            raise MemoryError("out of physical pages")
        pa = self._free.pop()
        self._frames[pa] = bytearray(PGSIZE)
        return pa

    def kfree(self, pa: int) -> None:
        """Return a page obtained from kalloc."""
        if pa % PGSIZE or pa not in self._frames:
            raise VMError(f"kfree: {pa:#x} is not an allocated page")
        del self._frames[pa]
        self._free.append(pa)

    def _locate(self, pa: int) -> Tuple[bytearray, int]:
        offset = pa % PGSIZE
        frame = self._frames.get(pa - offset)
        if frame is None:
            raise VMError(f"physical address {pa:#x} is not allocated")
        return frame, offset

    def read(self, pa: int, n: int) -> bytes:
        """Read n bytes starting at physical address pa."""
        if n < 0:
            raise ValueError("negative read length")
        out = bytearray()
        while n > 0:
            frame, offset = self._locate(pa)
            chunk = min(n, PGSIZE - offset)
            out += frame[offset:offset + chunk]
            pa += chunk
            n -= chunk
        return bytes(out)

    def write(self, pa: int, data: bytes) -> None:
        """Write data starting at physical address pa."""
        view = memoryview(bytes(data))
        while view:
            frame, offset = self._locate(pa)
            chunk = min(len(view), PGSIZE - offset)
            frame[offset:offset + chunk] = view[:chunk]
            pa += chunk
            view = view[chunk:]

    def _load32(self, pa: int) -> int:
        frame, offset = self._locate(pa)
        return _ENTRY.unpack_from(frame, offset)[0]

    def _store32(self, pa: int, value: int) -> None:
        frame, offset = self._locate(pa)
        _ENTRY.pack_into(frame, offset, value & MASK32)


class AddressSpace:
    """A page directory with its page tables and user pages."""

    def __init__(self, memory: PhysicalMemory, kmap: Iterable[Tuple[int, int, int, int]] = ()) -> None:
        self.memory = memory
        self.kmap = tuple(KernelMapping(*k) for k in kmap)
        if p2v(PHYSTOP) > DEVSPACE:
            raise VMError("PHYSTOP too high")
        self._pgdir: Optional[int] = memory.kalloc()
        try:
            for k in self.kmap:
                self.map_pages(k.virt, (k.phys_end - k.phys_start) & MASK32, k.phys_start, k.perm)
        except Exception:
            self.free()
            raise

    @property
    def pgdir(self) -> int:
        """Physical address of the page directory."""
        if self._pgdir is None:
            raise VMError("freevm: no pgdir")
        return self._pgdir

    def walk(self, va: int, alloc: bool = False) -> Optional[int]:
        """Physical address of the PTE for va; None if its table is absent and alloc is false."""
        mem = self.memory
        pde_pa = self.pgdir + 4 * pdx(va)
        pde = mem._load32(pde_pa)
        if pde & PTE_P:
            pgtab = pte_addr(pde)
        else:
            if not alloc:
                return None
            pgtab = mem.kalloc()
            mem.write(pgtab, bytes(PGSIZE))
            mem._store32(pde_pa, pgtab | PTE_P | PTE_W | PTE_U)
        return pgtab + 4 * ptx(va)

    def _entry(self, va: int) -> Tuple[Optional[int], int]:
        pte = self.walk(va)
        return pte, (0 if pte is None else self.memory._load32(pte))

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map the pages covering [va, va+size) onto physical pages from pa."""
        if size <= 0:
            raise ValueError("mapping size must be positive")
        mem = self.memory
        a = pgrounddown(va)
        last = pgrounddown((va + size - 1) & MASK32)
        while True:
            pte = self.walk(a, True)
            assert pte is not None
            if mem._load32(pte) & PTE_P:
                raise VMError(f"remap of {a:#x}")
            mem._store32(pte, pa | perm | PTE_P)
            if a == last:
                break
            a = (a + PGSIZE) & MASK32
            pa = (pa + PGSIZE) & MASK32

    def init_user(self, code: bytes) -> None:
        """Place initial code, less than a page, at address 0."""
        if len(code) >= PGSIZE:
            raise VMError("inituvm: more than a page")
        mem = self.memory.kalloc()
        self.memory.write(mem, bytes(PGSIZE))
        self.map_pages(0, PGSIZE, mem, PTE_W | PTE_U)
        self.memory.write(mem, code)

    def load(self, addr: int, reader: Callable[[int, int], bytes], offset: int, sz: int) -> None:
        """Fill already mapped pages from addr with sz bytes read at offset."""
        if addr % PGSIZE:
            raise VMError("loaduvm: addr must be page aligned")
        for i in range(0, sz, PGSIZE):
            pte, entry = self._entry(addr + i)
            if pte is None:
                raise VMError("loaduvm: address should exist")
            n = min(sz - i, PGSIZE)
            chunk = reader(offset + i, n)
            if len(chunk) != n:
                raise VMError(f"loaduvm: short read at offset {offset + i}")
            self.memory.write(pte_addr(entry), chunk)

    def alloc_user(self, oldsz: int, newsz: int) -> int:
        """Grow user memory from oldsz to newsz; return the new size."""
        if newsz >= KERNBASE:
            raise VMError("allocuvm: size reaches kernel space")
        if newsz < oldsz:
            return oldsz
        a = pgroundup(oldsz)
        while a < newsz:
            try:
                mem = self.memory.kalloc()
            except MemoryError as exc:
                self.dealloc_user(newsz, oldsz)
                raise VMError("allocuvm out of memory") from exc
            self.memory.write(mem, bytes(PGSIZE))
            try:
                self.map_pages(a, PGSIZE, mem, PTE_W | PTE_U)
            except MemoryError as exc:
                self.dealloc_user(newsz, oldsz)
                self.memory.kfree(mem)
                raise VMError("allocuvm out of memory (2)") from exc
            a += PGSIZE
        return newsz

    def dealloc_user(self, oldsz: int, newsz: int) -> int:
        """Shrink user memory from oldsz to newsz; return the new size."""
        if newsz >= oldsz:
            return oldsz
        mem = self.memory
        a = pgroundup(newsz)
        while a < oldsz:
            pte = self.walk(a)
            if pte is None:
                nxt = pgaddr(pdx(a) + 1, 0, 0)
                if nxt == 0:
                    break
                a = nxt
                continue
            entry = mem._load32(pte)
            if entry & PTE_P:
                pa = pte_addr(entry)
                if pa == 0:
                    raise VMError("kfree")
                mem.kfree(pa)
                mem._store32(pte, 0)
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Release user pages, page tables and the directory itself."""
        pgdir = self.pgdir
        self.dealloc_user(KERNBASE, 0)
        mem = self.memory
        for i in range(NPDENTRIES):
            pde = mem._load32(pgdir + 4 * i)
            if pde & PTE_P:
                mem.kfree(pte_addr(pde))
        mem.kfree(pgdir)
        self._pgdir = None

    def clear_user(self, uva: int) -> None:
        """Make the page at uva inaccessible to user code."""
        pte = self.walk(uva)
        if pte is None:
            raise VMError("clearpteu")
        self.memory._store32(pte, self.memory._load32(pte) & ~PTE_U)

    def copy(self, sz: int) -> "AddressSpace":
        """A new address space with a private copy of the first sz bytes."""
        try:
            child = AddressSpace(self.memory, self.kmap)
        except MemoryError as exc:
            raise VMError("copyuvm: out of memory") from exc
        try:
            for i in range(0, sz, PGSIZE):
                pte, entry = self._entry(i)
                if pte is None:
                    raise VMError("copyuvm: pte should exist")
                if not entry & PTE_P:
                    raise VMError("copyuvm: page not present")
                mem = self.memory.kalloc()
                self.memory.write(mem, self.memory.read(pte_addr(entry), PGSIZE))
                try:
                    child.map_pages(i, PGSIZE, mem, pte_flags(entry))
                except Exception:
                    self.memory.kfree(mem)
                    raise
        except (MemoryError, VMError) as exc:
            child.free()
            if isinstance(exc, MemoryError):
                raise VMError("copyuvm: out of memory") from exc
            raise
        return child

    def user_to_kernel(self, uva: int) -> Optional[int]:
        """Kernel address of the user page at uva, or None if not user-accessible."""
        pte, entry = self._entry(uva)
        if pte is None or not entry & PTE_P or not entry & PTE_U:
            return None
        return p2v(pte_addr(entry))

    def copyout(self, va: int, data: bytes) -> None:
        """Copy data to user address va."""
        view = memoryview(bytes(data))
        while view:
            va0 = pgrounddown(va)
            ka = self.user_to_kernel(va0)
            if ka is None:
                raise VMError(f"copyout: {va0:#x} is not mapped for user")
            n = min(PGSIZE - (va - va0), len(view))
            self.memory.write(v2p(ka) + (va - va0), view[:n])
            view = view[n:]
            va = va0 + PGSIZE