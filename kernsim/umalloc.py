"""A first-fit free-list allocator over a break-extended heap."""

from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

HEADER_SIZE = 8
MIN_UNITS = 4096

# The list head sits below every heap address, with size zero.
_BASE = -1


class Heap:
    """A contiguous region grown and shrunk by moving its break."""

    def __init__(self, start: int = 0, size: int = 1 << 24) -> None:
        if start % HEADER_SIZE or start < 0:
            raise ValueError(f"heap start must be a non-negative multiple of {HEADER_SIZE}")
        if size < 0:
            raise ValueError("heap size must be non-negative")
        self.start = start
        self.size = size
        self.brk = start

    def sbrk(self, n: int) -> int:
        """Move the break by n bytes and return the old break."""
        new = self.brk + n
        if not self.start <= new <= self.start + self.size:
            raise MemoryError(f"sbrk({n}) outside heap")
        old, self.brk = self.brk, new
        return old


class Allocator:
    """Circular free list of blocks kept in address order, with coalescing."""

    def __init__(self, heap: Optional[Heap] = None) -> None:
        self.heap = Heap() if heap is None else heap
        self._next: Dict[int, int] = {}
        self._size: Dict[int, int] = {}
        self._freep: Optional[int] = None
        self._allocated: Set[int] = set()

    @property
    def free_list(self) -> List[Tuple[int, int]]:
        """Free blocks as (header address, size in bytes), in address order."""
        if self._freep is None:
            return []
        blocks = []
        p = self._next[_BASE]
        while p != _BASE:
            blocks.append((p * HEADER_SIZE, self._size[p] * HEADER_SIZE))
            p = self._next[p]
        return blocks

    def malloc(self, nbytes: int) -> int:
        """Allocate nbytes and return the address of the usable area."""
        if nbytes < 0:
            raise ValueError("cannot allocate a negative size")
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        if self._freep is None:
            self._next[_BASE] = _BASE
            self._size[_BASE] = 0
            self._freep = _BASE
        prevp = self._freep
        p = self._next[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._next[prevp] = self._next.pop(p)
                else:
                    self._size[p] -= nunits
                    p += self._size[p]
                    self._size[p] = nunits
                self._freep = prevp
                self._allocated.add(p)
                return (p + 1) * HEADER_SIZE
            if p == self._freep:
                p = self._morecore(nunits)
            prevp, p = p, self._next[p]

    def free(self, ap: int) -> None:
        """Return a block obtained from malloc to the free list."""
        bp = ap // HEADER_SIZE - 1
        if ap % HEADER_SIZE or bp not in self._allocated:
            raise ValueError(f"{ap:#x} is not an allocated block")
        self._allocated.remove(bp)
        self._release(bp)

    def _morecore(self, nunits: int) -> int:
        nunits = max(nunits, MIN_UNITS)
        hp = self.heap.sbrk(nunits * HEADER_SIZE) // HEADER_SIZE
        self._size[hp] = nunits
        self._release(hp)
        return self._freep

    def _release(self, bp: int) -> None:
        nxt, size = self._next, self._size
        p = self._freep
        while not p < bp < nxt[p]:
            if p >= nxt[p] and (bp > p or bp < nxt[p]):
                break  # bp lies past the end or before the start of the list
            p = nxt[p]
        following = nxt[p]
        if bp + size[bp] == following:
            size[bp] += size.pop(following)
            nxt[bp] = nxt.pop(following)
        else:
            nxt[bp] = following
        if p + size[p] == bp:
            size[p] += size.pop(bp)
            nxt[p] = nxt.pop(bp)
        else:
            nxt[p] = bp
        self._freep = p