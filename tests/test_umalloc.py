import pytest

from kernsim.umalloc import HEADER_SIZE, MIN_UNITS, Allocator, Heap


def test_sbrk_returns_old_break():
    heap = Heap(start=0x1000, size=0x2000)
    assert heap.sbrk(0x100) == 0x1000
    assert heap.sbrk(-0x80) == 0x1100
    assert heap.brk == 0x1080


def test_sbrk_out_of_range():
    heap = Heap(start=0x1000, size=0x100)
    with pytest.raises(MemoryError):
        heap.sbrk(-1)
    with pytest.raises(MemoryError):
        heap.sbrk(0x101)
    assert heap.brk == 0x1000


def test_heap_start_must_be_aligned():
    with pytest.raises(ValueError):
        Heap(start=3)


def test_first_malloc_grows_by_minimum():
    heap = Heap(start=0x4000)
    alloc = Allocator(heap)
    addr = alloc.malloc(10)
    assert heap.brk - heap.start == MIN_UNITS * HEADER_SIZE
    assert addr % HEADER_SIZE == 0
    assert heap.start + HEADER_SIZE <= addr and addr + 10 <= heap.brk


def test_large_request_grows_by_request():
    heap = Heap(start=0)
    alloc = Allocator(heap)
    nbytes = MIN_UNITS * HEADER_SIZE * 3
    addr = alloc.malloc(nbytes)
    assert addr + nbytes <= heap.brk
    assert heap.brk - heap.start >= nbytes + HEADER_SIZE


def test_allocations_do_not_overlap():
    heap = Heap(start=0)
    alloc = Allocator(heap)
    sizes = [1, 7, 8, 9, 100, 1000, 5000, 40000, 3]
    spans = sorted((alloc.malloc(n), n) for n in sizes)
    for (a, n), (b, _) in zip(spans, spans[1:]):
        assert a + n <= b - HEADER_SIZE
    for a, n in spans:
        assert heap.start < a and a + n <= heap.brk


def test_free_then_malloc_reuses_block():
    alloc = Allocator(Heap(start=0))
    first = alloc.malloc(64)
    alloc.free(first)
    assert alloc.malloc(64) == first


def test_free_everything_coalesces():
    heap = Heap(start=0x800)
    alloc = Allocator(heap)
    addrs = [alloc.malloc(n) for n in (10, 200, 3000, 17, 50000)]
    for addr in addrs[1::2] + addrs[::2]:
        alloc.free(addr)
    assert alloc.free_list == [(heap.start, heap.brk - heap.start)]


def test_free_list_stays_sorted_and_disjoint():
    alloc = Allocator(Heap(start=0))
    addrs = [alloc.malloc(100) for _ in range(10)]
    for addr in addrs[::3]:
        alloc.free(addr)
    blocks = alloc.free_list
    for (a, n), (b, _) in zip(blocks, blocks[1:]):
        assert a + n < b


def test_exhausted_heap_raises_memory_error():
    heap = Heap(start=0, size=MIN_UNITS * HEADER_SIZE)
    alloc = Allocator(heap)
    addrs = []
    with pytest.raises(MemoryError):
        while True:
            addrs.append(alloc.malloc(1000))
    assert addrs
    for addr in addrs:
        alloc.free(addr)
    assert alloc.free_list == [(0, MIN_UNITS * HEADER_SIZE)]


def test_too_small_heap():
    alloc = Allocator(Heap(start=0, size=1024))
    with pytest.raises(MemoryError):
        alloc.malloc(10)


def test_double_free_and_bad_pointer():
    alloc = Allocator(Heap(start=0))
    addr = alloc.malloc(32)
    alloc.free(addr)
    with pytest.raises(ValueError):
        alloc.free(addr)
    with pytest.raises(ValueError):
        alloc.free(addr + 3)


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        Allocator().malloc(-1)