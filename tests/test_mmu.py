import pytest

from kernsim import mmu


@pytest.mark.parametrize("va", [0, 0x1234, mmu.KERNBASE, mmu.KERNLINK + 0x567, 0xFFFFFFFF])
def test_pgaddr_reassembles_address(va):
    assert mmu.pgaddr(mmu.pdx(va), mmu.ptx(va), va & 0xFFF) == va


def test_indexes_are_in_range():
    for va in (0, mmu.KERNBASE, mmu.DEVSPACE, 0xFFFFFFFF):
        assert 0 <= mmu.pdx(va) < mmu.NPDENTRIES
        assert 0 <= mmu.ptx(va) < mmu.NPTENTRIES


def test_pgaddr_of_next_directory():
    assert mmu.pgaddr(1, 0, 0) == 1 << mmu.PDXSHIFT


def test_page_rounding():
    assert mmu.pgroundup(0) == 0
    assert mmu.pgroundup(1) == mmu.PGSIZE
    assert mmu.pgroundup(mmu.PGSIZE) == mmu.PGSIZE
    assert mmu.pgrounddown(mmu.PGSIZE + 1) == mmu.PGSIZE
    assert mmu.pgrounddown(mmu.PGSIZE - 1) == 0


def test_v2p_p2v_round_trip():
    assert mmu.v2p(mmu.KERNLINK) == mmu.EXTMEM
    assert mmu.p2v(mmu.EXTMEM) == mmu.KERNLINK
    for pa in (0, mmu.EXTMEM, mmu.PHYSTOP):
        assert mmu.v2p(mmu.p2v(pa)) == pa


def test_pte_split():
    pte = mmu.p2v(mmu.EXTMEM) | mmu.PTE_P | mmu.PTE_W | mmu.PTE_U
    assert mmu.pte_flags(pte) == mmu.PTE_P | mmu.PTE_W | mmu.PTE_U
    assert mmu.pte_addr(pte) == mmu.KERNLINK
    assert mmu.pte_addr(pte) | mmu.pte_flags(pte) == pte


def test_kernel_code_segment_bytes():
    desc = mmu.seg(mmu.STA_X | mmu.STA_R, 0, 0xFFFFFFFF, 0)
    assert desc.pack() == bytes.fromhex("ffff0000009acf00")


def test_user_code_segment_bytes():
    desc = mmu.seg(mmu.STA_X | mmu.STA_R, 0, 0xFFFFFFFF, mmu.DPL_USER)
    assert desc.pack() == bytes.fromhex("ffff000000facf00")


def test_seg_base_and_limit():
    desc = mmu.seg(mmu.STA_W, mmu.KERNBASE, 0xFFFFFFFF, 0)
    assert desc.base == mmu.KERNBASE
    assert desc.limit == 0xFFFFFFFF


def test_seg16_byte_granular():
    desc = mmu.seg16(mmu.STS_T32A, mmu.KERNLINK, 0x67, 0)
    assert desc.g == 0
    assert desc.limit == 0x67
    assert desc.base == mmu.KERNLINK


@pytest.mark.parametrize("type_", [mmu.STA_W, mmu.STA_X | mmu.STA_R])
def test_seg_asm_matches_seg(type_):
    assert mmu.seg_asm(type_, 0, 0xFFFFFFFF) == mmu.seg(type_, 0, 0xFFFFFFFF, 0).pack()


def test_segment_pack_unpack_round_trip():
    desc = mmu.seg(mmu.STA_W, mmu.KERNLINK, 0xFFFFFFFF, mmu.DPL_USER)
    assert mmu.SegmentDescriptor.unpack(desc.pack()) == desc


def test_segment_field_out_of_range():
    with pytest.raises(ValueError):
        mmu.SegmentDescriptor(type=16)


def test_unpack_wrong_length():
    with pytest.raises(ValueError):
        mmu.SegmentDescriptor.unpack(b"\x00" * 7)
    with pytest.raises(ValueError):
        mmu.GateDescriptor.unpack(b"\x00" * 9)


def test_setgate_interrupt_and_trap():
    handler = mmu.KERNLINK + 0x5432
    intr = mmu.setgate(False, mmu.SEG_KCODE << 3, handler, 0)
    trap = mmu.setgate(True, mmu.SEG_KCODE << 3, handler, mmu.DPL_USER)
    assert intr.type == mmu.STS_IG32
    assert trap.type == mmu.STS_TG32
    assert intr.offset == handler
    assert trap.dpl == mmu.DPL_USER
    assert trap.cs == mmu.SEG_KCODE << 3
    assert intr.p == 1 and intr.s == 0


def test_gate_pack_round_trip():
    gate = mmu.setgate(True, mmu.SEG_KCODE << 3, mmu.KERNBASE + 0x100, mmu.DPL_USER)
    packed = gate.pack()
    assert len(packed) == 8
    assert mmu.GateDescriptor.unpack(packed) == gate