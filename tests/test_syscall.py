import struct

import pytest

from kernsim.syscall import (
    FileType,
    ProcState,
    ProcessMemory,
    Stat,
    SysNum,
    SyscallTable,
    Trap,
    format_process_table,
)


def words(*values):
    return b"".join(struct.pack("<i", v) for v in values)


def test_fetchint_reads_little_endian():
    mem = ProcessMemory(words(7, -3, 123456))
    assert mem.fetchint(0) == 7
    assert mem.fetchint(4) == -3
    assert mem.fetchint(8) == 123456


def test_fetchint_out_of_range():
    mem = ProcessMemory(words(1, 2))
    with pytest.raises(ValueError):
        mem.fetchint(8)
    with pytest.raises(ValueError):
        mem.fetchint(5)
    with pytest.raises(ValueError):
        mem.fetchint(-4)


def test_fetchstr():
    mem = ProcessMemory(b"hello\0world\0")
    assert mem.fetchstr(0) == b"hello"
    assert mem.fetchstr(6) == b"world"
    assert mem.fetchstr(5) == b""


def test_fetchstr_errors():
    mem = ProcessMemory(b"abc\0def")
    with pytest.raises(ValueError):
        mem.fetchstr(4)
    with pytest.raises(ValueError):
        mem.fetchstr(7)


def test_arguments_from_stack():
    text = b"echo\0"
    stack = words(0, 16, 5, 0)
    mem = ProcessMemory(stack + text + bytes(3))
    esp = 0
    assert mem.argint(esp, 0) == 16
    assert mem.argint(esp, 1) == len(text)
    assert mem.argstr(esp, 0) == b"echo"
    assert mem.argptr(esp, 0, len(text)) == 16


def test_argptr_rejects_bad_blocks():
    mem = ProcessMemory(words(0, 8, -1) + bytes(4))
    with pytest.raises(ValueError):
        mem.argptr(0, 0, mem.sz)
    with pytest.raises(ValueError):
        mem.argptr(0, 0, -1)
    with pytest.raises(ValueError):
        mem.argptr(0, 1, 1)
    assert mem.argptr(0, 0, mem.sz - 8) == 8


def test_argint_past_end():
    mem = ProcessMemory(words(0, 1))
    with pytest.raises(ValueError):
        mem.argint(0, 1)


def test_dispatch_runs_handler():
    table = SyscallTable(console=lambda s: None)
    table.register(SysNum.GETPID, lambda: 42)
    assert table.dispatch(SysNum.GETPID, 1, "init") == 42


def test_dispatch_unknown_call_reports():
    out = []
    table = SyscallTable(console=out.append)
    assert table.dispatch(99, 3, "sh") == -1
    assert out == ["3 sh: unknown sys call 99\n"]


def test_dispatch_unregistered_known_number():
    out = []
    table = SyscallTable(console=out.append)
    table.register(SysNum.FORK, lambda: 2)
    assert table.dispatch(SysNum.WAIT, 1, "init") == -1
    assert len(out) == 1


def test_register_rejects_bad_numbers():
    table = SyscallTable(console=lambda s: None)
    with pytest.raises(ValueError):
        table.register(0, lambda: 0)
    with pytest.raises(ValueError):
        table.register(max(SysNum) + 1, lambda: 0)


def test_process_table_skips_empty_slots():
    text = format_process_table(
        [("init", 1, ProcState.SLEEPING), ("", 0, ProcState.UNUSED), ("sh", 2, 4)]
    )
    assert text == (
        "name\tpid\tstate \n"
        "----------------------- \n"
        "init\t1\tSLEEPING \n"
        "sh\t2\tRUNNING \n"
    )


def test_stat_round_trip():
    st = Stat(type=FileType.FILE, dev=1, ino=17, nlink=2, size=512)
    assert Stat.unpack(st.pack()) == st


def test_stat_truncated():
    with pytest.raises(ValueError):
        Stat.unpack(b"\0" * 4)


def test_trap_vectors_distinct_from_exceptions():
    assert Trap.SYSCALL > Trap.IRQ0 > Trap.SIMDERR
    assert Trap(64) is Trap.SYSCALL