# kernsim

`kernsim` models the moving parts of a small x86 teaching kernel in plain
Python: how it lays out memory, builds page tables, reads executable headers,
guards shared data with locks and hands system calls to their handlers, along
with a few of its user-space tools. It has no dependencies beyond the standard
library.

## Modules

| Module            | What it provides |
|-------------------|------------------|
| `kernsim.mmu`     | Kernel parameters and memory-layout constants; address helpers `pdx`, `ptx`, `pgaddr`; page rounding `pgroundup`, `pgrounddown`; `pte_addr`, `pte_flags`; `v2p`, `p2v`; the `SegmentDescriptor` and `GateDescriptor` records (with `pack`/`unpack` to their 8-byte form) built by `seg`, `seg16` and `setgate`; and `seg_asm` for raw boot-time descriptor bytes. |
| `kernsim.elf`     | `ElfHeader` and `ProgramHeader`, which `parse` and `pack` 32-bit little-endian ELF headers; `program_headers` to list the program headers of an image; `ElfError` for a bad magic number or truncated data. |
| `kernsim.cstring` | Byte-string routines with C semantics: `memcmp`, `memmove` (within a `bytearray`), `strncmp`, `strcmp`, `strncpy`, `safestrcpy`, `atoi`, and `gets`, which reads a line from a binary stream. |
| `kernsim.shell`   | The shell's command-line grammar: `Tokenizer` (`peek`, `gettoken`), `parse_command`, and the command tree `ExecCmd`, `RedirCmd`, `PipeCmd`, `ListCmd`, `BackCmd`, with `OpenMode` flags for redirections. Malformed lines raise `ShellSyntaxError`. |
| `kernsim.wc`      | `count` returns a `WordCount` of lines, words and bytes for a binary stream; `format_counts` renders it; `main` is the command-line entry point. |
| `kernsim.umalloc` | A first-fit, address-ordered, coalescing free-list `Allocator` (`malloc`, `free`, `free_list`) that grows a `Heap` through `sbrk`. |
| `kernsim.locks`   | `SpinLock`, owned by a thread, which raises `LockError` when acquired twice or released by a non-holder and can be used in a `with` block; `SleepLock`, owned by a process id, with `acquire`, `release`, `holding` and the `held` context manager. |
| `kernsim.vm`      | `PhysicalMemory`, a pool of page frames (`kalloc`, `kfree`, `read`, `write`), and `AddressSpace`, a two-level page table in it that can `walk`, `map_pages`, `init_user`, `load`, `alloc_user`, `dealloc_user`, `copy`, `clear_user`, `user_to_kernel`, `copyout` and `free`. `kernel_map` builds the kernel mappings for a given data address. Failures raise `VMError`. |
| `kernsim.syscall` | `SysNum`, `Trap`, `FileType`, `ProcState`; `Stat` with `pack`/`unpack`; `ProcessMemory`, which fetches integers, strings and pointer arguments from a process's memory (raising `ValueError` when out of range); `SyscallTable`, which `register`s handlers and `dispatch`es by number, reporting unknown calls and returning -1; and `format_process_table`. |

## Examples

Page arithmetic:

```python
from kernsim.mmu import pgroundup, pgrounddown, pdx, ptx

pgroundup(1)            # 4096
pgrounddown(8191)       # 4096
pdx(0x80000000)         # 512
ptx(0x00003000)         # 3
```

C string behaviour:

```python
from kernsim.cstring import atoi, strcmp

atoi("123abc")          # 123
strcmp(b"abc", b"abd")  # negative
```

Parsing a shell line into a command tree:

```python
from kernsim.shell import parse_command, PipeCmd

cmd = parse_command("cat README | wc")
isinstance(cmd, PipeCmd)   # True
```

Mapping and filling user memory:

```python
from kernsim.vm import PhysicalMemory, AddressSpace

space = AddressSpace(PhysicalMemory())
space.alloc_user(0, 8192)
space.copyout(100, b"hello")
```

## Command line

Installing the package provides `kernsim-wc`, which prints the line, word and
byte counts of each file named, or of standard input when no file is given:

```
kernsim-wc notes.txt
```

Each result is printed as `lines words bytes name`. If a file cannot be
opened, it prints `wc: cannot open <name>` and stops with exit status 1.

## What it does not do

`kernsim` is a set of models, not a running kernel. It does not boot, schedule
processes, or provide a file system, disk or console. The shell module parses
command lines into trees but does not run them. `SyscallTable` only routes
numbers to handlers you register; it comes with no handlers of its own.

## Running the tests

The tests use pytest and live in `tests/`; install the `test` extra and run
`pytest`.