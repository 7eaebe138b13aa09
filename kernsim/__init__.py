"""Models of a small x86 teaching kernel's paging, ELF headers, locks and system calls, with shell parsing and user-space tools."""

__version__ = "0.1.0"

__all__ = [
    "cstring",
    "elf",
    "locks",
    "mmu",
    "shell",
    "syscall",
    "umalloc",
    "vm",
    "wc",
]