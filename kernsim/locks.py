"""Mutual-exclusion locks: a spin lock owned by a thread, a sleep lock owned by a process."""

from __future__ import annotations

import threading
import traceback
from typing import Iterator, Optional, Tuple
from contextlib import contextmanager

NPCS = 10


class LockError(RuntimeError):
    """Raised when a lock is acquired twice or released by a non-holder."""


class SpinLock:
    """A non-reentrant lock that remembers which thread holds it and from where."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._lock = threading.Lock()
        self.cpu: Optional[int] = None
        self.pcs: Tuple[str, ...] = ()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def acquire(self) -> None:
        """Take the lock, waiting while another thread holds it."""
        if self.holding():
            raise LockError(f"acquire: {self.name or 'lock'} already held")
        self._lock.acquire()
        self.cpu = threading.get_ident()
        frames = traceback.extract_stack(limit=NPCS + 1)[:-1]
        self.pcs = tuple(f"{frame.filename}:{frame.lineno}" for frame in reversed(frames))

    def release(self) -> None:
        """Give the lock up; only the holder may do so."""
        if not self.holding():
            raise LockError(f"release: {self.name or 'lock'} not held")
        self.pcs = ()
        self.cpu = None
        self._lock.release()

    def holding(self) -> bool:
        """Whether the calling thread holds the lock."""
        return self.locked and self.cpu == threading.get_ident()

    def __enter__(self) -> "SpinLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class SleepLock:
    """A long-term lock; waiters sleep until it is released."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.locked = False
        self.pid = 0
        self._cond = threading.Condition()

    def acquire(self, pid: int) -> None:
        """Take the lock on behalf of process pid, sleeping while it is held."""
        with self._cond:
            while self.locked:
                self._cond.wait()
            self.locked = True
            self.pid = pid

    def release(self) -> None:
        """Release the lock and wake every sleeper."""
        with self._cond:
            self.locked = False
            self.pid = 0
            self._cond.notify_all()

    def holding(self, pid: int) -> bool:
        """Whether process pid holds the lock."""
        with self._cond:
            return self.locked and self.pid == pid

    @contextmanager
    def held(self, pid: int) -> Iterator["SleepLock"]:
        """Hold the lock for pid for the duration of a with block."""
        self.acquire(pid)
        try:
            yield self
        finally:
            self.release()