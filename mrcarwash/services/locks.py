"""Per-vehicle locks so two workflows on the same plate do not interleave."""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class VehicleLocks:
    """
    One lock per plate, created on first use. Only serializes within a process.

    Entries are weak: a plate's lock is dropped once nobody holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, plate: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(plate)
            if lock is None:
                lock = threading.Lock()
                self._locks[plate] = lock
            return lock

    @contextmanager
    def hold(self, plate: str) -> Iterator[None]:
        lock = self._lock_for(plate)
        with lock:
            yield
