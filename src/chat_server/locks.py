"""Per-room mutual exclusion."""

import threading
from contextlib import contextmanager
from typing import Dict, List


class RoomLocks:
    """
    Registry of one lock per room code.

    Writes to different rooms never wait on each other. An entry exists
    only while some caller holds or waits for that code, so lookups of
    unknown codes leave nothing behind. Callers overlapping on a code
    always share the same lock.
    """

    def __init__(self):
        # code -> [lock, number of callers holding or waiting]
        self._locks: Dict[str, List] = {}
        self._registry_lock = threading.Lock()

    def _acquire_entry(self, code: str) -> threading.Lock:
        with self._registry_lock:
            entry = self._locks.get(code)
            if entry is None:
                entry = self._locks[code] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _release_entry(self, code: str) -> None:
        with self._registry_lock:
            entry = self._locks[code]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[code]

    @contextmanager
    def hold(self, code: str):
        lock = self._acquire_entry(code)
        try:
            with lock:
                yield
        finally:
            self._release_entry(code)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
