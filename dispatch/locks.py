"""
Purpose: Mutual exclusion for membership changes.
What it does:
- lock(key): context manager around one threading.Lock per key
  ("pool_<id>", "ride_<id>")
- lock_many(*keys): several keys at once, always acquired in sorted order
  so two callers asking for the same keys cannot deadlock

Single-process only. A multi-instance deployment swaps this for a
distributed lock with the same lock(key) interface.
"""

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator


class PoolLockManager:

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._lock_for(key):
            yield

    @contextmanager
    def lock_many(self, *keys: str) -> Iterator[None]:
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.lock(key))
            yield

    def is_locked(self, key: str) -> bool:
        with self._guard:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()
