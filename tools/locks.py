"""Per-key lock registry used to serialise work on one capsule at a time."""
from __future__ import annotations

import contextlib
import threading
from typing import Dict, Hashable, Iterable, Iterator


class KeyedLock:
    """Hand out one re-entrant lock per key.

    Locks are created on first use and kept for the life of the registry;
    the number of distinct capsules bounds its size.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextlib.contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield

    @contextlib.contextmanager
    def hold_many(self, keys: Iterable[int]) -> Iterator[None]:
        """Hold the locks of several keys, always acquired in sorted order."""

        with contextlib.ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(key))
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["KeyedLock"]
