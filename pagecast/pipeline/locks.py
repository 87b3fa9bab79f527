"""In-process mutual exclusion keyed by entry id."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock


class EntryLockRegistry:
    """Hand out one lock per entry id so runs of the same entry never overlap."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, Lock] = {}

    def _lock_for(self, entry_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(entry_id)
            if lock is None:
                lock = Lock()
                self._locks[entry_id] = lock
            return lock

    @contextmanager
    def hold(self, entry_id: str) -> Iterator[None]:
        """Block until the entry lock is acquired and release it on exit."""

        lock = self._lock_for(entry_id)
        with lock:
            yield

    def is_held(self, entry_id: str) -> bool:
        with self._guard:
            lock = self._locks.get(entry_id)
        return lock is not None and lock.locked()
