"""Per-page mutual exclusion for read-modify-write sequences."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class PageLocks:
    """A lock per page id, created on first use and dropped when idle.

    Holding ``lock(page_id)`` guarantees no other thread in this process is
    between loading and writing back the same page. It does not coordinate
    with other processes sharing the database file.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @contextmanager
    def lock(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            page_lock = self._locks.get(key)
            if page_lock is None:
                page_lock = threading.Lock()
                self._locks[key] = page_lock
            self._waiters[key] = self._waiters.get(key, 0) + 1

        page_lock.acquire()
        try:
            yield
        finally:
            page_lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        """Number of page ids currently locked or waited on."""
        with self._guard:
            return len(self._locks)
