"""Time-bounded cache for the full page listing."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from nexuswiki.constants import ALL_PAGES_CACHE_KEY, ALL_PAGES_CACHE_MINUTES
from nexuswiki.schemas import Page

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    pages: tuple[Page, ...]
    expires_at: float


class AllPagesCache:
    """Single-entry cache holding the materialized page listing.

    The entry expires a fixed time after it was populated (reads do not extend
    it) and is dropped by ``invalidate`` whenever a write changes the page set.
    Every method is safe to call from concurrent request threads.
    """

    key = ALL_PAGES_CACHE_KEY

    def __init__(
        self,
        ttl_seconds: float = ALL_PAGES_CACHE_MINUTES * 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            ttl_seconds: Lifetime of a populated entry.
            clock: Monotonic time source, injectable for tests.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[_Entry] = None
        self._generation = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self) -> Optional[list[Page]]:
        """Return the cached listing, or None when empty or expired."""
        with self._lock:
            entry = self._entry
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                self._entry = None
                return None
            return list(entry.pages)

    @property
    def generation(self) -> int:
        """Counter bumped by every invalidation.

        A reader that queried the store takes the generation first and passes
        it to ``set``; if a write invalidated the cache in between, the listing
        it loaded may predate that write and is not stored.
        """
        with self._lock:
            return self._generation

    def set(self, pages: list[Page], generation: Optional[int] = None) -> bool:
        """Store a new listing, restarting the TTL.

        Returns False when ``generation`` is stale and nothing was stored.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entry = _Entry(pages=tuple(pages), expires_at=self._clock() + self._ttl)
            return True

    def invalidate(self) -> None:
        """Drop the cached listing so the next read goes to the store."""
        with self._lock:
            if self._entry is not None:
                logger.debug(f"Invalidating cache entry {self.key}")
            self._entry = None
            self._generation += 1

    def is_populated(self) -> bool:
        """True while a fresh entry is held."""
        return self.get() is not None
