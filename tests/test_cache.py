"""Tests for the all-pages listing cache."""

import threading
from datetime import datetime, UTC

import pytest

from nexuswiki.cache import AllPagesCache
from nexuswiki.schemas import Page


def make_page(page_id: int, name: str) -> Page:
    return Page(
        id=page_id,
        name=name,
        content="",
        last_modified_utc=datetime(2024, 1, 1, tzinfo=UTC),
    )


class TestAllPagesCache:
    """Population, expiry and invalidation."""

    def test_empty_cache_misses(self, cache):
        assert cache.get() is None
        assert not cache.is_populated()

    def test_returns_stored_listing(self, cache):
        pages = [make_page(1, "a"), make_page(2, "b")]
        cache.set(pages)

        assert cache.get() == pages

    def test_returned_list_is_a_copy(self, cache):
        cache.set([make_page(1, "a")])

        cache.get().append(make_page(2, "b"))

        assert len(cache.get()) == 1

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set([make_page(1, "a")])

        clock.advance(30 * 60 - 1)
        assert cache.get() is not None

        clock.advance(1)
        assert cache.get() is None

    def test_reads_do_not_extend_expiry(self, cache, clock):
        cache.set([make_page(1, "a")])

        for _ in range(3):
            clock.advance(10 * 60 - 1)
            assert cache.get() is not None
        clock.advance(3)

        assert cache.get() is None

    def test_invalidate_clears_entry(self, cache):
        cache.set([make_page(1, "a")])

        cache.invalidate()

        assert cache.get() is None

    def test_set_with_stale_generation_is_ignored(self, cache):
        """A listing loaded before an invalidation must not be cached."""
        generation = cache.generation
        cache.invalidate()

        stored = cache.set([make_page(1, "stale")], generation=generation)

        assert stored is False
        assert cache.get() is None

    def test_set_with_current_generation_is_stored(self, cache):
        generation = cache.generation

        assert cache.set([make_page(1, "a")], generation=generation) is True
        assert cache.get() is not None

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            AllPagesCache(ttl_seconds=0)

    def test_concurrent_access(self, cache):
        pages = [make_page(i, f"page-{i}") for i in range(10)]
        errors = []

        def worker():
            try:
                for _ in range(200):
                    cache.set(pages)
                    cached = cache.get()
                    assert cached is None or len(cached) == 10
                    cache.invalidate()
            except AssertionError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
