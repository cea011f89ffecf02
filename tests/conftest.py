"""Shared pytest fixtures for all tests.

These fixtures build the repository on a temporary SQLite file and drive the
listing cache and timestamps from fake clocks, so TTL behaviour can be tested
without sleeping.
"""

import gc
from datetime import datetime, timedelta, UTC

import pytest

from nexuswiki.cache import AllPagesCache
from nexuswiki.changelog import ChangeLog
from nexuswiki.db.connection import Database
from nexuswiki.db.migrations import run_migrations
from nexuswiki.repository import PageRepository
from nexuswiki.service import WikiService

HOME_PAGE = "knowledge-nexus"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcNow:
    """UTC wall clock that ticks one second per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=UTC)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Force garbage collection so lingering SQLite handles are released."""
    yield
    gc.collect()


@pytest.fixture
def db_path(tmp_path):
    """Path of a wiki database that does not exist yet."""
    return tmp_path / "wiki.db"


@pytest.fixture
def temp_db(db_path):
    """Open database with the wiki schema applied."""
    db = Database(db_path)
    run_migrations(db)
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def utcnow():
    return FakeUtcNow()


@pytest.fixture
def cache(clock):
    """Listing cache with a 30 minute TTL on the fake clock."""
    return AllPagesCache(ttl_seconds=30 * 60, clock=clock)


@pytest.fixture
def repository(db_path, cache, utcnow):
    return PageRepository(db_path, cache, chunk_size=16, now=utcnow)


@pytest.fixture
def change_log(db_path):
    return ChangeLog(db_path)


@pytest.fixture
def service(repository, change_log, utcnow):
    return WikiService(repository, change_log, home_page_name=HOME_PAGE, now=utcnow)
