"""SQLite database connection management."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from nexuswiki.constants import BUSY_TIMEOUT_SECONDS


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


class Database:
    """SQLite database wrapper with connection management.

    Connections are opened in shared mode: WAL journaling lets readers run
    alongside a single writer, and the busy timeout makes competing writers
    wait for the file lock instead of failing immediately.
    """

    def __init__(self, db_path: Path, timeout: float = BUSY_TIMEOUT_SECONDS):
        """Initialize database connection."""
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        # SQLite NOCASE only folds ASCII
        self._conn.create_function("casefold", 1, _casefold, deterministic=True)
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute("PRAGMA journal_mode = WAL")

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        """Execute SQL statement."""
        return self._conn.execute(sql, params)

    def executescript(self, sql: str) -> sqlite3.Cursor:
        """Execute multiple SQL statements as a script."""
        return self._conn.executescript(sql)

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Commit the enclosed statements together, or roll them all back."""
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()

    def commit(self) -> None:
        """Commit current transaction."""
        self._conn.commit()

    def rollback(self) -> None:
        """Rollback current transaction."""
        self._conn.rollback()

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()


@contextmanager
def open_database(db_path: Path, timeout: float = BUSY_TIMEOUT_SECONDS) -> Iterator[Database]:
    """Open a short-lived connection that is closed when the block exits."""
    db = Database(db_path, timeout=timeout)
    try:
        yield db
    finally:
        db.close()
