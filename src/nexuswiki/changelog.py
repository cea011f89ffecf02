"""Append-only history of wiki actions."""

from datetime import datetime
from pathlib import Path

from nexuswiki.constants import BUSY_TIMEOUT_SECONDS
from nexuswiki.db.connection import open_database
from nexuswiki.db.migrations import run_migrations
from nexuswiki.schemas import ChangeRecord


class ChangeLog:
    """Change history stored in the wiki database.

    Records are only ever appended. Database errors are not caught here; they
    propagate to the caller.
    """

    def __init__(self, db_path: Path, timeout: float = BUSY_TIMEOUT_SECONDS) -> None:
        self.db_path = db_path
        self._timeout = timeout
        with open_database(db_path, timeout) as db:
            run_migrations(db)

    def add_change_record(self, record: ChangeRecord) -> None:
        """Append a record to the history."""
        with open_database(self.db_path, self._timeout) as db:
            with db.transaction():
                db.execute(
                    "INSERT INTO change_history (name, date) VALUES (?, ?)",
                    (record.name, record.date.isoformat()),
                )

    def get_change_history(self) -> list[ChangeRecord]:
        """All records in the order they were added."""
        with open_database(self.db_path, self._timeout) as db:
            cursor = db.execute("SELECT name, date FROM change_history ORDER BY id")
            return [
                ChangeRecord(name=row["name"], date=datetime.fromisoformat(row["date"]))
                for row in cursor.fetchall()
            ]
