"""Database layer for the wiki engine."""

from nexuswiki.db.connection import Database, open_database
from nexuswiki.db.migrations import run_migrations

__all__ = ["Database", "open_database", "run_migrations"]
