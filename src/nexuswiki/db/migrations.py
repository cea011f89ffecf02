"""Database migrations and schema management for the wiki."""

import sqlite3

from nexuswiki.db.connection import Database

# Schema version for tracking migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Wiki pages
-- Attachments are owned by the page and stored inline as a JSON array
CREATE TABLE IF NOT EXISTS pages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,  -- Canonical slug, looked up case-insensitively
    content TEXT NOT NULL DEFAULT '',  -- Raw markdown, never sanitized on write
    last_modified_utc TEXT NOT NULL,
    attachments TEXT NOT NULL DEFAULT '[]'  -- JSON list of attachment records
);

-- Append-only log of user actions
CREATE TABLE IF NOT EXISTS change_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,  -- e.g. 'Create Page Foo', 'Delete Attachment'
    date TEXT NOT NULL
);

-- Attachment blob namespace, keyed by the generated file id
CREATE TABLE IF NOT EXISTS files (
    id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    length INTEGER NOT NULL DEFAULT 0,
    chunks INTEGER NOT NULL DEFAULT 0,
    upload_date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS file_chunks (
    file_id TEXT NOT NULL REFERENCES files(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    data BLOB NOT NULL,
    PRIMARY KEY (file_id, chunk_index)
);

-- Page names are deliberately not UNIQUE
CREATE INDEX IF NOT EXISTS idx_pages_name ON pages(name);
"""


def run_migrations(db: Database) -> None:
    """Run database migrations to set up or upgrade schema.

    Args:
        db: Database connection to run migrations on.
    """
    try:
        result = db.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        current_version = result[0] if result else 0
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        current_version = 0

    if current_version < SCHEMA_VERSION:
        # Note: executescript auto-commits, so we handle the version insert separately
        db.executescript(SCHEMA_SQL)

        db.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        db.commit()
