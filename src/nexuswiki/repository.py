"""Page repository: pages, their attachments, and the cached page listing.

Every call opens its own database connection and closes it before returning.
Mutations are reported as an ``OperationResult`` instead of raising: a
missing page or a protected home page comes back with ``reason`` set, a
database or stream failure with ``error`` set. Failures are logged here;
nothing is retried.

Partial failures are not rolled back:

- ``save_page`` uploads the attachment before writing the page row. If the
  row write fails the blob stays behind, unreferenced.
- ``delete_attachment`` deletes the blob before rewriting the page row. If the
  row write fails the page keeps an entry pointing at a missing blob.

``find_orphaned_files``/``sweep_orphaned_files`` clean up after the first case.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import Callable, Optional

from nexuswiki.cache import AllPagesCache
from nexuswiki.constants import BUSY_TIMEOUT_SECONDS, CHUNK_SIZE_KB, ORPHAN_MIN_AGE_MINUTES
from nexuswiki.db.connection import Database, open_database
from nexuswiki.db.migrations import run_migrations
from nexuswiki.locks import PageLocks
from nexuswiki.naming import proper_page_name
from nexuswiki.schemas import Attachment, FileInfo, OperationResult, Page, PageInput
from nexuswiki.storage.blobs import AttachmentStore, guess_mime_type

logger = logging.getLogger(__name__)

_PAGE_COLUMNS = "id, name, content, last_modified_utc, attachments"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _attachments_to_json(attachments: tuple[Attachment, ...]) -> str:
    return json.dumps([a.model_dump(mode="json") for a in attachments])


def _attachments_from_json(raw: str) -> tuple[Attachment, ...]:
    return tuple(Attachment.model_validate(item) for item in json.loads(raw or "[]"))


def _row_to_page(row: sqlite3.Row) -> Page:
    return Page(
        id=row["id"],
        name=row["name"],
        content=row["content"],
        last_modified_utc=datetime.fromisoformat(row["last_modified_utc"]),
        attachments=_attachments_from_json(row["attachments"]),
    )


class PageRepository:
    """SQLite-backed page store with a cached page listing."""

    def __init__(
        self,
        db_path: Path,
        cache: Optional[AllPagesCache] = None,
        *,
        timeout: float = BUSY_TIMEOUT_SECONDS,
        chunk_size: int = CHUNK_SIZE_KB * 1024,
        locks: Optional[PageLocks] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the repository and make sure the schema exists.

        Args:
            db_path: SQLite database file, created if missing.
            cache: Listing cache. A cache with the default TTL is created
                when omitted.
            timeout: Seconds to wait for a locked database.
            chunk_size: Attachment chunk size in bytes.
            locks: Per-page lock table, shared if several repositories
                point at the same file.
            now: UTC time source for modification timestamps.
        """
        self.db_path = db_path
        self.cache = cache if cache is not None else AllPagesCache()
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._locks = locks if locks is not None else PageLocks()
        self._now = now

        with self._open() as db:
            run_migrations(db)

    def _open(self):
        return open_database(self.db_path, self._timeout)

    def _store(self, db: Database) -> AttachmentStore:
        return AttachmentStore(db, self._chunk_size, now=self._now)

    def _find_by_id(self, db: Database, page_id: int) -> Optional[Page]:
        row = db.execute(f"SELECT {_PAGE_COLUMNS} FROM pages WHERE id = ?", (page_id,)).fetchone()
        return _row_to_page(row) if row else None

    def _query_all(self, db: Database) -> list[Page]:
        cursor = db.execute(f"SELECT {_PAGE_COLUMNS} FROM pages")
        return [_row_to_page(row) for row in cursor.fetchall()]

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_all_pages(self) -> list[Page]:
        """All pages, in no particular order. Served from the cache when fresh."""
        pages = self.cache.get()
        if pages is not None:
            return pages

        generation = self.cache.generation
        with self._open() as db:
            pages = self._query_all(db)
        self.cache.set(pages, generation=generation)
        return list(pages)

    def get_page(self, name: str) -> Optional[Page]:
        """Find a page by name, ignoring case. Returns None if not found.

        Names are not unique in the store; if several pages share a name the
        oldest one is returned.
        """
        with self._open() as db:
            row = db.execute(
                f"""
                SELECT {_PAGE_COLUMNS}
                FROM pages
                WHERE casefold(name) = ?
                ORDER BY id
                LIMIT 1
                """,
                (name.casefold(),),
            ).fetchone()
        return _row_to_page(row) if row else None

    def get_page_by_id(self, page_id: int) -> Optional[Page]:
        """Get a page by ID. Returns None if not found."""
        with self._open() as db:
            return self._find_by_id(db, page_id)

    def search(self, term: str) -> list[Page]:
        """Pages whose name or content contains ``term``, ignoring case."""
        needle = term.casefold()
        with self._open() as db:
            pages = self._query_all(db)
        return [
            page
            for page in pages
            if needle in page.name.casefold() or needle in page.content.casefold()
        ]

    def get_file(self, file_id: str) -> Optional[tuple[FileInfo, bytes]]:
        """Metadata and content of an attachment blob. Returns None if not found."""
        with self._open() as db:
            store = self._store(db)
            meta = store.find_meta(file_id)
            if meta is None:
                return None
            content = store.download(file_id)
        if content is None:
            return None
        return meta, content

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def save_page(self, page_input: PageInput) -> OperationResult:
        """Create a page, or replace the page with ``page_input.id``.

        The submitted name is normalized and sanitized; content is stored
        exactly as submitted. An attachment in the input is uploaded under a
        new file id and appended to the page's attachments.
        """
        try:
            if page_input.id is None:
                return self._save(page_input)
            with self._locks.lock(page_input.id):
                return self._save(page_input)
        except Exception as e:
            logger.error(
                f"There is an exception in trying to save page name '{page_input.name}'",
                exc_info=True,
            )
            return OperationResult.failed(e)

    def _save(self, page_input: PageInput) -> OperationResult:
        with self._open() as db:
            existing: Optional[Page] = None
            if page_input.id is not None:
                existing = self._find_by_id(db, page_input.id)
                if existing is None:
                    logger.warning(
                        f"Save operation fails because page id {page_input.id} "
                        f"cannot be found in the database."
                    )
                    return OperationResult.rejected(f"Page id {page_input.id} not found")

            name = proper_page_name(page_input.name)
            timestamp = self._now()

            attachment: Optional[Attachment] = None
            upload = page_input.attachment
            if upload is not None and not upload.is_empty:
                attachment = Attachment(
                    file_id=str(uuid.uuid4()),
                    file_name=upload.file_name,
                    mime_type=upload.content_type or guess_mime_type(upload.file_name),
                    last_modified_utc=timestamp,
                )
                try:
                    with upload.stream as stream:
                        self._store(db).upload(
                            attachment.file_id,
                            attachment.file_name,
                            stream,
                            attachment.mime_type,
                        )
                except Exception as e:
                    logger.error(
                        f"Unable to store attachment '{upload.file_name}' "
                        f"for page name '{page_input.name}'",
                        exc_info=True,
                    )
                    return OperationResult.failed(e)

            added = (attachment,) if attachment is not None else ()

            try:
                if existing is None:
                    page = self._insert(db, name, page_input.content, timestamp, added)
                else:
                    page = existing.model_copy(
                        update={
                            "name": name,
                            "content": page_input.content,
                            "last_modified_utc": timestamp,
                            "attachments": existing.attachments + added,
                        }
                    )
                    if not self._update(db, page):
                        logger.warning(
                            f"Page id {page.id} disappeared before it could be updated."
                        )
                        self._log_orphan(attachment)
                        return OperationResult.rejected(f"Page id {page.id} not found")
            except Exception:
                self._log_orphan(attachment)
                raise

        self.cache.invalidate()
        return OperationResult.success(page)

    def _insert(
        self,
        db: Database,
        name: str,
        content: str,
        timestamp: datetime,
        attachments: tuple[Attachment, ...],
    ) -> Page:
        with db.transaction():
            cursor = db.execute(
                """
                INSERT INTO pages (name, content, last_modified_utc, attachments)
                VALUES (?, ?, ?, ?)
                """,
                (name, content, timestamp.isoformat(), _attachments_to_json(attachments)),
            )
        # lastrowid is guaranteed non-None after INSERT
        assert cursor.lastrowid is not None
        return Page(
            id=cursor.lastrowid,
            name=name,
            content=content,
            last_modified_utc=timestamp,
            attachments=attachments,
        )

    def _update(self, db: Database, page: Page) -> bool:
        with db.transaction():
            cursor = db.execute(
                """
                UPDATE pages
                SET name = ?, content = ?, last_modified_utc = ?, attachments = ?
                WHERE id = ?
                """,
                (
                    page.name,
                    page.content,
                    page.last_modified_utc.isoformat(),
                    _attachments_to_json(page.attachments),
                    page.id,
                ),
            )
        return cursor.rowcount > 0

    def _log_orphan(self, attachment: Optional[Attachment]) -> None:
        if attachment is not None:
            logger.warning(
                f"Attachment blob {attachment.file_id} ({attachment.file_name}) was stored "
                f"but no page references it."
            )

    def delete_page(self, page_id: int, home_page_name: str) -> OperationResult:
        """Delete a page and all of its attachment blobs.

        The home page is never deleted. The cache is invalidated only when the
        page row is gone.
        """
        try:
            with self._locks.lock(page_id), self._open() as db:
                page = self._find_by_id(db, page_id)
                if page is None:
                    logger.warning(
                        f"Delete operation fails because page id {page_id} "
                        f"cannot be found in the database."
                    )
                    return OperationResult.rejected(f"Page id {page_id} not found")

                if page.name.casefold() == home_page_name.casefold():
                    logger.warning(
                        f"Page id {page_id} is a home page and delete operation "
                        f"on home page is not allowed."
                    )
                    return OperationResult.rejected("The home page cannot be deleted", page)

                store = self._store(db)
                for attachment in page.attachments:
                    if not store.delete(attachment.file_id):
                        logger.warning(
                            f"Attachment blob {attachment.file_id} of page id {page_id} "
                            f"could not be deleted."
                        )

                with db.transaction():
                    cursor = db.execute("DELETE FROM pages WHERE id = ?", (page_id,))
                if cursor.rowcount == 0:
                    logger.warning(
                        f"Failed to delete page id {page_id}. Potential issues could "
                        f"include database constraints, file locks, or internal errors."
                    )
                    return OperationResult.rejected(f"Page id {page_id} was not deleted", page)
        except Exception as e:
            logger.error(f"Error occurred while trying to delete page with id {page_id}.", exc_info=True)
            return OperationResult.failed(e)

        self.cache.invalidate()
        return OperationResult.success(page)

    def delete_attachment(self, page_id: int, file_id: str) -> OperationResult:
        """Delete one attachment blob and remove it from its page.

        The attachment list is only changed after the blob is gone, so the
        list never loses an entry whose blob still exists.
        """
        try:
            with self._locks.lock(page_id), self._open() as db:
                page = self._find_by_id(db, page_id)
                if page is None:
                    logger.warning(
                        f"Delete attachment operation fails because page id {page_id} "
                        f"cannot be found in the database."
                    )
                    return OperationResult.rejected(f"Page id {page_id} not found")

                wanted = file_id.casefold()
                stored_id = next(
                    (a.file_id for a in page.attachments if a.file_id.casefold() == wanted),
                    None,
                )
                if stored_id is None:
                    logger.warning(
                        f"Attachment id {file_id} does not belong to page id {page_id}."
                    )
                    return OperationResult.rejected(
                        f"Attachment {file_id} not found on page id {page_id}", page
                    )

                if not self._store(db).delete(stored_id):
                    logger.warning(
                        f"We cannot delete this file attachment id {file_id}. Potential "
                        f"reasons could include non-existent file, file lock, or "
                        f"database corruption."
                    )
                    return OperationResult.rejected(
                        f"Attachment {file_id} could not be deleted", page
                    )

                updated = page.model_copy(
                    update={
                        "attachments": tuple(
                            a for a in page.attachments if a.file_id.casefold() != wanted
                        )
                    }
                )
                if not self._update(db, updated):
                    logger.warning(
                        f"Delete attachment works but updating the page (id {page_id}) "
                        f"attachment list fails."
                    )
                    return OperationResult.rejected(
                        f"Attachment list of page id {page_id} was not updated", page
                    )
        except Exception as e:
            logger.error(f"Error occurred while trying to delete file with id {file_id}.", exc_info=True)
            return OperationResult.failed(e)

        self.cache.invalidate()
        return OperationResult.success(updated)

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def find_orphaned_files(
        self, min_age: timedelta = timedelta(minutes=ORPHAN_MIN_AGE_MINUTES)
    ) -> list[str]:
        """Ids of blobs no page references, uploaded at least ``min_age`` ago."""
        cutoff = self._now() - min_age
        with self._open() as db:
            referenced = {
                attachment.file_id.casefold()
                for page in self._query_all(db)
                for attachment in page.attachments
            }
            files = self._store(db).list_files()
        return [
            info.id
            for info in files
            if info.id.casefold() not in referenced and info.upload_date <= cutoff
        ]

    def sweep_orphaned_files(
        self, min_age: timedelta = timedelta(minutes=ORPHAN_MIN_AGE_MINUTES)
    ) -> int:
        """Delete unreferenced blobs. Returns the number deleted."""
        orphans = self.find_orphaned_files(min_age)
        if not orphans:
            return 0

        deleted = 0
        with self._open() as db:
            store = self._store(db)
            for file_id in orphans:
                if store.delete(file_id):
                    deleted += 1
                else:
                    logger.warning(f"Orphaned blob {file_id} could not be deleted.")
        logger.info(f"Swept {deleted} of {len(orphans)} orphaned attachment blobs")
        return deleted
