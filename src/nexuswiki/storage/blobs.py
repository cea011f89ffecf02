"""Attachment blob storage inside the wiki database.

Blobs live in their own namespace keyed by a caller-generated file id, so they
can be deleted or re-linked without touching page rows. Content is written in
fixed-size chunks:

    files        one row per blob: id, filename, mime type, length, chunk count
    file_chunks  (file_id, chunk_index) -> bytes
"""

from __future__ import annotations

import logging
import mimetypes
import sqlite3
from datetime import datetime, UTC
from typing import BinaryIO, Callable, Optional

from nexuswiki.constants import CHUNK_SIZE_KB, DEFAULT_MIME_TYPE
from nexuswiki.db.connection import Database
from nexuswiki.schemas import FileInfo

logger = logging.getLogger(__name__)


def guess_mime_type(file_name: str) -> str:
    """MIME type from a file name's extension, or the binary default."""
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or DEFAULT_MIME_TYPE


class AttachmentStore:
    """Blob store bound to an open database connection.

    Not-found is reported as None/False. Errors raised by SQLite propagate from
    ``upload``, ``download`` and ``find_meta`` so callers can tell an I/O
    failure from a missing blob; ``delete`` never raises.
    """

    def __init__(
        self,
        db: Database,
        chunk_size: int = CHUNK_SIZE_KB * 1024,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._db = db
        self._chunk_size = chunk_size
        self._now = now

    def upload(
        self,
        file_id: str,
        file_name: str,
        stream: BinaryIO,
        mime_type: Optional[str] = None,
    ) -> FileInfo:
        """Store the stream's bytes under ``file_id``, replacing any previous blob.

        Args:
            file_id: Unique key, normally a fresh UUID.
            file_name: Original file name, kept as metadata.
            stream: Readable binary stream; read to the end but not closed.
            mime_type: Type reported by the uploader. Guessed from
                ``file_name`` when empty.

        Returns:
            Metadata of the stored blob.
        """
        mime_type = mime_type or guess_mime_type(file_name)
        upload_date = self._now()
        length = 0
        chunk_index = 0

        with self._db.transaction():
            self._db.execute("DELETE FROM file_chunks WHERE file_id = ?", (file_id,))
            self._db.execute("DELETE FROM files WHERE id = ?", (file_id,))
            self._db.execute(
                """
                INSERT INTO files (id, filename, mime_type, length, chunks, upload_date)
                VALUES (?, ?, ?, 0, 0, ?)
                """,
                (file_id, file_name, mime_type, upload_date.isoformat()),
            )

            data = stream.read(self._chunk_size)
            while data:
                self._db.execute(
                    "INSERT INTO file_chunks (file_id, chunk_index, data) VALUES (?, ?, ?)",
                    (file_id, chunk_index, sqlite3.Binary(data)),
                )
                length += len(data)
                chunk_index += 1
                data = stream.read(self._chunk_size)

            self._db.execute(
                "UPDATE files SET length = ?, chunks = ? WHERE id = ?",
                (length, chunk_index, file_id),
            )

        logger.debug(f"Stored blob {file_id} ({file_name}, {length} bytes)")
        return FileInfo(
            id=file_id,
            filename=file_name,
            mime_type=mime_type,
            length=length,
            chunks=chunk_index,
            upload_date=upload_date,
        )

    def _row_to_info(self, row: sqlite3.Row) -> FileInfo:
        return FileInfo(
            id=row["id"],
            filename=row["filename"],
            mime_type=row["mime_type"],
            length=row["length"],
            chunks=row["chunks"],
            upload_date=datetime.fromisoformat(row["upload_date"]),
        )

    def find_meta(self, file_id: str) -> Optional[FileInfo]:
        """Get blob metadata. Returns None if not found."""
        row = self._db.execute(
            """
            SELECT id, filename, mime_type, length, chunks, upload_date
            FROM files
            WHERE id = ?
            """,
            (file_id,),
        ).fetchone()
        return self._row_to_info(row) if row else None

    def download(self, file_id: str) -> Optional[bytes]:
        """Get the full content of a blob. Returns None if not found."""
        if self.find_meta(file_id) is None:
            return None
        cursor = self._db.execute(
            "SELECT data FROM file_chunks WHERE file_id = ? ORDER BY chunk_index",
            (file_id,),
        )
        return b"".join(bytes(row["data"]) for row in cursor)

    def exists(self, file_id: str) -> bool:
        row = self._db.execute("SELECT 1 FROM files WHERE id = ?", (file_id,)).fetchone()
        return row is not None

    def delete(self, file_id: str) -> bool:
        """Delete a blob and its chunks.

        Returns:
            True if a blob was deleted. False if it did not exist or the store
            could not delete it (locked or corrupted database); the caller
            decides whether to retry or report it.
        """
        try:
            with self._db.transaction():
                self._db.execute("DELETE FROM file_chunks WHERE file_id = ?", (file_id,))
                cursor = self._db.execute("DELETE FROM files WHERE id = ?", (file_id,))
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.warning(f"Could not delete blob {file_id}: {e}")
            return False
        return deleted

    def list_files(self) -> list[FileInfo]:
        """Metadata of every stored blob, oldest upload first."""
        cursor = self._db.execute(
            """
            SELECT id, filename, mime_type, length, chunks, upload_date
            FROM files
            ORDER BY upload_date
            """
        )
        return [self._row_to_info(row) for row in cursor.fetchall()]
