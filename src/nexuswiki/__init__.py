"""Single-process wiki storage engine.

Pages with markdown content, attachments stored as blobs, an append-only
change history and a cached page listing, all in one SQLite file.
"""

from nexuswiki.cache import AllPagesCache
from nexuswiki.changelog import ChangeLog
from nexuswiki.repository import PageRepository
from nexuswiki.schemas import (
    Attachment,
    AttachmentUpload,
    ChangeRecord,
    FileInfo,
    OperationResult,
    Page,
    PageInput,
)
from nexuswiki.service import SaveOutcome, WikiService

__all__ = [
    "AllPagesCache",
    "Attachment",
    "AttachmentUpload",
    "ChangeLog",
    "ChangeRecord",
    "FileInfo",
    "OperationResult",
    "Page",
    "PageInput",
    "PageRepository",
    "SaveOutcome",
    "WikiService",
]
