"""Wiki record schemas.

Records are frozen: an edit loads a page, builds a new value with
``model_copy(update=...)`` and writes that value back, so a page handed to
one caller can never change underneath another.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional

from pydantic import BaseModel, ConfigDict, Field


class Attachment(BaseModel):
    """A file attached to a page."""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(..., description="Key of the blob in the attachment store")
    file_name: str = Field(..., description="Original file name")
    mime_type: str = Field(..., description="MIME type reported at upload")
    last_modified_utc: datetime = Field(..., description="Upload timestamp")


class Page(BaseModel):
    """A wiki page."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Database ID")
    name: str = Field(..., description="Canonical slug")
    content: str = Field("", description="Raw markdown content")
    last_modified_utc: datetime = Field(..., description="Last create/update timestamp")
    attachments: tuple[Attachment, ...] = Field(
        default=(),
        description="Attachments owned by the page, in upload order",
    )


class ChangeRecord(BaseModel):
    """An entry in the append-only change history."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Description of the action")
    date: datetime = Field(..., description="When the action happened")


class AttachmentUpload:
    """File part of a page form, already extracted by the HTTP layer."""

    def __init__(self, file_name: str, content_type: str, stream: BinaryIO) -> None:
        self.file_name = file_name
        self.content_type = content_type
        self.stream = stream

    def __repr__(self) -> str:
        return f"AttachmentUpload(file_name={self.file_name!r}, content_type={self.content_type!r})"

    @classmethod
    def from_bytes(cls, file_name: str, content_type: str, data: bytes) -> AttachmentUpload:
        return cls(file_name=file_name, content_type=content_type, stream=io.BytesIO(data))

    @property
    def is_empty(self) -> bool:
        """Browsers submit an empty file part when no file was chosen."""
        return not self.file_name or not self.file_name.strip()


class PageInput(BaseModel):
    """Page form submission."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: Optional[int] = Field(None, description="Existing page ID, None to create")
    name: str = Field("", description="Proposed page name")
    content: str = Field("", description="Markdown content")
    attachment: Optional[AttachmentUpload] = Field(None, description="Uploaded file")


class FileInfo(BaseModel):
    """Metadata of a stored blob."""

    model_config = ConfigDict(frozen=True)

    id: str
    filename: str
    mime_type: str
    length: int
    chunks: int
    upload_date: datetime


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a repository mutation.

    ``error`` holds the exception behind an I/O failure; ``reason`` explains
    a precondition failure that has no exception (missing page, home page).
    """

    ok: bool
    page: Optional[Page] = None
    error: Optional[BaseException] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, page: Optional[Page] = None) -> OperationResult:
        return cls(ok=True, page=page)

    @classmethod
    def rejected(cls, reason: str, page: Optional[Page] = None) -> OperationResult:
        return cls(ok=False, page=page, reason=reason)

    @classmethod
    def failed(cls, error: BaseException, page: Optional[Page] = None) -> OperationResult:
        return cls(ok=False, page=page, error=error, reason=str(error))
