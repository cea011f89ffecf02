"""Blob storage for page attachments."""

from nexuswiki.storage.blobs import AttachmentStore

__all__ = ["AttachmentStore"]
