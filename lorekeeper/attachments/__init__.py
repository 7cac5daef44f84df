"""Attachment extraction, storage collaborators and reclamation."""

from .extractor import extract_attachment_urls
from .storage import (
    BaseStorage,
    SupabaseStorage,
    DeleteEndpointStorage,
    InMemoryStorage,
    StorageError,
    create_storage,
)
from .reclaimer import AttachmentReclaimer, reclaim_sync

__all__ = [
    "extract_attachment_urls",
    "BaseStorage",
    "SupabaseStorage",
    "DeleteEndpointStorage",
    "InMemoryStorage",
    "StorageError",
    "create_storage",
    "AttachmentReclaimer",
    "reclaim_sync",
]
