"""
Lorekeeper: rich-content documents for a worldbuilding story bible.

Provides the block document model, its renderer, and the attachment
reclamation that keeps the image store in step with saved documents.
"""

__version__ = "0.1.0"
__author__ = "Lorekeeper Project"

# Import main components
from .models import Block, Document, parse_document, is_well_formed, is_empty
from .rendering import BlockRenderer, render_document, render_html
from .attachments import (
    AttachmentReclaimer,
    BaseStorage,
    InMemoryStorage,
    SupabaseStorage,
    extract_attachment_urls,
)

__all__ = [
    "Block",
    "Document",
    "parse_document",
    "is_well_formed",
    "is_empty",
    "BlockRenderer",
    "render_document",
    "render_html",
    "AttachmentReclaimer",
    "BaseStorage",
    "InMemoryStorage",
    "SupabaseStorage",
    "extract_attachment_urls",
]
