"""
Attachment extraction for Lorekeeper.

This module finds the attachments a document references. Only image blocks
reference attachments; every other block type is ignored.
"""

from typing import Any, FrozenSet

from ..models import parse_document


def extract_attachment_urls(value: Any) -> FrozenSet[str]:
    """
    Collect the attachment URLs referenced by a document.

    Args:
        value: A Document, mapping, serialized string, or None

    Returns:
        The set of non-empty ``data.file.url`` strings across all image
        blocks. Input that does not parse as a document (including legacy
        plain text) yields the empty set.
    """
    document = parse_document(value)
    if document is None:
        return frozenset()

    urls = set()
    for block in document.blocks:
        if block.type != "image" or not isinstance(block.data, dict):
            continue
        file_info = block.data.get("file")
        if not isinstance(file_info, dict):
            continue
        url = file_info.get("url")
        if isinstance(url, str) and url:
            urls.add(url)
    return frozenset(urls)
