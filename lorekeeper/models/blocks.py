"""
Block document models for Lorekeeper.

This module defines the portable, block-structured document format used for
lore entries, event descriptions, spell descriptions and location write-ups.
The model accepts any block type; recognition happens at render time so that
documents written before a block type existed always load.
"""

import json
import logging
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Block(BaseModel):
    """
    One typed unit of authored content within a document.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(
        default=None,
        description="Identifier used only as a stable render-list key"
    )

    type: str = Field(
        default="",
        description="Discriminator selecting the block variant (any string is accepted)"
    )

    data: Any = Field(
        default_factory=dict,
        description="Variant-specific payload, validated when the block is rendered"
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value: Any) -> Any:
        return {} if value is None else value


class Document(BaseModel):
    """
    An ordered sequence of blocks representing one piece of rich-text content.

    Block order is significant and preserved exactly. The ``time`` and
    ``version`` fields are the metadata block editors write alongside the
    block list; unknown top-level keys survive a round trip.
    """

    model_config = ConfigDict(extra="allow")

    time: Optional[int] = Field(
        default=None,
        description="Save timestamp written by the editor (milliseconds since epoch)"
    )

    blocks: List[Block] = Field(
        default_factory=list,
        description="The ordered block list"
    )

    version: Optional[str] = Field(
        default=None,
        description="Editor version that produced the document"
    )

    @field_validator("time", mode="before")
    @classmethod
    def _lenient_time(cls, value: Any) -> Any:
        # Metadata never invalidates the block list; unusable values are dropped
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            logging.debug(f"Dropping unusable document time: {value!r}")
            return None

    @field_validator("version", mode="before")
    @classmethod
    def _lenient_version(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        logging.debug(f"Dropping unusable document version: {value!r}")
        return None

    @field_validator("blocks", mode="before")
    @classmethod
    def _tolerate_bad_entries(cls, value: Any) -> Any:
        """Turn entries that are not objects into untyped blocks instead of rejecting the list."""
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        entries = []
        for index, item in enumerate(value):
            if isinstance(item, (Mapping, Block)):
                entries.append(item)
            else:
                logging.debug(f"Block {index} is not an object, keeping it as an untyped block")
                entries.append({})
        return entries

    @classmethod
    def empty(cls) -> "Document":
        """Create the empty document a newly authored entry starts with."""
        return cls(blocks=[])

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def to_json(self) -> str:
        """
        Serialize to the transport string.

        Block order and per-type field names are preserved; absent metadata
        and absent block ids are omitted.
        """
        payload = self.model_dump(mode="json")
        for key in ("time", "version"):
            if payload.get(key) is None:
                payload.pop(key, None)
        for block in payload["blocks"]:
            if block.get("id") is None:
                block.pop("id", None)
        return json.dumps(payload, ensure_ascii=False)


# Typed payloads for the recognized block variants


class HeaderData(BaseModel):
    level: int = Field(..., ge=1, le=6, description="Heading rank")
    text: str = Field(..., description="Inline-HTML-bearing heading text")


class ParagraphData(BaseModel):
    text: str = Field(..., description="Inline-HTML-bearing body text")


class ListData(BaseModel):
    style: str = Field(default="unordered", description="'ordered' or anything else for bullets")
    items: List[str] = Field(default_factory=list, description="Inline-HTML-bearing list items")


class QuoteData(BaseModel):
    text: str = Field(..., description="Inline-HTML-bearing quotation")
    caption: Optional[str] = Field(default=None, description="Optional attribution")


class DelimiterData(BaseModel):
    pass


class CodeData(BaseModel):
    code: str = Field(..., description="Literal code, never interpreted as HTML")


class TableData(BaseModel):
    content: List[List[str]] = Field(
        default_factory=list,
        description="Rows of inline-HTML-bearing cells; row 0 is styled as the header"
    )


class ImageFile(BaseModel):
    url: Optional[str] = Field(default=None, description="Location of the stored attachment")


class ImageData(BaseModel):
    file: Optional[ImageFile] = None
    # Older editor versions stored the location directly on the block
    url: Optional[str] = None
    src: Optional[str] = None
    caption: Optional[str] = None
    stretched: Optional[bool] = False
    withBorder: Optional[bool] = False
    withBackground: Optional[bool] = False

    @property
    def source(self) -> Optional[str]:
        """The image location, preferring ``file.url`` over the legacy fields."""
        return (self.file.url if self.file else None) or self.url or self.src or None


def parse_document(value: Any) -> Optional[Document]:
    """
    Interpret a value as a document.

    Args:
        value: A Document, a mapping, a serialized JSON string (or bytes), or None

    Returns:
        The parsed Document, or None when the value is absent or not a
        well-formed document. Never raises.
    """
    if value is None:
        return None
    if isinstance(value, Document):
        return value

    try:
        if isinstance(value, (str, bytes, bytearray)):
            if not value.strip():
                return None
            return Document.model_validate_json(value)
        if isinstance(value, Mapping):
            return Document.model_validate(dict(value))
    except ValidationError as e:
        logging.debug(f"Value is not a well-formed document: {e.error_count()} validation error(s)")
        return None

    logging.debug(f"Cannot interpret {type(value).__name__} as a document")
    return None


def is_well_formed(value: Any) -> bool:
    """Return True if the value parses as a document."""
    return parse_document(value) is not None


def is_empty(value: Any) -> bool:
    """Return True for absent or malformed input and for documents without blocks."""
    document = parse_document(value)
    return document is None or document.is_empty
