"""Data models for Lorekeeper."""

from .blocks import (
    Block,
    Document,
    HeaderData,
    ParagraphData,
    ListData,
    QuoteData,
    DelimiterData,
    CodeData,
    TableData,
    ImageData,
    ImageFile,
    parse_document,
    is_well_formed,
    is_empty,
)
from .reports import DeletionResult, ReclamationPlan, ReclaimReport

__all__ = [
    "Block",
    "Document",
    "HeaderData",
    "ParagraphData",
    "ListData",
    "QuoteData",
    "DelimiterData",
    "CodeData",
    "TableData",
    "ImageData",
    "ImageFile",
    "parse_document",
    "is_well_formed",
    "is_empty",
    "DeletionResult",
    "ReclamationPlan",
    "ReclaimReport",
]
