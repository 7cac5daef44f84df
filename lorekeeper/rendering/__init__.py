"""Document rendering for Lorekeeper."""

from .nodes import Node, element, text, trusted
from .registry import BlockRendererRegistry, BlockType
from .renderer import BlockRenderer, default_registry, render_block, render_document, render_html
from .sanitizer import InlineSanitizer, safe_url

__all__ = [
    "Node",
    "element",
    "text",
    "trusted",
    "BlockRendererRegistry",
    "BlockType",
    "BlockRenderer",
    "default_registry",
    "render_block",
    "render_document",
    "render_html",
    "InlineSanitizer",
    "safe_url",
]
