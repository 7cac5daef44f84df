"""
Block renderer for Lorekeeper.

This module turns a block document into a presentation tree, one node per
block, in original order. Rendering never raises: absent or empty documents
render an explicit empty state, and unrecognized or malformed blocks render a
visible placeholder naming the block type.
"""

import json
import logging
from typing import Any, Optional

from ..config import config
from ..models import (
    Block,
    CodeData,
    DelimiterData,
    HeaderData,
    ImageData,
    ListData,
    ParagraphData,
    QuoteData,
    TableData,
    parse_document,
)
from .nodes import Node, element, text, trusted
from .registry import BlockRendererRegistry, BlockType
from .sanitizer import default_sanitizer, safe_url

# Each heading rank is styled independently
HEADER_TAGS = {1: "h1", 2: "h2", 3: "h3", 4: "h4", 5: "h5", 6: "h6"}

HEADER_CLASSES = {
    1: "text-4xl font-bold text-brand-950 mb-6",
    2: "text-3xl font-semibold text-brand-950 mb-5",
    3: "text-2xl font-semibold text-brand-950 mb-4",
    4: "text-xl font-medium text-brand-950 mb-3",
    5: "text-lg font-medium text-brand-950 mb-2",
    6: "text-base font-medium text-brand-950 mb-2",
}

PARAGRAPH_CLASS = "text-brand-900 mb-4 leading-relaxed"
ORDERED_LIST_CLASS = "list-decimal list-inside mb-4 text-brand-900 space-y-1"
UNORDERED_LIST_CLASS = "list-disc list-inside mb-4 text-brand-900 space-y-1"
QUOTE_CLASS = "border-l-4 border-brand-300 pl-6 py-2 my-6 bg-brand-50 rounded-r"
QUOTE_TEXT_CLASS = "text-brand-900 italic text-lg mb-2"
QUOTE_CAPTION_CLASS = "text-brand-600 text-sm font-medium"
DELIMITER_DOT_CLASS = "w-1 h-1 bg-brand-400 rounded-full"
CODE_CLASS = "bg-gray-900 text-green-400 p-4 rounded-lg mb-4 overflow-x-auto"
TABLE_HEADER_ROW_CLASS = "bg-brand-100"
TABLE_BODY_ROW_CLASS = "bg-brand-50"
TABLE_CELL_CLASS = "border border-brand-200 px-4 py-2 text-brand-900"
IMAGE_CAPTION_CLASS = "text-center text-brand-600 text-sm mt-2 italic"
IMAGE_INVALID_CLASS = "my-6 p-4 bg-red-50 border border-red-200 rounded-lg"
UNSUPPORTED_CLASS = "text-brand-500 italic mb-4"
EMPTY_CLASS = "text-brand-500"
DOCUMENT_CLASS = "prose prose-brand max-w-none"

IMAGE_SCHEMES = frozenset({"http", "https"})


class BlockRenderer:
    """
    Renders documents into presentation trees.

    The renderer holds no mutable state; the same input always produces an
    equal tree.
    """

    def __init__(self, sanitizer: Any = None, registry: Optional[BlockRendererRegistry] = None,
                 empty_message: Optional[str] = None):
        """
        Initialize the renderer.

        Args:
            sanitizer: Object with a ``sanitize(str) -> str`` method for inline markup
            registry: Block type registry (defaults to the built-in types)
            empty_message: Text of the empty-state node (defaults to config value)
        """
        self.sanitizer = sanitizer or default_sanitizer
        self.registry = registry or default_registry
        self.empty_message = empty_message or config.empty_message

    def inline(self, value: str) -> Node:
        """Route user-authored inline markup through the sanitizer."""
        return trusted(self.sanitizer.sanitize(value))

    def render_document(self, value: Any, class_name: str = "") -> Node:
        """
        Render a document.

        Args:
            value: A Document, mapping, serialized string, or None
            class_name: Extra classes for the wrapper element

        Returns:
            The wrapper node, or the empty-state node for absent, malformed
            or block-free input
        """
        document = parse_document(value)
        if document is None or document.is_empty:
            return self.empty_state()

        wrapper_class = f"{DOCUMENT_CLASS} {class_name}".strip()
        return element(
            "div",
            *(self.render_block(block) for block in document.blocks),
            class_name=wrapper_class,
        )

    def render_block(self, block: Block) -> Node:
        registration = self.registry.get(block.type)
        if registration is None:
            logging.warning(f"Unsupported block type '{block.type}' (block {block.id})")
            return self.placeholder(block)

        try:
            data = registration.data_model.model_validate(block.data)
            return registration.render(self, data, block.id)
        except ValueError as e:
            logging.warning(f"Malformed '{block.type}' block {block.id}: {e}")
            return self.placeholder(block)

    def placeholder(self, block: Block) -> Node:
        name = block.type or "unknown"
        return element(
            "div",
            text(f"[Unsupported block type: {name}]"),
            class_name=UNSUPPORTED_CLASS,
            key=block.id,
            **{"data-block-type": name},
        )

    def empty_state(self) -> Node:
        return element("div", text(self.empty_message), class_name=EMPTY_CLASS)


def _render_header(renderer: BlockRenderer, data: HeaderData, key: Optional[str]) -> Node:
    return element(
        HEADER_TAGS[data.level],
        renderer.inline(data.text),
        class_name=HEADER_CLASSES[data.level],
        key=key,
    )


def _render_paragraph(renderer: BlockRenderer, data: ParagraphData, key: Optional[str]) -> Node:
    return element("p", renderer.inline(data.text), class_name=PARAGRAPH_CLASS, key=key)


def _render_list(renderer: BlockRenderer, data: ListData, key: Optional[str]) -> Node:
    # Unknown styles fall back to bullets
    if data.style == "ordered":
        tag, list_class = "ol", ORDERED_LIST_CLASS
    else:
        tag, list_class = "ul", UNORDERED_LIST_CLASS

    items = [
        element("li", renderer.inline(item), key=str(index))
        for index, item in enumerate(data.items)
    ]
    return element(tag, *items, class_name=list_class, key=key)


def _render_quote(renderer: BlockRenderer, data: QuoteData, key: Optional[str]) -> Node:
    children = [element("p", renderer.inline(data.text), class_name=QUOTE_TEXT_CLASS)]
    if data.caption and data.caption.strip():
        children.append(element(
            "cite",
            text("— "),
            renderer.inline(data.caption),
            class_name=QUOTE_CAPTION_CLASS,
        ))
    return element("blockquote", *children, class_name=QUOTE_CLASS, key=key)


def _render_delimiter(renderer: BlockRenderer, data: DelimiterData, key: Optional[str]) -> Node:
    dots = [element("div", class_name=DELIMITER_DOT_CLASS) for _ in range(3)]
    return element(
        "div",
        element("div", *dots, class_name="flex space-x-2"),
        class_name="flex justify-center my-8",
        key=key,
    )


def _render_code(renderer: BlockRenderer, data: CodeData, key: Optional[str]) -> Node:
    return element("pre", element("code", text(data.code)), class_name=CODE_CLASS, key=key)


def _render_table(renderer: BlockRenderer, data: TableData, key: Optional[str]) -> Node:
    rows = []
    for row_index, row in enumerate(data.content):
        is_header = row_index == 0
        cell_class = f"{TABLE_CELL_CLASS} font-semibold" if is_header else TABLE_CELL_CLASS
        # Rows keep their own width; ragged tables render as written
        cells = [
            element("td", renderer.inline(cell), class_name=cell_class, key=str(cell_index))
            for cell_index, cell in enumerate(row)
        ]
        rows.append(element(
            "tr",
            *cells,
            class_name=TABLE_HEADER_ROW_CLASS if is_header else TABLE_BODY_ROW_CLASS,
            key=str(row_index),
        ))

    table = element(
        "table",
        element("tbody", *rows),
        class_name="min-w-full border border-brand-200 rounded-lg",
    )
    return element("div", table, class_name="overflow-x-auto mb-4", key=key)


def _render_image(renderer: BlockRenderer, data: ImageData, key: Optional[str]) -> Node:
    src = safe_url(data.source, IMAGE_SCHEMES)
    if src is None:
        logging.warning(f"Image block {key} has no usable source: {data.source!r}")
        return element(
            "div",
            element("p", text("Image data missing or invalid"), class_name="text-red-600 text-sm"),
            element(
                "pre",
                text(json.dumps(data.model_dump(mode="json", exclude_none=True), indent=2)),
                class_name="text-xs text-gray-600 mt-2",
            ),
            class_name=IMAGE_INVALID_CLASS,
            key=key,
        )

    classes = ["rounded-lg mx-auto", "w-full" if data.stretched else "max-w-lg"]
    if data.withBorder:
        classes.append("border border-brand-200")
    if data.withBackground:
        classes.append("bg-brand-50 p-4")

    has_caption = bool(data.caption and data.caption.strip())
    children = [element(
        "img",
        class_name=" ".join(classes),
        src=src,
        alt=data.caption if has_caption else "Content image",
    )]
    if has_caption:
        children.append(element("p", renderer.inline(data.caption), class_name=IMAGE_CAPTION_CLASS))
    return element("div", *children, class_name="my-6", key=key)


def register_builtin_types(registry: BlockRendererRegistry) -> None:
    """Register the recognized block variants."""
    registry.register(BlockType("header", "Heading of rank 1-6", HeaderData, _render_header))
    registry.register(BlockType("paragraph", "Body text", ParagraphData, _render_paragraph))
    registry.register(BlockType("list", "Bulleted or numbered list", ListData, _render_list))
    registry.register(BlockType("quote", "Block quotation with attribution", QuoteData, _render_quote))
    registry.register(BlockType("delimiter", "Section break", DelimiterData, _render_delimiter))
    registry.register(BlockType("code", "Literal code block", CodeData, _render_code))
    registry.register(BlockType("table", "Tabular data", TableData, _render_table))
    registry.register(BlockType("image", "Embedded image", ImageData, _render_image))


# Global registry of built-in block types
default_registry = BlockRendererRegistry()
register_builtin_types(default_registry)


def render_document(value: Any, class_name: str = "") -> Node:
    """Render a document with the default renderer."""
    return BlockRenderer().render_document(value, class_name)


def render_block(block: Block) -> Node:
    return BlockRenderer().render_block(block)


def render_html(value: Any, class_name: str = "") -> str:
    """Render a document straight to an HTML string."""
    return render_document(value, class_name).to_html()
