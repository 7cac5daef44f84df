"""
Presentation tree for rendered documents.

Nodes are immutable so that rendering a document twice yields equal trees.
Text leaves are always escaped on output; markup leaves are inserted verbatim
and must only ever hold sanitizer output.
"""

import html
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

VOID_TAGS = frozenset({"area", "br", "hr", "img", "wbr"})


@dataclass(frozen=True)
class Node:
    """
    One node of the presentation tree.

    Exactly one of ``tag``, ``text`` or ``markup`` identifies the node kind:
    an element, an opaque text leaf, or a trusted inline-markup leaf.
    """
    tag: Optional[str] = None
    attrs: Tuple[Tuple[str, str], ...] = ()
    children: Tuple["Node", ...] = ()
    text: Optional[str] = None
    markup: Optional[str] = None
    key: Optional[str] = None

    @property
    def attributes(self) -> dict:
        return dict(self.attrs)

    @property
    def class_name(self) -> str:
        return self.attributes.get("class", "")

    def iter_nodes(self) -> Iterator["Node"]:
        """Walk the tree depth-first, this node included."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def find_all(self, tag: str) -> list:
        return [node for node in self.iter_nodes() if node.tag == tag]

    def text_content(self) -> str:
        """Concatenated text of all leaves, markup included as written."""
        if self.text is not None:
            return self.text
        if self.markup is not None:
            return self.markup
        return "".join(child.text_content() for child in self.children)

    def to_html(self) -> str:
        if self.text is not None:
            return html.escape(self.text, quote=False)
        if self.markup is not None:
            return self.markup
        if self.tag is None:
            return "".join(child.to_html() for child in self.children)

        attrs = "".join(
            f' {name}="{html.escape(value, quote=True)}"' for name, value in self.attrs
        )
        if self.tag in VOID_TAGS:
            return f"<{self.tag}{attrs}>"
        inner = "".join(child.to_html() for child in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"


def element(tag: str, *children: Node, class_name: Optional[str] = None,
            key: Optional[str] = None, **attrs: str) -> Node:
    """
    Build an element node.

    Attribute names containing dashes can be passed with ``**{"data-x": ...}``.
    Empty class names are omitted.
    """
    pairs = []
    if class_name:
        pairs.append(("class", class_name))
    pairs.extend((name, str(value)) for name, value in attrs.items())
    return Node(tag=tag, attrs=tuple(pairs), children=tuple(children), key=key)


def text(value: str) -> Node:
    return Node(text=value)


def trusted(markup: str) -> Node:
    return Node(markup=markup)
