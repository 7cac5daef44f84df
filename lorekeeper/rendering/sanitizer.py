"""
Inline markup sanitizer for Lorekeeper.

Every user-authored text, list item, table cell and caption is passed through
an allow-list filter before it reaches the presentation tree. Allowed inline
tags are re-emitted in canonical form, script-like elements are dropped
together with their content, and everything else is reduced to escaped text.
"""

import html
import logging
import re
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup
from bs4.element import PreformattedString

ALLOWED_TAGS = frozenset({
    "a", "b", "br", "code", "em", "i", "mark", "s", "span", "strong", "sub", "sup", "u",
})

# Elements whose content must never reach the output, not even as text
DROPPED_CONTENT_TAGS = [
    "embed", "iframe", "noscript", "object", "script", "style", "template", "textarea", "title",
]

CLASS_ATTRIBUTE_TAGS = frozenset({"code", "mark", "span"})

SAFE_URL_SCHEMES = frozenset({"http", "https", "mailto"})

_CLASS_VALUE = re.compile(r"^[\w\s-]*$")
_URL_NOISE = re.compile(r"[\x00-\x20\x7f]+")


def safe_url(value: Optional[str], schemes: frozenset = SAFE_URL_SCHEMES) -> Optional[str]:
    """
    Return the URL if its scheme is allowed (or it is relative), else None.

    Whitespace and control characters are ignored when detecting the scheme,
    the way browsers ignore them.
    """
    if not value or not value.strip():
        return None
    probe = _URL_NOISE.sub("", value)
    try:
        scheme = urlparse(probe).scheme.lower()
    except ValueError:
        return None
    if scheme and scheme not in schemes:
        return None
    return value.strip()


def _attribute_value(value) -> str:
    # Multi-valued attributes such as class come back as lists
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


class InlineSanitizer:
    """
    Allow-list sanitizer for inline-HTML-bearing fields.

    Any object with a compatible ``sanitize`` method can stand in for this one
    when a renderer is constructed.
    """

    def sanitize(self, value: str) -> str:
        if not isinstance(value, str):
            value = str(value)
        if not value:
            return ""

        try:
            soup = BeautifulSoup(value, "html.parser")
        except ParserRejectedMarkup as e:
            logging.warning(f"Inline markup rejected by the parser, rendering as text: {e}")
            return html.escape(value, quote=False)

        for tag in soup.find_all(DROPPED_CONTENT_TAGS):
            if not tag.decomposed:
                tag.decompose()

        try:
            return "".join(self._render(child) for child in soup.children)
        except RecursionError:
            logging.warning("Inline markup nested too deeply, rendering as text")
            return html.escape(soup.get_text(), quote=False)

    def _render(self, node) -> str:
        if isinstance(node, Tag):
            inner = "".join(self._render(child) for child in node.children)
            if node.name not in ALLOWED_TAGS:
                return inner
            if node.name == "br":
                return "<br>"
            return f"<{node.name}{self._attributes(node)}>{inner}</{node.name}>"

        # Comments, CDATA, doctypes and processing instructions never reach the output
        if isinstance(node, PreformattedString):
            return ""
        if isinstance(node, NavigableString):
            return html.escape(str(node), quote=False)
        return ""

    @staticmethod
    def _attributes(node: Tag) -> str:
        kept = []
        for name, raw in node.attrs.items():
            value = _attribute_value(raw)
            if node.name == "a" and name == "href":
                href = safe_url(value)
                if href is not None:
                    kept.append(("href", href))
            elif node.name in CLASS_ATTRIBUTE_TAGS and name == "class" and _CLASS_VALUE.match(value):
                kept.append(("class", value))
        return "".join(f' {name}="{html.escape(value, quote=True)}"' for name, value in kept)


default_sanitizer = InlineSanitizer()
