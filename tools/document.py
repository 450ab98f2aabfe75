"""Parsed HTML document helpers built on selectolax."""

from typing import Optional

from selectolax.parser import HTMLParser, Node


class Document:
    """A parsed HTML page with CSS selection helpers.

    Text and attribute accessors return None rather than empty strings, so
    callers can treat "missing" and "blank" the same way.
    """

    def __init__(self, html: str, url: str = ""):
        self.url = url
        self._tree = HTMLParser(html or "")

    @classmethod
    def parse(cls, html: str, url: str = "") -> "Document":
        return cls(html, url)

    def select(self, css: str) -> list[Node]:
        return self._tree.css(css) or []

    def select_one(self, css: str) -> Optional[Node]:
        return self._tree.css_first(css)

    def text(self, css: str) -> Optional[str]:
        return text_of(self.select_one(css))

    def attr(self, css: str, name: str) -> Optional[str]:
        return attr_of(self.select_one(css), name)

    def meta(self, prop: str) -> Optional[str]:
        """Content of a `<meta property=...>` (OpenGraph) or `<meta name=...>` tag."""
        node = self.select_one(f'meta[property="{prop}"]') or self.select_one(f'meta[name="{prop}"]')
        return attr_of(node, "content")


def text_of(node: Optional[Node], separator: str = "") -> Optional[str]:
    if node is None:
        return None
    text = node.text(separator=separator, strip=True)
    return text or None


def attr_of(node: Optional[Node], name: str) -> Optional[str]:
    if node is None:
        return None
    value = node.attributes.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def select_in(node: Node, css: str) -> Optional[Node]:
    """First descendant of `node` matching `css`."""
    return node.css_first(css)
