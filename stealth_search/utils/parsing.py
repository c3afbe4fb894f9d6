"""HTML parsing helpers using Selectolax."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from selectolax.parser import HTMLParser, Node


def parse_html(html: str) -> HTMLParser:
    """Parse HTML string into a Selectolax HTMLParser tree."""
    return HTMLParser(html)


def extract_visible_text(html: str) -> str:
    """
    Extract visible text from HTML, ignoring script/style/noscript tags.

    Selectolax's text() includes script contents, so those tags are stripped first.
    """
    tree = HTMLParser(html)
    tree.strip_tags(["script", "style", "noscript", "template"])

    root = tree.body or tree.root
    if root is None:
        return ""

    return " ".join(root.text(separator=" ", strip=True).split())


def meta_content(tree: HTMLParser, name: str) -> str:
    """Content of <meta name=...> or <meta property=...>, or an empty string."""
    node = tree.css_first(f'meta[name="{name}"]') or tree.css_first(
        f'meta[property="{name}"]'
    )
    if node is None:
        return ""
    return (node.attributes.get("content") or "").strip()




# ==== FIELD STRATEGIES ==== #

@dataclass(frozen=True)
class FieldStrategy:
    """
    Ordered named selector fallbacks for one field.

    The first selector yielding a non-empty value wins. With ``attr`` set
    the attribute value is read instead of the node text.

    Example:
        title = FieldStrategy("title", ("h3", ".LC20lb"))
        title.extract(container)  # -> "Example Domain" or ""
    """

    name: str
    selectors: Sequence[str]
    attr: str | None = None

    def _value(self, node: Node) -> str:
        if self.attr is None:
            return " ".join(node.text(separator=" ", strip=True).split())
        return (node.attributes.get(self.attr) or "").strip()

    def extract(self, node: Node) -> str:
        for selector in self.selectors:
            for match in node.css(selector):
                value = self._value(match)
                if value:
                    return value
        return ""

    def containers(self, tree: HTMLParser | Node) -> list[Node]:
        """Nodes matched by the first selector that matches anything."""
        for selector in self.selectors:
            nodes = tree.css(selector)
            if nodes:
                return nodes
        return []
