from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from lxml import etree, html as lxml_html

from .selector_rules import INTERACTIVE_TAGS, normalize_space, xpath_normalize_space

_EMPTY_DOCUMENT = b"<html><head></head><body></body></html>"


class HtmlDocument:
    """Read-only view over one parsed page.

    Every lookup the inference engine needs goes through this class so the
    strategies never touch lxml directly.
    """

    def __init__(self, root: lxml_html.HtmlElement) -> None:
        self._root = root
        self._tree = root.getroottree()

    @classmethod
    def parse(cls, markup: str | bytes) -> HtmlDocument:
        raw = markup.encode("utf-8") if isinstance(markup, str) else markup
        if not raw.strip():
            raw = _EMPTY_DOCUMENT
        parser = lxml_html.HTMLParser(encoding="utf-8")
        try:
            root = lxml_html.document_fromstring(raw, parser=parser)
        except etree.ParserError:
            root = lxml_html.document_fromstring(_EMPTY_DOCUMENT, parser=parser)
        return cls(root)

    @property
    def root(self) -> lxml_html.HtmlElement:
        return self._root

    @property
    def tree(self) -> etree._ElementTree:
        return self._tree

    @property
    def body(self) -> lxml_html.HtmlElement | None:
        return self._root.find("body")

    @property
    def title(self) -> str:
        node = self._root.find(".//title")
        if node is None:
            return ""
        return normalize_space(node.text_content())

    def interactive_elements(self) -> Iterator[lxml_html.HtmlElement]:
        for element in self._root.iter(*INTERACTIVE_TAGS):
            if element.tag == "input" and (element.get("type") or "").strip().lower() == "hidden":
                continue
            yield element

    @staticmethod
    def tag(element: etree._Element) -> str:
        return str(element.tag).lower()

    @staticmethod
    def attr(element: etree._Element, key: str) -> str | None:
        return element.get(key)

    @staticmethod
    def text(element: etree._Element) -> str:
        return xpath_normalize_space(element.text_content())

    @staticmethod
    def parent(element: etree._Element) -> etree._Element | None:
        parent = element.getparent()
        if parent is None or not _is_element(parent):
            return None
        return parent

    @staticmethod
    def element_children(element: etree._Element) -> list[etree._Element]:
        return [child for child in element if _is_element(child)]

    @staticmethod
    def preceding_siblings(element: etree._Element) -> Iterator[etree._Element]:
        """Nearest first."""
        for sibling in element.itersiblings(preceding=True):
            if _is_element(sibling):
                yield sibling


@dataclass(slots=True)
class DomAnalyzer:
    element: etree._Element
    document: HtmlDocument

    @property
    def tag(self) -> str:
        return HtmlDocument.tag(self.element)

    def attr(self, key: str) -> str | None:
        # Blank values count as missing; selectors are built from the raw value.
        raw = HtmlDocument.attr(self.element, key)
        if raw is None or not raw.strip():
            return None
        return raw

    @property
    def text(self) -> str:
        return HtmlDocument.text(self.element)

    @property
    def is_anchor(self) -> bool:
        return self.tag == "a"


def _is_element(node: etree._Element) -> bool:
    # Comments and processing instructions expose a callable tag.
    return isinstance(node.tag, str)
