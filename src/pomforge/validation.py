from __future__ import annotations

from typing import Literal

from lxml import etree
from lxml.cssselect import CSSSelector

from .document import HtmlDocument
from .models import CandidateLocator
from .selector_rules import contains_text_xpath, exact_text_xpath

SelectorDialect = Literal["css", "xpath"]


def count_css_matches(document: HtmlDocument, selector: str) -> int:
    return len(_css_nodes(document, selector))


def count_xpath_matches(document: HtmlDocument, xpath: str) -> int:
    return len(xpath_matches(document, xpath))


def count_locator_matches(document: HtmlDocument, dialect: str, expression: str) -> int:
    text = str(expression or "").strip()
    if not text:
        return 0
    if dialect == "css":
        return count_css_matches(document, text)
    if dialect == "xpath":
        return count_xpath_matches(document, text)
    return 0


def xpath_matches(document: HtmlDocument, xpath: str) -> list[etree._Element]:
    """Document-ordered element matches; malformed expressions match nothing."""
    try:
        result = document.tree.xpath(xpath)
    except Exception:
        return []
    if not isinstance(result, list):
        return []
    return [node for node in result if isinstance(node, etree._Element)]


def candidate_expression(candidate: CandidateLocator) -> tuple[SelectorDialect, str]:
    kind = candidate.kind
    value = candidate.value
    if kind == "id":
        return "css", f"#{value}"
    if kind == "name":
        return "css", f'[name="{value}"]'
    if kind == "linkText":
        return "xpath", exact_text_xpath("a", value)
    if kind == "partialLinkText":
        return "xpath", contains_text_xpath("a", value)
    if kind == "className":
        return "css", f".{value}"
    if kind in {"css", "tagName"}:
        return "css", value
    return "xpath", value


def count_candidate_matches(document: HtmlDocument, candidate: CandidateLocator) -> int:
    dialect, expression = candidate_expression(candidate)
    return count_locator_matches(document, dialect, expression)


def _css_nodes(document: HtmlDocument, selector: str) -> list[etree._Element]:
    try:
        matcher = CSSSelector(selector, translator="html")
        return list(matcher(document.root))
    except Exception:
        return []
