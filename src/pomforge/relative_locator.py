from __future__ import annotations

from dataclasses import dataclass

from lxml import etree

from .document import HtmlDocument
from .selector_rules import exact_text_xpath
from .validation import count_xpath_matches

SIBLING_ANCHOR_SCORE = 95
CONTAINER_ANCHOR_SCORE = 92


@dataclass(frozen=True, slots=True)
class AnchorLocator:
    xpath: str
    score: int
    rule: str
    anchor_text: str


def build_anchor_locator(element: etree._Element, document: HtmlDocument) -> AnchorLocator | None:
    """Locate ``element`` through a nearby sibling whose text is unique in the page.

    Preceding siblings are tried first (a label followed by its input), then
    every other child of the same parent.
    """
    return _preceding_sibling_anchor(element, document) or _container_anchor(element, document)


def _preceding_sibling_anchor(element: etree._Element, document: HtmlDocument) -> AnchorLocator | None:
    tag = HtmlDocument.tag(element)
    for sibling in HtmlDocument.preceding_siblings(element):
        text = HtmlDocument.text(sibling)
        if len(text) <= 2:
            continue
        anchor = exact_text_xpath(HtmlDocument.tag(sibling), text)
        if count_xpath_matches(document, anchor) != 1:
            continue
        relative = f"{anchor}/following-sibling::{tag}"
        if count_xpath_matches(document, relative) == 1:
            return AnchorLocator(relative, SIBLING_ANCHOR_SCORE, "anchor_sibling", text)
    return None


def _container_anchor(element: etree._Element, document: HtmlDocument) -> AnchorLocator | None:
    parent = HtmlDocument.parent(element)
    if parent is None:
        return None
    tag = HtmlDocument.tag(element)
    for sibling in HtmlDocument.element_children(parent):
        if sibling is element:
            continue
        text = HtmlDocument.text(sibling)
        if not 2 < len(text) < 50:
            continue
        anchor = exact_text_xpath(HtmlDocument.tag(sibling), text)
        if count_xpath_matches(document, anchor) != 1:
            continue
        relative = f"{anchor}/..//{tag}"
        if count_xpath_matches(document, relative) == 1:
            return AnchorLocator(relative, CONTAINER_ANCHOR_SCORE, "anchor_container", text)
    return None


def build_absolute_xpath(element: etree._Element, document: HtmlDocument) -> str:
    """Structural path from the document body; unique by construction."""
    id_value = HtmlDocument.attr(element, "id")
    if id_value:
        return f'//*[@id="{id_value}"]'
    if element is document.body:
        return "/html/body"

    tag = HtmlDocument.tag(element)
    parent = HtmlDocument.parent(element)
    if parent is None:
        return f"/{tag}"

    same_tag = [child for child in HtmlDocument.element_children(parent) if HtmlDocument.tag(child) == tag]
    parent_path = build_absolute_xpath(parent, document)
    if len(same_tag) == 1:
        return f"{parent_path}/{tag}"
    position = next(index for index, child in enumerate(same_tag, start=1) if child is element)
    return f"{parent_path}/{tag}[{position}]"
