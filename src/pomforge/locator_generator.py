from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

from lxml import etree

from .document import DomAnalyzer, HtmlDocument
from .models import CandidateLocator, LocatorKind
from .relative_locator import build_absolute_xpath, build_anchor_locator
from .selector_rules import (
    TEST_ATTR_PRIORITY,
    contains_text_xpath,
    exact_text_xpath,
    indexed_xpath,
    is_generated_id,
    meaningful_classes,
)
from .validation import count_css_matches, count_xpath_matches, xpath_matches

logger = logging.getLogger("pomforge.locator")

LINK_TEXT_MAX_LENGTH = 60
PARTIAL_LINK_MIN_LENGTH = 5
PARTIAL_LINK_PREFIX = 15
TEXT_XPATH_MIN_LENGTH = 2
TEXT_XPATH_MAX_LENGTH = 60

RuleBuilder = Callable[[DomAnalyzer], str | None]


@dataclass(frozen=True, slots=True)
class LocatorRule:
    name: str
    kind: LocatorKind
    score: int
    build: RuleBuilder


def _id_rule(analyzer: DomAnalyzer) -> str | None:
    value = analyzer.attr("id")
    if not value or is_generated_id(value):
        return None
    if count_css_matches(analyzer.document, f"#{value}") == 1:
        return value
    return None


def _name_rule(analyzer: DomAnalyzer) -> str | None:
    value = analyzer.attr("name")
    if not value:
        return None
    if count_css_matches(analyzer.document, f'[name="{value}"]') == 1:
        return value
    return None


def _link_text_rule(analyzer: DomAnalyzer) -> str | None:
    if not analyzer.is_anchor:
        return None
    text = analyzer.text
    if not text or len(text) >= LINK_TEXT_MAX_LENGTH:
        return None
    if count_xpath_matches(analyzer.document, exact_text_xpath("a", text)) == 1:
        return text
    return None


def _partial_link_text_rule(analyzer: DomAnalyzer) -> str | None:
    if not analyzer.is_anchor:
        return None
    text = analyzer.text
    if len(text) <= PARTIAL_LINK_MIN_LENGTH:
        return None
    partial = text[:PARTIAL_LINK_PREFIX]
    if count_xpath_matches(analyzer.document, contains_text_xpath("a", partial)) == 1:
        return partial
    return None


def _test_attribute_rule(analyzer: DomAnalyzer) -> str | None:
    for attr in TEST_ATTR_PRIORITY:
        value = analyzer.attr(attr)
        if not value:
            continue
        selector = f'{analyzer.tag}[{attr}="{value}"]'
        if count_css_matches(analyzer.document, selector) == 1:
            return selector
    return None


def _class_name_rule(analyzer: DomAnalyzer) -> str | None:
    # Invalid class selectors (e.g. a leading digit) count as zero and are skipped.
    for class_name in meaningful_classes(analyzer.attr("class")):
        if count_css_matches(analyzer.document, f".{class_name}") == 1:
            return class_name
    return None


def _tag_name_rule(analyzer: DomAnalyzer) -> str | None:
    if count_css_matches(analyzer.document, analyzer.tag) == 1:
        return analyzer.tag
    return None


def _text_xpath(analyzer: DomAnalyzer) -> str | None:
    if analyzer.is_anchor:
        return None
    text = analyzer.text
    if not TEXT_XPATH_MIN_LENGTH < len(text) < TEXT_XPATH_MAX_LENGTH:
        return None
    return exact_text_xpath(analyzer.tag, text)


def _text_xpath_rule(analyzer: DomAnalyzer) -> str | None:
    xpath = _text_xpath(analyzer)
    if xpath and count_xpath_matches(analyzer.document, xpath) == 1:
        return xpath
    return None


def _indexed_text_xpath_rule(analyzer: DomAnalyzer) -> str | None:
    xpath = _text_xpath(analyzer)
    if not xpath:
        return None
    matches = xpath_matches(analyzer.document, xpath)
    if len(matches) <= 1:
        return None
    for position, node in enumerate(matches, start=1):
        if node is analyzer.element:
            return indexed_xpath(xpath, position)
    return None


def _anchor_rule(analyzer: DomAnalyzer) -> str | None:
    anchor = build_anchor_locator(analyzer.element, analyzer.document)
    return anchor.xpath if anchor else None


def _absolute_xpath_rule(analyzer: DomAnalyzer) -> str | None:
    return build_absolute_xpath(analyzer.element, analyzer.document)


LOCATOR_RULES: tuple[LocatorRule, ...] = (
    LocatorRule("id", "id", 100, _id_rule),
    LocatorRule("name", "name", 95, _name_rule),
    LocatorRule("link_text", "linkText", 90, _link_text_rule),
    LocatorRule("partial_link_text", "partialLinkText", 85, _partial_link_text_rule),
    LocatorRule("test_attribute", "css", 80, _test_attribute_rule),
    LocatorRule("class_name", "className", 75, _class_name_rule),
    LocatorRule("tag_name", "tagName", 70, _tag_name_rule),
    LocatorRule("text_xpath", "xpath", 60, _text_xpath_rule),
    LocatorRule("indexed_text_xpath", "xpath", 55, _indexed_text_xpath_rule),
    LocatorRule("anchor", "xpath", 50, _anchor_rule),
    LocatorRule("absolute_xpath", "xpath", 10, _absolute_xpath_rule),
)


def resolve_locator(
    element: etree._Element,
    document: HtmlDocument,
    rules: tuple[LocatorRule, ...] = LOCATOR_RULES,
) -> CandidateLocator:
    analyzer = DomAnalyzer(element=element, document=document)
    for rule in rules:
        value = rule.build(analyzer)
        if value:
            logger.debug("<%s> resolved by %s: %s", analyzer.tag, rule.name, value)
            return CandidateLocator(kind=rule.kind, value=value, score=rule.score, rule=rule.name)

    # Only reachable with a custom rule table lacking the structural fallback.
    return CandidateLocator(
        kind="xpath",
        value=build_absolute_xpath(element, document),
        score=10,
        rule="absolute_xpath",
    )


def viable_rules(element: etree._Element, document: HtmlDocument) -> list[CandidateLocator]:
    """Every rule that would succeed for ``element``, highest tier first."""
    analyzer = DomAnalyzer(element=element, document=document)
    viable: list[CandidateLocator] = []
    for rule in LOCATOR_RULES:
        value = rule.build(analyzer)
        if value:
            viable.append(CandidateLocator(kind=rule.kind, value=value, score=rule.score, rule=rule.name))
    return viable
