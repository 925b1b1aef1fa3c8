from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Callable, Iterable, Protocol
import uuid

from lxml import etree

from .document import HtmlDocument
from .flow_synthesizer import IdFactory, synthesize_tests
from .locator_generator import resolve_locator
from .models import AutomationProject, ElementDefinition, InferenceResult, PageDefinition, TestCase
from .page_naming import derive_page_name
from .selector_rules import element_variable_name, is_generated_id, normalize_space

logger = logging.getLogger("pomforge.analyzer")


class HtmlSource(Protocol):
    def fetch(self, url: str) -> str: ...


def default_id_factory() -> str:
    return str(uuid.uuid4())


def infer(html: str | bytes, source_url: str, id_factory: IdFactory | None = None) -> InferenceResult:
    """Infer a page definition and candidate tests for one rendered page."""
    make_id = id_factory or default_id_factory
    document = HtmlDocument.parse(html)
    page_name = derive_page_name(source_url, document.title)

    elements: list[ElementDefinition] = []
    seen_names: set[str] = set()
    for position, element in enumerate(document.interactive_elements(), start=1):
        tag = HtmlDocument.tag(element)
        locator = resolve_locator(element, document)
        name = element_variable_name(_name_source(element, tag), tag, position)
        if name in seen_names:
            logger.debug("Dropping duplicate element name %s (%s=%s)", name, locator.kind, locator.value)
            continue
        seen_names.add(name)
        elements.append(
            ElementDefinition(
                id=make_id(),
                name=name,
                locator_kind=locator.kind,
                locator_value=locator.value,
                description=f"Auto-generated for <{tag}>",
                tag_name=tag,
                score=locator.score,
                rule=locator.rule,
            )
        )

    tests = synthesize_tests(page_name, elements, make_id)
    logger.info(
        "Analyzed %s as %s: %d elements, %d tests",
        source_url,
        page_name,
        len(elements),
        len(tests),
    )
    return InferenceResult(page=PageDefinition(id=make_id(), name=page_name, elements=elements), tests=tests)


def _name_source(element: etree._Element, tag: str) -> str:
    id_value = normalize_space(HtmlDocument.attr(element, "id"))
    if id_value and not is_generated_id(id_value):
        return id_value
    for value in (
        HtmlDocument.attr(element, "name"),
        HtmlDocument.attr(element, "placeholder"),
        HtmlDocument.text(element),
        HtmlDocument.attr(element, "aria-label"),
    ):
        cleaned = normalize_space(value)
        if cleaned:
            return cleaned
    return tag


@dataclass(frozen=True, slots=True)
class UrlFailure:
    url: str
    message: str


@dataclass(slots=True)
class BatchResult:
    urls: list[str] = field(default_factory=list)
    results: list[InferenceResult] = field(default_factory=list)
    result_urls: list[str] = field(default_factory=list)
    failures: list[UrlFailure] = field(default_factory=list)

    @property
    def pages(self) -> list[PageDefinition]:
        return [result.page for result in self.results]

    @property
    def tests(self) -> list[TestCase]:
        return [test for result in self.results for test in result.tests]

    @property
    def all_failed(self) -> bool:
        return bool(self.failures) and not self.results


def analyze_urls(
    urls: Iterable[str],
    source: HtmlSource,
    id_factory: IdFactory | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> BatchResult:
    """Fetch and infer each URL in turn; one failing URL never stops the others."""
    report = on_progress or (lambda _message: None)
    batch = BatchResult()
    for raw_url in urls:
        url = raw_url.strip()
        if not url:
            continue
        batch.urls.append(url)
        try:
            html = source.fetch(url)
            logger.info("Fetched DOM for %s: %d chars", url, len(html))
            batch.results.append(infer(html, url, id_factory))
            batch.result_urls.append(url)
            report(f"Analyzed {url}")
        except Exception as exc:
            logger.warning("Failed to process %s", url, exc_info=exc)
            batch.failures.append(UrlFailure(url=url, message=str(exc)))
            report(f"Error processing {url}: {exc}")
    return batch


def merge_into_project(project: AutomationProject, batch: BatchResult) -> AutomationProject:
    """Return a new project with the batch's pages and tests appended.

    The base URL becomes the first URL that was analyzed successfully.
    """
    config = project.config
    if batch.result_urls:
        config = replace(config, base_url=batch.result_urls[0])
    return replace(
        project,
        config=config,
        pages=[*project.pages, *batch.pages],
        tests=[*project.tests, *batch.tests],
    )
