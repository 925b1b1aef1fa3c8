from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

LocatorKind = Literal["id", "name", "linkText", "partialLinkText", "css", "className", "tagName", "xpath"]
StepAction = Literal["navigate", "click", "input", "assert_text", "assert_visible"]
TestType = Literal["smoke", "regression"]

LOCATOR_KINDS: tuple[str, ...] = (
    "id",
    "name",
    "linkText",
    "partialLinkText",
    "css",
    "className",
    "tagName",
    "xpath",
)


@dataclass(frozen=True, slots=True)
class CandidateLocator:
    kind: LocatorKind
    value: str
    score: int
    rule: str = ""


@dataclass(slots=True)
class ElementDefinition:
    id: str
    name: str
    locator_kind: LocatorKind
    locator_value: str
    description: str = ""
    tag_name: str | None = None
    score: int | None = None
    rule: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "locatorKind": self.locator_kind,
            "locatorValue": self.locator_value,
            "description": self.description,
        }
        if self.tag_name is not None:
            payload["tagName"] = self.tag_name
        if self.score is not None:
            payload["score"] = self.score
        if self.rule is not None:
            payload["rule"] = self.rule
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ElementDefinition:
        kind = str(payload.get("locatorKind") or payload.get("locatorType") or "xpath")
        score = payload.get("score")
        return cls(
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
            locator_kind=kind if kind in LOCATOR_KINDS else "xpath",  # type: ignore[arg-type]
            locator_value=str(payload.get("locatorValue", "")),
            description=str(payload.get("description") or ""),
            tag_name=payload.get("tagName"),
            score=int(score) if score is not None else None,
            rule=payload.get("rule"),
        )


@dataclass(slots=True)
class PageDefinition:
    id: str
    name: str
    elements: list[ElementDefinition] = field(default_factory=list)

    def element_names(self) -> list[str]:
        return [element.name for element in self.elements]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "elements": [element.to_dict() for element in self.elements],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PageDefinition:
        return cls(
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
            elements=[ElementDefinition.from_dict(item) for item in payload.get("elements", [])],
        )


@dataclass(slots=True)
class TestStep:
    # Not a pytest test class.
    __test__ = False

    id: str
    action: StepAction
    description: str
    value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "action": self.action,
            "description": self.description,
        }
        if self.value is not None:
            payload["value"] = self.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TestStep:
        value = payload.get("value")
        return cls(
            id=str(payload.get("id", "")),
            action=str(payload.get("action", "click")),  # type: ignore[arg-type]
            description=str(payload.get("description", "")),
            value=None if value is None else str(value),
        )


@dataclass(slots=True)
class TestCase:
    __test__ = False

    id: str
    name: str
    type: TestType
    steps: list[TestStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TestCase:
        test_type = str(payload.get("type", "smoke"))
        return cls(
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
            type="regression" if test_type == "regression" else "smoke",
            steps=[TestStep.from_dict(item) for item in payload.get("steps", [])],
        )


@dataclass(slots=True)
class ProjectConfig:
    project_name: str = "pytest-automation"
    base_url: str = ""
    browser: str = "chrome"
    headless: bool = True
    default_timeout: int = 30000
    retries: int = 0
    screenshot_on_failure: bool = True
    use_allure_report: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "baseUrl": self.base_url,
            "browser": self.browser,
            "headless": self.headless,
            "defaultTimeout": self.default_timeout,
            "retries": self.retries,
            "screenshotOnFailure": self.screenshot_on_failure,
            "useAllureReport": self.use_allure_report,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ProjectConfig:
        defaults = cls()
        return cls(
            project_name=str(payload.get("projectName") or defaults.project_name),
            base_url=str(payload.get("baseUrl") or ""),
            browser=str(payload.get("browser") or defaults.browser),
            headless=bool(payload.get("headless", defaults.headless)),
            default_timeout=int(payload.get("defaultTimeout", defaults.default_timeout)),
            retries=int(payload.get("retries", defaults.retries)),
            screenshot_on_failure=bool(payload.get("screenshotOnFailure", defaults.screenshot_on_failure)),
            use_allure_report=bool(payload.get("useAllureReport", defaults.use_allure_report)),
        )


@dataclass(slots=True)
class AutomationProject:
    config: ProjectConfig = field(default_factory=ProjectConfig)
    pages: list[PageDefinition] = field(default_factory=list)
    tests: list[TestCase] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "pages": [page.to_dict() for page in self.pages],
            "tests": [test.to_dict() for test in self.tests],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> AutomationProject:
        return cls(
            config=ProjectConfig.from_dict(payload.get("config") or {}),
            pages=[PageDefinition.from_dict(item) for item in payload.get("pages", [])],
            tests=[TestCase.from_dict(item) for item in payload.get("tests", [])],
        )


@dataclass(slots=True)
class InferenceResult:
    page: PageDefinition
    tests: list[TestCase] = field(default_factory=list)

    @property
    def page_name(self) -> str:
        return self.page.name

    @property
    def elements(self) -> list[ElementDefinition]:
        return self.page.elements

    def to_dict(self) -> dict[str, Any]:
        return {
            "pageName": self.page.name,
            "elements": [element.to_dict() for element in self.page.elements],
            "tests": [test.to_dict() for test in self.tests],
        }


@dataclass(slots=True)
class SavedFramework:
    id: str
    name: str
    version: int
    created_at: str
    updated_at: str
    project: AutomationProject
    last_urls: list[str] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return len(self.project.pages)

    @property
    def total_tests(self) -> int:
        return len(self.project.tests)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "project": self.project.to_dict(),
            "metadata": {
                "totalPages": self.total_pages,
                "totalTests": self.total_tests,
                "lastUrls": list(self.last_urls),
            },
        }
