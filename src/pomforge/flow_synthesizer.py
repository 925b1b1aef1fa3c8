from __future__ import annotations

from typing import Callable, Sequence

from .models import ElementDefinition, TestCase, TestStep
from .selector_rules import pascal_to_snake

IdFactory = Callable[[], str]

USERNAME_KEYWORDS = ("user", "email", "login")
PASSWORD_KEYWORDS = ("pass",)
SUBMIT_KEYWORDS = ("submit", "login", "sign_in")
SEARCH_KEYWORDS = ("search", "query")

PLACEHOLDER_USERNAME = "standard_user"
PLACEHOLDER_PASSWORD = "secret_sauce"
PLACEHOLDER_SEARCH = "Test Item"
PLACEHOLDER_INPUT = "test_data"
GENERIC_STEP_LIMIT = 4


def synthesize_tests(
    page_name: str,
    elements: Sequence[ElementDefinition],
    id_factory: IdFactory,
) -> list[TestCase]:
    """Guess login/search journeys from element names; fall back to a smoke walk."""
    snake_page = pascal_to_snake(page_name)
    tests: list[TestCase] = []

    login = _login_flow(snake_page, elements, id_factory)
    if login:
        tests.append(login)
    search = _search_flow(snake_page, elements, id_factory)
    if search:
        tests.append(search)

    if not tests and elements:
        tests.append(_generic_flow(snake_page, elements, id_factory))
    return tests


def matching_elements(elements: Sequence[ElementDefinition], keywords: Sequence[str]) -> list[ElementDefinition]:
    return [element for element in elements if any(keyword in element.name.lower() for keyword in keywords)]


def _login_flow(snake_page: str, elements: Sequence[ElementDefinition], id_factory: IdFactory) -> TestCase | None:
    users = matching_elements(elements, USERNAME_KEYWORDS)
    passwords = matching_elements(elements, PASSWORD_KEYWORDS)
    submits = matching_elements(elements, SUBMIT_KEYWORDS)
    if not (users and passwords and submits):
        return None
    return TestCase(
        id=id_factory(),
        name=f"test_{snake_page}_login_flow",
        type="smoke",
        steps=[
            TestStep(id_factory(), "input", f"Enter username into {users[0].name}", PLACEHOLDER_USERNAME),
            TestStep(id_factory(), "input", f"Enter password into {passwords[0].name}", PLACEHOLDER_PASSWORD),
            TestStep(id_factory(), "click", f"Click {submits[0].name}", ""),
            TestStep(id_factory(), "assert_visible", "Verify successful login location", "dashboard"),
        ],
    )


def _search_flow(snake_page: str, elements: Sequence[ElementDefinition], id_factory: IdFactory) -> TestCase | None:
    searches = matching_elements(elements, SEARCH_KEYWORDS)
    if not searches:
        return None
    return TestCase(
        id=id_factory(),
        name=f"test_{snake_page}_search",
        type="regression",
        steps=[
            TestStep(id_factory(), "input", f"Type search query in {searches[0].name}", PLACEHOLDER_SEARCH),
            TestStep(id_factory(), "click", "Submit search", "Enter"),
            TestStep(id_factory(), "assert_visible", "Verify results appear", "results"),
        ],
    )


def _generic_flow(snake_page: str, elements: Sequence[ElementDefinition], id_factory: IdFactory) -> TestCase:
    steps: list[TestStep] = []
    for element in elements[:GENERIC_STEP_LIMIT]:
        is_input = "input" in element.name.lower()
        steps.append(
            TestStep(
                id=id_factory(),
                action="input" if is_input else "click",
                description=f"Interact with {element.name}",
                value=PLACEHOLDER_INPUT if is_input else None,
            )
        )
    return TestCase(id=id_factory(), name=f"test_{snake_page}_basic_interactions", type="smoke", steps=steps)
