from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
import re
import tempfile
from typing import Literal, Mapping, Sequence

from .models import AutomationProject, ElementDefinition, PageDefinition, TestCase, TestStep
from .selector_rules import normalize_space, pascal_to_snake, to_snake_identifier

logger = logging.getLogger("pomforge.codegen")

ElementMethod = Literal["fill", "click", "text"]

IMPLICIT_WAIT_SECONDS = 10
MAIN_FLOW_TEST_FILE = "tests/test_main_flow.py"

REQUIREMENTS = (
    "pytest==7.4.0",
    "selenium==4.10.0",
    "allure-pytest==2.13.2",
    "colorlog==6.7.0",
    "webdriver-manager==4.0.0",
    "pytest-xdist==3.3.1",
)
RERUN_REQUIREMENT = "pytest-rerunfailures==12.0"


@dataclass(frozen=True, slots=True)
class PageModule:
    page: PageDefinition
    module: str
    class_name: str
    variable: str


def generate_pytest_framework(project: AutomationProject) -> dict[str, str]:
    """Render a runnable pytest + selenium page-object project as path -> source text."""
    files: dict[str, str] = {}
    config = project.config

    files["requirements.txt"] = _requirements(project)
    files["pytest.ini"] = _pytest_ini(project)
    files["config/config.json"] = (
        json.dumps(
            {
                "base_url": config.base_url,
                "browser": config.browser,
                "headless": config.headless,
                "implicit_wait": IMPLICIT_WAIT_SECONDS,
            },
            indent=4,
        )
        + "\n"
    )
    files["conftest.py"] = _conftest(project)
    files["utils/__init__.py"] = ""
    files["utils/base_page.py"] = _base_page(project)

    modules = page_modules(project.pages)
    files["pages/__init__.py"] = ""
    for module in modules:
        files[f"pages/{module.module}.py"] = _page_object(module)

    files["tests/__init__.py"] = ""
    for module in modules:
        relevant = select_page_tests(module.page, project.tests, single_page=len(modules) == 1)
        if not relevant:
            continue
        files[_test_file_path(module, files)] = _test_file(relevant, [module], config.project_name)

    if not any(path.startswith("tests/test_") for path in files):
        files[MAIN_FLOW_TEST_FILE] = _test_file(project.tests, modules, config.project_name)

    logger.info("Generated %d files for %d pages", len(files), len(modules))
    return files


def write_generated_files(files: Mapping[str, str], output_dir: Path) -> tuple[bool, str, list[Path]]:
    written: list[Path] = []
    root = output_dir.resolve()
    for relative, content in sorted(files.items()):
        target = (root / relative).resolve()
        if root not in target.parents:
            return False, f"Refusing to write outside {root}: {relative}", written
        temp_path: Path | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
            temp_path = Path(temp_name)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as temp_file:
                temp_file.write(content)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            temp_path.replace(target)
        except OSError as exc:
            if temp_path and temp_path.exists():
                temp_path.unlink(missing_ok=True)
            return False, f"Could not write {relative}: {exc}", written
        written.append(target)
    return True, f"Wrote {len(written)} files to {root}", written


def page_modules(pages: Sequence[PageDefinition]) -> list[PageModule]:
    modules: list[PageModule] = []
    used: set[str] = set()
    for page in pages:
        class_name = re.sub(r"[^A-Za-z0-9]", "", page.name) or "GeneratedPage"
        if class_name[0].isdigit():
            class_name = f"Page{class_name}"
        base_class = class_name
        counter = 2
        while class_name in used:
            class_name = f"{base_class}{counter}"
            counter += 1
        used.add(class_name)
        module = pascal_to_snake(class_name)
        modules.append(PageModule(page=page, module=module, class_name=class_name, variable=module))
    return modules


def select_page_tests(page: PageDefinition, tests: Sequence[TestCase], single_page: bool = False) -> list[TestCase]:
    page_lower = page.name.lower()
    snake_page = pascal_to_snake(page.name)
    relevant = [
        test
        for test in tests
        if page_lower in test.name.lower()
        or snake_page in test.name
        or any(page_lower in step.description.lower() for step in test.steps)
    ]
    if not relevant and single_page:
        return list(tests)
    return relevant


def element_method(element: ElementDefinition) -> ElementMethod:
    name = element.name.lower()
    if "input" in name or "field" in name:
        return "fill"
    if "btn" in name or "button" in name or "link" in name:
        return "click"
    return "text"


def _locator_constant(element: ElementDefinition) -> str:
    return f"{element.name.upper()}_LOCATOR"


def _requirements(project: AutomationProject) -> str:
    lines = list(REQUIREMENTS)
    if project.config.retries > 0:
        lines.append(RERUN_REQUIREMENT)
    return "\n".join(lines) + "\n"


def _pytest_ini(project: AutomationProject) -> str:
    addopts = ["--log-cli-level=INFO"]
    if project.config.use_allure_report:
        addopts[:0] = ["--alluredir=./allure-results", "--clean-alluredir"]
    if project.config.retries > 0:
        addopts.append(f"--reruns {project.config.retries}")
    return (
        "[pytest]\n"
        f"addopts = {' '.join(addopts)}\n"
        "log_cli = true\n"
        "log_cli_format = %(asctime)s [%(levelname)8s] %(message)s (%(filename)s:%(lineno)s)\n"
        "log_cli_date_format = %Y-%m-%d %H:%M:%S\n"
        "python_files = test_*.py\n"
        "markers =\n"
        "    smoke: quick checks of the main journeys\n"
        "    regression: broader behavioural checks\n"
    )


_CONFTEST_HEADER = '''import json
import logging
import os

import allure
import pytest
from colorlog import ColoredFormatter
from selenium import webdriver
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.edge.service import Service as EdgeService
from selenium.webdriver.firefox.service import Service as FirefoxService
from webdriver_manager.chrome import ChromeDriverManager
from webdriver_manager.firefox import GeckoDriverManager
from webdriver_manager.microsoft import EdgeChromiumDriverManager


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config):
    formatter = ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(white)s%(message)s",
        reset=True,
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
        style="%",
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


@pytest.fixture(scope="session")
def config():
    config_path = os.path.join(os.path.dirname(__file__), "config", "config.json")
    with open(config_path, encoding="utf-8") as handle:
        return json.load(handle)


@pytest.fixture(scope="function")
def driver(config):
    browser = config["browser"].lower()
    headless = config["headless"]

    if browser == "chrome":
        options = webdriver.ChromeOptions()
        if headless:
            options.add_argument("--headless=new")
        driver = webdriver.Chrome(service=ChromeService(ChromeDriverManager().install()), options=options)
    elif browser == "firefox":
        options = webdriver.FirefoxOptions()
        if headless:
            options.add_argument("--headless")
        driver = webdriver.Firefox(service=FirefoxService(GeckoDriverManager().install()), options=options)
    elif browser == "edge":
        options = webdriver.EdgeOptions()
        if headless:
            options.add_argument("--headless=new")
        driver = webdriver.Edge(service=EdgeService(EdgeChromiumDriverManager().install()), options=options)
    else:
        raise ValueError(f"Browser {browser} not supported")

    driver.maximize_window()
    driver.implicitly_wait(config["implicit_wait"])
    yield driver
    driver.quit()
'''

_SCREENSHOT_HOOK = '''

@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Attach a screenshot to the Allure report when a test body fails."""
    outcome = yield
    report = outcome.get_result()
    if report.when == "call" and report.failed and "driver" in item.funcargs:
        allure.attach(
            item.funcargs["driver"].get_screenshot_as_png(),
            name=f"failure_{item.name}",
            attachment_type=allure.attachment_type.PNG,
        )
'''


def _conftest(project: AutomationProject) -> str:
    if project.config.screenshot_on_failure:
        return _CONFTEST_HEADER + _SCREENSHOT_HOOK
    return _CONFTEST_HEADER


def _base_page(project: AutomationProject) -> str:
    timeout_seconds = max(1, project.config.default_timeout // 1000)
    return f'''import allure
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

DEFAULT_TIMEOUT = {timeout_seconds}

LOCATOR_MAP = {{
    "id": By.ID,
    "css": By.CSS_SELECTOR,
    "xpath": By.XPATH,
    "name": By.NAME,
    "classname": By.CLASS_NAME,
    "linktext": By.LINK_TEXT,
    "partiallinktext": By.PARTIAL_LINK_TEXT,
    "tagname": By.TAG_NAME,
}}


class BasePage:
    """Common waits and actions shared by every page object."""

    def __init__(self, driver, timeout=DEFAULT_TIMEOUT):
        self.driver = driver
        self.timeout = timeout

    def _convert_locator(self, locator):
        locator_type, locator_value = locator
        return LOCATOR_MAP.get(locator_type.lower(), By.XPATH), locator_value

    @allure.step("Finding element: {{locator}}")
    def find_element(self, locator):
        return WebDriverWait(self.driver, self.timeout).until(
            EC.visibility_of_element_located(self._convert_locator(locator))
        )

    @allure.step("Clicking element: {{locator}}")
    def click(self, locator):
        self.find_element(locator).click()

    @allure.step("Entering text '{{text}}' into {{locator}}")
    def enter_text(self, locator, text):
        element = self.find_element(locator)
        element.clear()
        element.send_keys(text)

    @allure.step("Getting text from {{locator}}")
    def get_text(self, locator):
        return self.find_element(locator).text
'''


def _page_object(module: PageModule) -> str:
    lines = [
        "import allure",
        "",
        "from utils.base_page import BasePage",
        "",
        "",
        f"class {module.class_name}(BasePage):",
    ]
    elements = module.page.elements
    if not elements:
        lines.append("    pass")
        return "\n".join(lines) + "\n"

    for element in elements:
        locator = (element.locator_kind.lower(), element.locator_value)
        lines.append(f"    {_locator_constant(element)} = {locator!r}")

    for element in elements:
        constant = _locator_constant(element)
        method = element_method(element)
        lines.append("")
        if method == "fill":
            lines.append(f"    @allure.step({f'Fill {element.name} with {{text}}'!r})")
            lines.append(f"    def fill_{element.name}(self, text):")
            lines.append(f"        self.enter_text(self.{constant}, text)")
        elif method == "click":
            lines.append(f"    @allure.step({f'Click {element.name}'!r})")
            lines.append(f"    def click_{element.name}(self):")
            lines.append(f"        self.click(self.{constant})")
        else:
            lines.append(f"    @allure.step({f'Get {element.name} text'!r})")
            lines.append(f"    def get_{element.name}_text(self):")
            lines.append(f"        return self.get_text(self.{constant})")
    return "\n".join(lines) + "\n"


def _test_file_path(module: PageModule, files: Mapping[str, str]) -> str:
    short = re.sub(r"Page$", "", module.class_name)
    stem = pascal_to_snake(short) if short else module.module
    path = f"tests/test_{stem}.py"
    if path in files:
        path = f"tests/test_{module.module}.py"
    return path


def _test_file(tests: Sequence[TestCase], modules: Sequence[PageModule], project_name: str) -> str:
    feature = modules[0].class_name if modules else "General"
    class_name = f"Test{modules[0].class_name}" if modules else "TestFlow"

    lines = ["import allure", "import pytest", ""]
    for module in modules:
        lines.append(f"from pages.{module.module} import {module.class_name}")
    lines.extend(
        [
            "",
            "",
            f"@allure.epic({project_name!r})",
            f"@allure.feature({feature!r})",
            f"class {class_name}:",
        ]
    )
    if not tests:
        lines.append("    pass")
        return "\n".join(lines) + "\n"

    used_names: set[str] = set()
    for index, test in enumerate(tests):
        if index:
            lines.append("")
        method_name = _test_method_name(test.name, used_names)
        lines.extend(
            [
                f"    @allure.story({test.name!r})",
                f"    @allure.title({test.name!r})",
                f"    @pytest.mark.{test.type}",
                f"    def {method_name}(self, driver, config):",
                '        """',
                f"        Test case: {_docstring_safe(test.name)}",
            ]
        )
        if test.steps:
            lines.append("        Steps:")
            for position, step in enumerate(test.steps, start=1):
                lines.append(f"        {position}. {_docstring_safe(step.description)}")
        lines.append('        """')
        for module in modules:
            lines.append(f"        {module.variable} = {module.class_name}(driver)")
        lines.append("        driver.get(config['base_url'])")
        for step in test.steps:
            lines.append(f"        with allure.step({normalize_space(step.description)!r}):")
            lines.extend(f"            {line}" for line in step_code(step, modules))
    return "\n".join(lines) + "\n"


def step_code(step: TestStep, modules: Sequence[PageModule]) -> list[str]:
    """Translate one step into statements against the page objects it mentions."""
    match = _match_element(step, modules)
    if match is None:
        if step.action == "navigate":
            return ["driver.get(config['base_url'])"]
        return [f"# {normalize_space(step.description)}", "pass"]

    module, element = match
    page = module.variable
    constant = f"{page}.{_locator_constant(element)}"
    method = element_method(element)
    if step.action == "input":
        value = step.value or "test_data"
        if method == "fill":
            return [f"{page}.fill_{element.name}({value!r})"]
        return [f"{page}.enter_text({constant}, {value!r})"]
    if step.action == "click":
        if method == "click":
            return [f"{page}.click_{element.name}()"]
        return [f"{page}.click({constant})"]
    if step.action == "assert_text":
        return [f"assert {page}.get_text({constant}), 'Text should be present'"]
    if step.action == "assert_visible":
        return [f"assert {page}.find_element({constant}).is_displayed(), 'Element should be visible'"]
    return ["driver.get(config['base_url'])"]


def _match_element(step: TestStep, modules: Sequence[PageModule]) -> tuple[PageModule, ElementDefinition] | None:
    description = step.description.lower()
    best: tuple[PageModule, ElementDefinition] | None = None
    for module in modules:
        for element in module.page.elements:
            if element.name.lower() not in description:
                continue
            # Longest name wins so user_input never shadows username_input.
            if best is None or len(element.name) > len(best[1].name):
                best = (module, element)
    return best


def _test_method_name(name: str, used: set[str]) -> str:
    method = to_snake_identifier(name, max_length=80) or "generated"
    if not method.startswith("test_"):
        method = f"test_{method}"
    candidate = method
    counter = 2
    while candidate in used:
        candidate = f"{method}_{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def _docstring_safe(text: str) -> str:
    return normalize_space(text).replace("\\", "\\\\").replace('"""', "'''")
