from itertools import count
from pathlib import Path

from pomforge.analyzer import infer
from pomforge.models import AutomationProject, ElementDefinition, PageDefinition, ProjectConfig, TestCase, TestStep
from pomforge.pytest_writer import (
    element_method,
    generate_pytest_framework,
    page_modules,
    select_page_tests,
    step_code,
    write_generated_files,
)

LOGIN_HTML = """
<html><head><title>Sign in</title></head><body>
  <input id="username">
  <input id="ext-gen55" name="password" type="password">
  <button id="submit">Login</button>
</body></html>
"""


def _ids():
    counter = count(1)
    return lambda: f"id-{next(counter)}"


def _login_project(**config) -> AutomationProject:
    result = infer(LOGIN_HTML, "https://example.com/login", _ids())
    return AutomationProject(
        config=ProjectConfig(project_name="shop", base_url="https://example.com/login", **config),
        pages=[result.page],
        tests=result.tests,
    )


def _compile_all(files: dict[str, str]) -> None:
    for path, source in files.items():
        if path.endswith(".py"):
            compile(source, path, "exec")


def test_generates_complete_project_layout() -> None:
    files = generate_pytest_framework(_login_project())

    assert set(files) == {
        "requirements.txt",
        "pytest.ini",
        "config/config.json",
        "conftest.py",
        "utils/__init__.py",
        "utils/base_page.py",
        "pages/__init__.py",
        "pages/login_page.py",
        "tests/__init__.py",
        "tests/test_login.py",
    }
    assert '"base_url": "https://example.com/login"' in files["config/config.json"]
    assert "selenium" in files["requirements.txt"]
    assert "--alluredir" in files["pytest.ini"]
    assert "pytest_runtest_makereport" in files["conftest.py"]
    _compile_all(files)


def test_page_object_methods_follow_element_names() -> None:
    page_source = generate_pytest_framework(_login_project())["pages/login_page.py"]

    assert "class LoginPage(BasePage):" in page_source
    assert "USERNAME_INPUT_LOCATOR = ('id', 'username')" in page_source
    assert "PASSWORD_INPUT_LOCATOR = ('name', 'password')" in page_source
    assert "def fill_username_input(self, text):" in page_source
    assert "def click_submit_button(self):" in page_source


def test_test_file_drives_page_objects() -> None:
    test_source = generate_pytest_framework(_login_project())["tests/test_login.py"]

    assert "from pages.login_page import LoginPage" in test_source
    assert "class TestLoginPage:" in test_source
    assert "@pytest.mark.smoke" in test_source
    assert "def test_login_page_login_flow(self, driver, config):" in test_source
    assert "login_page.fill_username_input('standard_user')" in test_source
    assert "login_page.fill_password_input('secret_sauce')" in test_source
    assert "login_page.click_submit_button()" in test_source
    assert "# Verify successful login location" in test_source


def test_generation_is_deterministic() -> None:
    assert generate_pytest_framework(_login_project()) == generate_pytest_framework(_login_project())


def test_config_switches_change_output() -> None:
    files = generate_pytest_framework(
        _login_project(retries=2, screenshot_on_failure=False, use_allure_report=False, default_timeout=5000)
    )
    assert "--reruns 2" in files["pytest.ini"]
    assert "--alluredir" not in files["pytest.ini"]
    assert "pytest-rerunfailures" in files["requirements.txt"]
    assert "pytest_runtest_makereport" not in files["conftest.py"]
    assert "DEFAULT_TIMEOUT = 5" in files["utils/base_page.py"]


def test_quotes_in_locators_stay_valid_python() -> None:
    element = ElementDefinition(
        id="e1",
        name="it_s_done_button",
        locator_kind="xpath",
        locator_value="//button[normalize-space()=\"It's done\"]",
    )
    project = AutomationProject(pages=[PageDefinition(id="p1", name="StatusPage", elements=[element])])

    files = generate_pytest_framework(project)

    _compile_all(files)
    assert "tests/test_main_flow.py" in files


def test_pages_with_same_name_get_distinct_modules() -> None:
    pages = [PageDefinition(id="a", name="LoginPage"), PageDefinition(id="b", name="LoginPage")]
    modules = page_modules(pages)
    assert [(module.class_name, module.module) for module in modules] == [
        ("LoginPage", "login_page"),
        ("LoginPage2", "login_page2"),
    ]


def test_tests_are_grouped_by_page_name() -> None:
    login = PageDefinition(id="a", name="LoginPage")
    cart = PageDefinition(id="b", name="CartPage")
    tests = [
        TestCase(id="t1", name="test_login_page_login_flow", type="smoke"),
        TestCase(id="t2", name="test_cart_page_search", type="regression"),
    ]
    assert [test.id for test in select_page_tests(login, tests)] == ["t1"]
    assert [test.id for test in select_page_tests(cart, tests)] == ["t2"]
    assert select_page_tests(PageDefinition(id="c", name="HomePage"), tests) == []
    assert len(select_page_tests(PageDefinition(id="c", name="HomePage"), tests, single_page=True)) == 2


def test_step_code_falls_back_to_base_page_actions() -> None:
    element = ElementDefinition(id="e1", name="country_select", locator_kind="tagName", locator_value="select")
    modules = page_modules([PageDefinition(id="p", name="FormPage", elements=[element])])

    assert element_method(element) == "text"
    assert step_code(TestStep("s1", "click", "Interact with country_select"), modules) == [
        "form_page.click(form_page.COUNTRY_SELECT_LOCATOR)"
    ]
    assert step_code(TestStep("s2", "input", "Interact with country_select", "DE"), modules) == [
        "form_page.enter_text(form_page.COUNTRY_SELECT_LOCATOR, 'DE')"
    ]
    assert step_code(TestStep("s3", "navigate", "Open the page"), modules) == ["driver.get(config['base_url'])"]
    assert step_code(TestStep("s4", "click", "Submit search"), modules) == ["# Submit search", "pass"]


def test_write_generated_files(tmp_path: Path) -> None:
    files = generate_pytest_framework(_login_project())

    ok, message, written = write_generated_files(files, tmp_path / "out")

    assert ok, message
    assert len(written) == len(files)
    assert (tmp_path / "out" / "pages" / "login_page.py").read_text(encoding="utf-8") == files["pages/login_page.py"]
    assert not list((tmp_path / "out").rglob("*.tmp"))


def test_write_reports_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")

    ok, message, written = write_generated_files({"pages/x.py": ""}, blocker)

    assert not ok
    assert "Could not write pages/x.py" in message
    assert written == []


def test_write_refuses_paths_outside_output(tmp_path: Path) -> None:
    ok, message, _written = write_generated_files({"../escape.py": ""}, tmp_path / "out")
    assert not ok
    assert "Refusing to write outside" in message
