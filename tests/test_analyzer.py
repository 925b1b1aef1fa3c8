from itertools import count

from pomforge.analyzer import analyze_urls, infer, merge_into_project
from pomforge.fetcher import FetchError
from pomforge.models import AutomationProject, PageDefinition, ProjectConfig

LOGIN_HTML = """
<html><head><title>Sign in - Acme</title></head><body>
  <form>
    <input type="hidden" name="csrf" value="abc">
    <input id="username">
    <input id="ext-gen55" name="password" type="password">
    <button id="submit">Login</button>
  </form>
</body></html>
"""

SEARCH_HTML = """
<html><head><title>Catalog</title></head><body>
  <input name="search" placeholder="Search products">
  <a href="/cart">Cart</a>
</body></html>
"""


def _ids():
    counter = count(1)
    return lambda: f"id-{next(counter)}"


class FakeSource:
    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.requested: list[str] = []

    def fetch(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(f"Could not fetch {url}: net::ERR_NAME_NOT_RESOLVED")
        return self.pages[url]


def test_login_page_inference() -> None:
    result = infer(LOGIN_HTML, "https://example.com/login", _ids())

    assert result.page_name == "LoginPage"
    assert [element.name for element in result.elements] == ["username_input", "password_input", "submit_button"]
    assert [(element.locator_kind, element.locator_value, element.score) for element in result.elements] == [
        ("id", "username", 100),
        ("name", "password", 95),
        ("id", "submit", 100),
    ]
    assert result.elements[0].description == "Auto-generated for <input>"
    assert result.elements[2].tag_name == "button"

    assert len(result.tests) == 1
    login = result.tests[0]
    assert login.name == "test_login_page_login_flow"
    assert len(login.steps) == 4


def test_inference_is_idempotent() -> None:
    first = infer(LOGIN_HTML, "https://example.com/login", _ids())
    second = infer(LOGIN_HTML, "https://example.com/login", _ids())
    assert first.to_dict() == second.to_dict()


def test_duplicate_names_keep_first_occurrence() -> None:
    html = """
    <form>
      <div><label>Home phone</label><input name="phone"></div>
      <div><label>Work phone</label><input name="phone"></div>
      <input placeholder="City">
    </form>
    """
    result = infer(html, "https://example.com/contact", _ids())

    names = [element.name for element in result.elements]
    assert names == ["phone_input", "city_input"]
    assert len(names) == len(set(names))
    assert result.elements[0].locator_value == "//label[normalize-space()='Home phone']/following-sibling::input"


def test_page_without_interactive_elements() -> None:
    result = infer("<html><head><title>About us</title></head><body><p>Hello</p></body></html>", "https://example.com/about", _ids())
    assert result.page_name == "AboutPage"
    assert result.elements == []
    assert result.tests == []


def test_batch_isolates_failing_urls() -> None:
    source = FakeSource({"https://example.com/login": LOGIN_HTML, "https://example.com/catalog": SEARCH_HTML})
    progress: list[str] = []

    batch = analyze_urls(
        ["https://example.com/login", "  ", "https://missing.example.com/", "https://example.com/catalog"],
        source,
        id_factory=_ids(),
        on_progress=progress.append,
    )

    assert source.requested == [
        "https://example.com/login",
        "https://missing.example.com/",
        "https://example.com/catalog",
    ]
    assert [page.name for page in batch.pages] == ["LoginPage", "CatalogPage"]
    assert [test.name for test in batch.tests] == ["test_login_page_login_flow", "test_catalog_page_search"]
    assert len(batch.failures) == 1
    assert batch.failures[0].url == "https://missing.example.com/"
    assert "ERR_NAME_NOT_RESOLVED" in batch.failures[0].message
    assert not batch.all_failed
    assert progress[1].startswith("Error processing https://missing.example.com/")


def test_batch_reports_when_every_url_failed() -> None:
    batch = analyze_urls(["https://a.example.com/", "https://b.example.com/"], FakeSource({}))
    assert batch.all_failed
    assert batch.results == []
    assert [failure.url for failure in batch.failures] == ["https://a.example.com/", "https://b.example.com/"]


def test_merge_returns_new_project() -> None:
    existing_page = PageDefinition(id="p0", name="HomePage")
    project = AutomationProject(config=ProjectConfig(project_name="shop"), pages=[existing_page])
    batch = analyze_urls(
        ["https://example.com/login"],
        FakeSource({"https://example.com/login": LOGIN_HTML}),
        id_factory=_ids(),
    )

    merged = merge_into_project(project, batch)

    assert [page.name for page in merged.pages] == ["HomePage", "LoginPage"]
    assert [test.name for test in merged.tests] == ["test_login_page_login_flow"]
    assert merged.config.base_url == "https://example.com/login"
    assert merged.config.project_name == "shop"
    assert project.pages == [existing_page]
    assert project.tests == []
    assert project.config.base_url == ""


def test_merge_uses_first_successful_url() -> None:
    batch = analyze_urls(
        ["https://down.example.com/", "https://example.com/login"],
        FakeSource({"https://example.com/login": LOGIN_HTML}),
        id_factory=_ids(),
    )

    merged = merge_into_project(AutomationProject(), batch)

    assert batch.result_urls == ["https://example.com/login"]
    assert merged.config.base_url == "https://example.com/login"
