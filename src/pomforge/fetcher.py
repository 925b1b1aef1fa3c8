from __future__ import annotations

from dataclasses import dataclass
import logging

from playwright.sync_api import Error as PlaywrightError, sync_playwright

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)

# Copies open shadow roots and same-origin iframe bodies into the light DOM so
# the serialized page can be analyzed without a browser.
FLATTEN_DOM_SCRIPT = """
() => {
  const flatten = (node) => {
    if (node.shadowRoot) {
      try {
        const shadowHost = document.createElement('div');
        shadowHost.setAttribute('data-shadow-host', 'true');
        shadowHost.innerHTML = node.shadowRoot.innerHTML;
        node.appendChild(shadowHost);
        flatten(shadowHost);
      } catch (e) {}
    }
    if (node.tagName === 'IFRAME') {
      try {
        const frameDoc = node.contentDocument;
        if (frameDoc && frameDoc.body && node.parentElement) {
          const frameContent = document.createElement('div');
          frameContent.setAttribute('data-iframe-src', node.src || 'embedded');
          frameContent.innerHTML = frameDoc.body.innerHTML;
          node.parentElement.appendChild(frameContent);
          flatten(frameContent);
        }
      } catch (e) {}
    }
    for (const child of Array.from(node.children || [])) {
      flatten(child);
    }
  };
  if (document.body) {
    flatten(document.body);
  }
}
"""


class FetchError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class FetchSettings:
    timeout_ms: int = 30000
    user_agent: str = DEFAULT_USER_AGENT
    wait_until: str = "networkidle"
    headless: bool = True


def is_missing_browser_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


class PageFetcher:
    """Renders a URL in headless Chromium and returns the flattened HTML."""

    def __init__(self, settings: FetchSettings | None = None) -> None:
        self.settings = settings or FetchSettings()
        self.logger = logging.getLogger("pomforge.fetcher")

    def fetch(self, url: str) -> str:
        target = url.strip()
        if not target:
            raise FetchError("URL is required")

        self.logger.info("Fetching %s", target)
        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(
                    headless=self.settings.headless,
                    args=["--no-sandbox", "--disable-setuid-sandbox"],
                )
                try:
                    context = browser.new_context(user_agent=self.settings.user_agent)
                    page = context.new_page()
                    page.goto(target, wait_until=self.settings.wait_until, timeout=self.settings.timeout_ms)
                    page.evaluate(FLATTEN_DOM_SCRIPT)
                    html = page.content()
                finally:
                    browser.close()
        except PlaywrightError as exc:
            if is_missing_browser_error(exc):
                raise FetchError(
                    "Chromium is not installed for Playwright. Run `playwright install chromium`."
                ) from exc
            raise FetchError(f"Could not fetch {target}: {exc}") from exc

        self.logger.info("Fetched %d bytes from %s", len(html), target)
        return html


class StaticHtmlSource:
    """Serves pre-rendered HTML, e.g. a saved page, in place of a live fetch."""

    def __init__(self, pages: dict[str, str]) -> None:
        self._pages = dict(pages)

    def fetch(self, url: str) -> str:
        try:
            return self._pages[url.strip()]
        except KeyError:
            raise FetchError(f"No HTML available for {url}") from None
