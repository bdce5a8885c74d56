"""Shared fakes for driving the scraper without a browser."""

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from playwright_fetcher import FetcherConfig, PlaywrightTrendsFetcher

EMPTY_PAGE = "<html><head><title>Google Trends</title></head><body></body></html>"


class FakeElement:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    async def click(self):
        self.page.clicked.append(self.selector)


class FakePage:
    """Minimal stand-in for playwright.async_api.Page."""

    def __init__(
        self,
        html: str = EMPTY_PAGE,
        *,
        goto_error: Exception | None = None,
        idle_timeout: bool = False,
        content_timeout: bool = False,
        consent_selector: str | None = None,
        broken_selectors: tuple[str, ...] = (),
    ):
        self.html = html
        self.goto_error = goto_error
        self.idle_timeout = idle_timeout
        self.content_timeout = content_timeout
        self.consent_selector = consent_selector
        self.broken_selectors = broken_selectors
        self.calls: list[tuple] = []
        self.init_scripts: list[str] = []
        self.clicked: list[str] = []

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def add_init_script(self, script=None, path=None):
        self.calls.append(("add_init_script",))
        self.init_scripts.append(script)

    async def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url, wait_until, timeout))
        if self.goto_error:
            raise self.goto_error

    async def wait_for_load_state(self, state=None, timeout=None):
        self.calls.append(("wait_for_load_state", state, timeout))
        if self.idle_timeout:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def content(self):
        self.calls.append(("content",))
        return self.html

    async def query_selector(self, selector):
        self.calls.append(("query_selector", selector))
        if selector in self.broken_selectors:
            raise PlaywrightError(f"Unsupported selector: {selector}")
        if selector == self.consent_selector:
            return FakeElement(self, selector)
        return None

    async def wait_for_selector(self, selector, timeout=None):
        self.calls.append(("wait_for_selector", selector, timeout))
        if self.content_timeout:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        return FakeElement(self, selector)


class FakeFetcher:
    """Runs the real navigation + evaluation path against a FakePage."""

    def __init__(self, page: FakePage, config: FetcherConfig):
        self.page = page
        self.config = config
        self.urls: list[str] = []

    async def evaluate(self, url, fn):
        self.urls.append(url)
        return await PlaywrightTrendsFetcher(self.config).evaluate_page(self.page, url, fn)


@pytest.fixture
def fast_config() -> FetcherConfig:
    """Config with every deliberate pause switched off."""
    return FetcherConfig(human_delay_ms=None, consent_wait_ms=0, settle_wait_ms=0)
