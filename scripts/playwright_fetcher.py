#!/usr/bin/env python3
"""
playwright_fetcher.py

Playwright-based page driver for Google Trends explore pages.

This module provides:
1. NavigationController - drives a single page from goto to "ready to extract":
   load settling, 429 detection, a human-like pause, cookie consent, and
   waiting for the related-queries content to render
2. PlaywrightTrendsFetcher - owns the browser and runs a navigation task plus
   an evaluation function against the rendered document, one isolated
   context per run

Usage:
    from playwright_fetcher import PlaywrightTrendsFetcher

    async with PlaywrightTrendsFetcher() as fetcher:
        title = await fetcher.evaluate(url, lambda doc: doc.title.string)
"""

import asyncio
import logging
import os
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from bs4 import BeautifulSoup
from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from stealth import apply_stealth
from trends_models import (
    ExtractionFault,
    NavigationError,
    PageReadiness,
    RateLimitedError,
    ScrapeError,
    WaitOutcome,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--disable-extensions",
    "--disable-gpu",
    "--disable-dev-shm-usage",
]

# Tried in this order, first hit wins
CONSENT_SELECTORS = [
    'button[aria-label="Accept all"]',
    'button[aria-label="Accept"]',
    '[aria-label="Accept all"]',
    'button:has-text("Accept all")',
    'button:has-text("I agree")',
]

CONTENT_SELECTOR = 'div[class*="related"], table, [data-token]'

RATE_LIMIT_MARKERS = ("429", "Too many requests")


@dataclass
class FetcherConfig:
    """Configuration for Playwright fetcher."""

    headless: bool = True
    navigation_timeout_ms: int = 60000
    network_idle_timeout_ms: int = 30000
    content_timeout_ms: int = 15000
    consent_wait_ms: int = 1500
    settle_wait_ms: int = 3000  # Fixed pause after consent, before waiting for content
    human_delay_ms: tuple[int, int] | None = (2000, 5000)  # None disables the delay
    handler_timeout_s: float = 120.0  # Upper bound for one whole scrape
    locale: str = "en-US"
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1920, "height": 1080})
    launch_args: list[str] = field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))

    @classmethod
    def from_env(cls) -> "FetcherConfig":
        """Build a config from TRENDS_* environment variables, falling back to defaults."""
        config = cls()

        headless = os.getenv("TRENDS_HEADLESS")
        if headless is not None:
            config.headless = headless.strip().lower() in {"1", "true", "yes", "on"}

        nav_timeout = os.getenv("TRENDS_NAVIGATION_TIMEOUT_MS")
        if nav_timeout:
            config.navigation_timeout_ms = int(nav_timeout)

        delay = os.getenv("TRENDS_HUMAN_DELAY_MS")
        if delay is not None:
            config.human_delay_ms = parse_delay_range(delay)

        return config


def parse_delay_range(raw: str) -> tuple[int, int] | None:
    """Parse "min,max" (milliseconds). "0", "off" or "" disable the delay."""
    raw = raw.strip().lower()
    if raw in {"", "0", "off", "none"}:
        return None

    low, _, high = raw.partition(",")
    low_ms = int(low)
    high_ms = int(high) if high else low_ms
    if low_ms < 0 or high_ms < low_ms:
        raise ValueError(f"Invalid delay range: {raw!r}")
    return low_ms, high_ms


class NavigationController:
    """
    Brings a page from blank to ready-for-extraction.

    Idle -> Navigating -> LoadSettling -> RateLimitCheck -> HumanDelay
         -> ConsentHandling -> ContentWaiting -> Ready

    Any state can fail. Only navigation and rate limiting are fatal; the
    network-idle and content waits are best-effort and report a WaitOutcome.
    There is no retry here, the caller decides what to do with a failure.
    """

    def __init__(self, config: FetcherConfig | None = None, rng: random.Random | None = None):
        self.config = config or FetcherConfig()
        self._rng = rng or random.Random()

    async def prepare(self, page: Page, url: str) -> PageReadiness:
        await apply_stealth(page)
        await self._navigate(page, url)

        network_idle = await self._wait_for_network_idle(page)
        await self._check_rate_limit(page)
        await self._human_delay()
        consent_selector = await self._accept_cookie_consent(page)

        if self.config.settle_wait_ms > 0:
            await asyncio.sleep(self.config.settle_wait_ms / 1000)

        content = await self._wait_for_content(page)

        return PageReadiness(
            network_idle=network_idle,
            consent_selector=consent_selector,
            content=content,
        )

    async def _navigate(self, page: Page, url: str) -> None:
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout_ms,
            )
        except PlaywrightError as e:
            raise NavigationError(f"Failed to navigate to {url}: {e}") from e

    async def _wait_for_network_idle(self, page: Page) -> WaitOutcome:
        try:
            await page.wait_for_load_state(
                "networkidle",
                timeout=self.config.network_idle_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.warning("Network idle timeout, continuing...")
            return WaitOutcome.TIMED_OUT
        return WaitOutcome.SUCCEEDED

    async def _check_rate_limit(self, page: Page) -> None:
        content = await page.content()
        if all(marker in content for marker in RATE_LIMIT_MARKERS):
            raise RateLimitedError("Rate limited (429). Google is blocking requests.")

    def human_delay_seconds(self) -> float:
        """Random pause length in [min, max) milliseconds, as seconds."""
        if not self.config.human_delay_ms:
            return 0.0
        low, high = self.config.human_delay_ms
        return (low + self._rng.random() * (high - low)) / 1000

    async def _human_delay(self) -> None:
        delay = self.human_delay_seconds()
        if delay > 0:
            await asyncio.sleep(delay)

    async def _accept_cookie_consent(self, page: Page) -> str | None:
        """
        Click the first cookie consent button found.

        Returns:
            The selector that matched, or None if no consent dialog was shown
        """
        for selector in CONSENT_SELECTORS:
            try:
                button = await page.query_selector(selector)
                if button:
                    await button.click()
                    logger.info(f"Accepted cookie consent via {selector}")
                    if self.config.consent_wait_ms > 0:
                        await asyncio.sleep(self.config.consent_wait_ms / 1000)
                    return selector
            except PlaywrightError as e:
                logger.debug(f"Consent selector {selector} failed: {e}")
                continue

        return None

    async def _wait_for_content(self, page: Page) -> WaitOutcome:
        try:
            await page.wait_for_selector(CONTENT_SELECTOR, timeout=self.config.content_timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning("Content selectors not found, extracting anyway...")
            return WaitOutcome.TIMED_OUT
        return WaitOutcome.SUCCEEDED


class PlaywrightTrendsFetcher:
    """
    Browser owner for explore-page scrapes.

    One Chromium process per fetcher; every evaluate() call gets its own
    browser context and page, so concurrent runs share nothing but the process.
    """

    def __init__(self, config: FetcherConfig | None = None):
        self.config = config or FetcherConfig()
        self._playwright = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> "PlaywrightTrendsFetcher":
        await self._setup()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self._cleanup()

    async def _setup(self) -> None:
        """Initialize Playwright and browser."""
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=self.config.launch_args,
        )

    async def _cleanup(self) -> None:
        """Clean up browser resources."""
        try:
            if self._browser:
                await self._browser.close()
        except PlaywrightError as e:
            logger.warning(f"Failed to close browser: {e}")

        try:
            if self._playwright:
                await self._playwright.stop()
        except PlaywrightError as e:
            logger.warning(f"Failed to stop Playwright: {e}")

        self._browser = None
        self._playwright = None

    async def evaluate(self, url: str, fn: Callable[[BeautifulSoup], T]) -> T:
        """
        Navigate a fresh page to url and run fn against the rendered document.

        Raises:
            NavigationError, RateLimitedError, ExtractionFault
        """
        if self._browser is None:
            raise RuntimeError("Fetcher not started; use 'async with PlaywrightTrendsFetcher()'")

        context = await self._browser.new_context(
            viewport=self.config.viewport,
            locale=self.config.locale,
        )
        try:
            page = await context.new_page()
            return await self.evaluate_page(page, url, fn)
        finally:
            await context.close()

    async def evaluate_page(self, page: Page, url: str, fn: Callable[[BeautifulSoup], T]) -> T:
        """Run the navigation controller on page, then fn on its parsed content."""
        logger.info(f"Processing {url}")
        readiness = await NavigationController(self.config).prepare(page, url)
        logger.debug(
            f"Page ready: network_idle={readiness.network_idle.value}, "
            f"consent={readiness.consent_selector or 'none'}, content={readiness.content.value}"
        )

        try:
            html = await page.content()
            return fn(BeautifulSoup(html, "html.parser"))
        except ScrapeError:
            raise
        except Exception as e:
            raise ExtractionFault(f"Failed to extract data from {url}: {e}") from e


if __name__ == "__main__":
    import sys

    from related_extractor import extract_related_queries
    from trends_url import build_explore_url

    async def main():
        keyword = sys.argv[1] if len(sys.argv) > 1 else "coffee"
        print(f"Testing Playwright fetcher with '{keyword}'...")
        print("=" * 50)

        async with PlaywrightTrendsFetcher(FetcherConfig(headless=True)) as fetcher:
            data = await fetcher.evaluate(
                build_explore_url(keyword),
                lambda doc: extract_related_queries(doc, keyword),
            )
            print(f"  Rising: {[e.query for e in data.related_queries.rising[:5]]}")
            print(f"  Top: {[e.query for e in data.related_queries.top[:5]]}")

    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
