import asyncio
import re

import pytest
from playwright.async_api import Error as PlaywrightError

import trends_api
from conftest import FakeFetcher, FakePage
from trends_api import assemble_result, scrape, scrape_sync
from trends_models import (
    ClassifiedBucket,
    NavigationError,
    RateLimitedError,
    RelatedData,
    RelatedEntry,
    ScrapeError,
    ScrapeRequest,
    ValidationError,
    utc_timestamp,
)

RELATED_PAGE = """
<html><body>
  <div class="fe-related-queries widget">
    <div class="widget-header"><h2 class="widget-title">Rising queries</h2></div>
    <table><tbody>
      <tr><td><a href="/trends/explore?q=pizza">Pizza</a></td><td>+150%</td></tr>
    </tbody></table>
  </div>
  <div class="fe-related-queries widget">
    <div class="widget-header"><h2 class="widget-title">Top queries</h2></div>
    <table><tbody>
      <tr><td>espresso</td><td>100</td></tr>
      <tr><td>coffee</td><td>90</td></tr>
    </tbody></table>
  </div>
</body></html>
"""

TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class ScriptedFetcher:
    """Fetcher that fails (or stalls) in a scripted way."""

    def __init__(self, error: Exception | None = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.calls = 0

    async def evaluate(self, url, fn):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return fn("<html><body></body></html>")


def run(coro):
    return asyncio.run(coro)


def test_scrape_returns_complete_result(fast_config):
    fetcher = FakeFetcher(FakePage(RELATED_PAGE), fast_config)

    result = run(scrape("coffee", "US", fetcher=fetcher, config=fast_config))
    payload = result.to_dict()

    assert fetcher.urls == ["https://trends.google.com/trends/explore?q=coffee&date=today%2012-m&geo=US"]
    assert payload["keyword"] == "coffee"
    assert payload["region"] == "US"
    assert payload["relatedQueries"] == {
        "rising": [{"query": "Pizza", "value": "+150%"}],
        "top": [{"query": "espresso", "value": "100"}],
    }
    assert payload["relatedTopics"] == {"rising": [], "top": []}
    assert TIMESTAMP_PATTERN.match(payload["scrapedAt"])


def test_worldwide_scrape_has_no_geo(fast_config):
    fetcher = FakeFetcher(FakePage(), fast_config)

    result = run(scrape("tea", "Worldwide", fetcher=fetcher, config=fast_config))

    assert "geo=" not in fetcher.urls[0]
    assert result.region == "Worldwide"


def test_empty_page_still_succeeds(fast_config):
    fetcher = FakeFetcher(FakePage(content_timeout=True), fast_config)

    result = run(scrape("coffee", "US", fetcher=fetcher, config=fast_config))

    assert result.related_queries.rising == []
    assert result.related_queries.top == []


@pytest.mark.parametrize("keyword", ["", "   ", None])
def test_empty_keyword_fails_before_navigation(keyword, fast_config):
    fetcher = ScriptedFetcher()

    with pytest.raises(ValidationError):
        run(scrape(keyword, "US", fetcher=fetcher, config=fast_config))

    assert fetcher.calls == 0


def test_rate_limit_propagates_with_context(fast_config):
    page = FakePage("<html><body>429. Too many requests</body></html>")

    with pytest.raises(RateLimitedError) as excinfo:
        run(scrape("coffee", "GB", fetcher=FakeFetcher(page, fast_config), config=fast_config))

    assert excinfo.value.keyword == "coffee"
    assert excinfo.value.region == "GB"
    assert excinfo.value.kind == "RateLimited"


def test_navigation_error_propagates_unchanged(fast_config):
    error = NavigationError("Failed to navigate")

    with pytest.raises(NavigationError) as excinfo:
        run(scrape("coffee", fetcher=ScriptedFetcher(error=error), config=fast_config))

    assert excinfo.value is error


def test_run_exceeding_time_bound_is_navigation_error(fast_config):
    fast_config.handler_timeout_s = 0.01

    with pytest.raises(NavigationError, match="timed out"):
        run(scrape("coffee", fetcher=ScriptedFetcher(delay=1.0), config=fast_config))


def test_playwright_errors_become_navigation_errors(fast_config):
    fetcher = ScriptedFetcher(error=PlaywrightError("Target page, context or browser has been closed"))

    with pytest.raises(NavigationError, match="has been closed"):
        run(scrape("coffee", fetcher=fetcher, config=fast_config))


def test_unexpected_errors_become_scrape_errors(fast_config):
    with pytest.raises(ScrapeError) as excinfo:
        run(scrape("coffee", fetcher=ScriptedFetcher(error=OSError("boom")), config=fast_config))

    assert type(excinfo.value) is ScrapeError
    assert excinfo.value.message == "boom"


def test_repeated_runs_differ_only_in_timestamp(fast_config):
    first = run(scrape("coffee", fetcher=FakeFetcher(FakePage(RELATED_PAGE), fast_config), config=fast_config))
    second = run(scrape("coffee", fetcher=FakeFetcher(FakePage(RELATED_PAGE), fast_config), config=fast_config))

    first_payload, second_payload = first.to_dict(), second.to_dict()
    first_payload.pop("scrapedAt")
    second_payload.pop("scrapedAt")
    assert first_payload == second_payload


def test_assemble_result_places_fields():
    queries = ClassifiedBucket(rising=[RelatedEntry("latte", "+40%")])
    related = RelatedData(related_queries=queries)

    result = assemble_result("coffee", "US", related, scraped_at="2024-05-01T12:00:00.000Z")

    assert result.keyword == "coffee"
    assert result.region == "US"
    assert result.related_queries is queries
    assert result.scraped_at == "2024-05-01T12:00:00.000Z"


def test_assemble_result_stamps_time_when_missing():
    result = assemble_result("coffee", "US", RelatedData())

    assert TIMESTAMP_PATTERN.match(result.scraped_at)


def test_scrape_request_validation():
    ScrapeRequest("coffee").validate()

    with pytest.raises(ValidationError, match="keyword"):
        ScrapeRequest("", "US").validate()


def test_utc_timestamp_format():
    assert TIMESTAMP_PATTERN.match(utc_timestamp())


def test_scrape_sync_launches_its_own_fetcher(monkeypatch, fast_config):
    launched = []

    class OwnFetcher:
        def __init__(self, config):
            self.inner = FakeFetcher(FakePage(RELATED_PAGE), config)
            launched.append(self)

        async def __aenter__(self):
            return self

        async def __aexit__(self, *args):
            pass

        async def evaluate(self, url, fn):
            return await self.inner.evaluate(url, fn)

    monkeypatch.setattr(trends_api, "PlaywrightTrendsFetcher", OwnFetcher)

    result = scrape_sync("coffee", "US", config=fast_config)

    assert len(launched) == 1
    assert launched[0].inner.urls == [
        "https://trends.google.com/trends/explore?q=coffee&date=today%2012-m&geo=US"
    ]
    assert [e.query for e in result.related_queries.rising] == ["Pizza"]
