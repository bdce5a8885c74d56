#!/usr/bin/env python3
"""
trends_api.py

Related-queries scrape pipeline for Google Trends.

Sequences URL building, navigation and extraction for exactly one explore
page, and assembles the typed result. A single attempt per call: retrying
(for example after a RateLimitedError) is left to the caller.

Usage:
    from trends_api import scrape, scrape_sync

    # Async usage
    result = await scrape("coffee", "US")

    # Synchronous usage
    result = scrape_sync("tea", "Worldwide")
    print(result.to_dict())
"""

import asyncio
import logging
from typing import Protocol

from playwright.async_api import Error as PlaywrightError

from playwright_fetcher import FetcherConfig, PlaywrightTrendsFetcher
from related_extractor import extract_related_queries
from trends_models import (
    NavigationError,
    RelatedData,
    ScrapeError,
    ScrapeRequest,
    ScrapeResult,
    utc_timestamp,
)
from trends_url import build_explore_url

logger = logging.getLogger(__name__)


class PageEvaluator(Protocol):
    """Anything that can render a URL and run a function against its document."""

    async def evaluate(self, url, fn): ...


def assemble_result(
    keyword: str,
    region: str,
    related: RelatedData,
    scraped_at: str | None = None,
) -> ScrapeResult:
    """Place extraction output into the final result shape."""
    return ScrapeResult(
        keyword=keyword,
        region=region,
        related_queries=related.related_queries,
        related_topics=related.related_topics,
        scraped_at=scraped_at or utc_timestamp(),
    )


async def scrape(
    keyword: str,
    region: str = "US",
    *,
    fetcher: PageEvaluator | None = None,
    config: FetcherConfig | None = None,
) -> ScrapeResult:
    """
    Scrape related queries for a keyword.

    Args:
        keyword: Search term (must be non-empty)
        region: ISO-2 region code, or "Worldwide"/"" for global data
        fetcher: Started fetcher to run on; a private one is launched if omitted
        config: Fetcher configuration (timeouts, delays, browser flags)

    Returns:
        ScrapeResult with rising/top related queries

    Raises:
        ValidationError: Empty keyword, raised before any navigation
        NavigationError: Page did not load, or the run took too long
        RateLimitedError: Google Trends served its 429 page
        ExtractionFault: The rendered page could not be read
        ScrapeError: Anything else that went wrong
    """
    config = config or FetcherConfig()
    request = ScrapeRequest(keyword=keyword, region=region)
    request.validate()

    url = build_explore_url(request.keyword, request.region)
    logger.info(f"Starting scrape for keyword: \"{keyword}\", geo: \"{region}\"")

    try:
        related = await asyncio.wait_for(
            _run(url, request.keyword, fetcher, config),
            timeout=config.handler_timeout_s,
        )
    except ScrapeError as e:
        e.keyword, e.region = keyword, region
        raise
    except asyncio.TimeoutError as e:
        raise NavigationError(
            f"Scrape timed out after {config.handler_timeout_s:g}s",
            keyword=keyword,
            region=region,
        ) from e
    except PlaywrightError as e:
        raise NavigationError(str(e), keyword=keyword, region=region) from e
    except Exception as e:
        raise ScrapeError(
            str(e) or "Failed to scrape trends data",
            keyword=keyword,
            region=region,
        ) from e

    result = assemble_result(keyword, region, related)
    logger.info(
        f"Scraped {len(result.related_queries.rising)} rising and "
        f"{len(result.related_queries.top)} top queries"
    )
    return result


async def _run(
    url: str,
    keyword: str,
    fetcher: PageEvaluator | None,
    config: FetcherConfig,
) -> RelatedData:
    def extract(document):
        return extract_related_queries(document, keyword)

    if fetcher is not None:
        return await fetcher.evaluate(url, extract)

    async with PlaywrightTrendsFetcher(config) as own_fetcher:
        return await own_fetcher.evaluate(url, extract)


def scrape_sync(keyword: str, region: str = "US", config: FetcherConfig | None = None) -> ScrapeResult:
    """Synchronous wrapper for scrape()."""
    return asyncio.run(scrape(keyword, region, config=config))
