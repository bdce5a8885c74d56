"""
trends_models.py

Data types and exceptions shared by the related-queries scraper.

Everything here is created fresh for a single scrape and discarded once the
result (or error) has been handed back to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ScrapeRequest:
    """A single keyword/region scrape request."""

    keyword: str
    region: str = "US"

    def validate(self) -> None:
        if not self.keyword or not self.keyword.strip():
            raise ValidationError(
                "Missing required parameter: keyword",
                keyword=self.keyword,
                region=self.region,
            )


@dataclass
class RelatedEntry:
    """A related query and its raw magnitude token ("+150%", "85", "Breakout" or "")."""

    query: str
    value: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"query": self.query, "value": self.value}


@dataclass
class ClassifiedBucket:
    """Rising and top entries, in document encounter order."""

    rising: list[RelatedEntry] = field(default_factory=list)
    top: list[RelatedEntry] = field(default_factory=list)

    def add(self, entry: RelatedEntry, rising: bool) -> None:
        if rising:
            self.rising.append(entry)
        else:
            self.top.append(entry)

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        return {
            "rising": [e.to_dict() for e in self.rising],
            "top": [e.to_dict() for e in self.top],
        }


@dataclass
class RelatedData:
    """
    Output of one extraction pass.

    related_topics is reserved: topic extraction is not implemented, so it is
    always empty. It is kept so the payload has the same shape as Trends' own.
    """

    related_queries: ClassifiedBucket = field(default_factory=ClassifiedBucket)
    related_topics: ClassifiedBucket = field(default_factory=ClassifiedBucket)


@dataclass
class ScrapeResult:
    """Final payload returned to the caller."""

    keyword: str
    region: str
    related_queries: ClassifiedBucket = field(default_factory=ClassifiedBucket)
    related_topics: ClassifiedBucket = field(default_factory=ClassifiedBucket)
    scraped_at: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "region": self.region,
            "relatedQueries": self.related_queries.to_dict(),
            "relatedTopics": self.related_topics.to_dict(),
            "scrapedAt": self.scraped_at,
        }


class WaitOutcome(Enum):
    """Result of a best-effort wait. A timeout here never aborts the run."""

    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"


@dataclass
class PageReadiness:
    """What the navigation controller observed before handing the page over."""

    network_idle: WaitOutcome
    consent_selector: str | None
    content: WaitOutcome


# Custom exceptions
class ScrapeError(Exception):
    """Base exception for scrape failures."""

    kind = "ScrapeError"

    def __init__(self, message: str, keyword: str | None = None, region: str | None = None):
        super().__init__(message)
        self.message = message
        self.keyword = keyword
        self.region = region

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "kind": self.kind,
            "keyword": self.keyword,
            "geo": self.region,
        }


class ValidationError(ScrapeError):
    """Raised when the request is unusable (empty keyword)."""

    kind = "ValidationError"


class NavigationError(ScrapeError):
    """Raised when page navigation fails or the run exceeds its time bound."""

    kind = "NavigationError"


class RateLimitedError(ScrapeError):
    """Raised when Google Trends answers with its 429 page. Worth retrying later."""

    kind = "RateLimited"


class ExtractionFault(ScrapeError):
    """Raised when the rendered page could not be read or parsed."""

    kind = "ExtractionFault"
