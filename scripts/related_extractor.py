"""
related_extractor.py

Related-queries extraction from a rendered Google Trends explore page.

The explore page does not expose stable markup for its "Related queries"
widget, so entries are collected from two loosely structured sources:

1. Links pointing at another explore page (each related query links to its
   own explore URL). The magnitude is searched for in the enclosing row/item.
2. Table rows. The first cell holds the query, the second the magnitude,
   and the widget heading tells whether the whole table is "Rising".

One dedup set spans both sources, so a query seen as a link is not emitted
again from a table row.
"""

import re

from bs4 import BeautifulSoup, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from trends_models import ClassifiedBucket, RelatedData, RelatedEntry

EXPLORE_LINK_SELECTOR = 'a[href*="/trends/explore"]'
ENTRY_CONTAINER_SELECTOR = 'tr, div[class*="item"], li'
WIDGET_SELECTOR = 'div[class*="widget"]'
SECTION_HEADER_SELECTOR = 'h2, h3, [class*="title"]'

MAX_QUERY_LENGTH = 100
BREAKOUT = "Breakout"

# Ordered alternatives, first match wins: signed/unsigned percentage
# (optional thousands separator), the Breakout sentinel, a bare small integer.
VALUE_PATTERN = re.compile(r"(\+?\d{1,3},?\d*%|Breakout|\d{1,3})", re.ASCII)


def parse_value(text: str) -> str:
    """
    Return the first magnitude token found in text, or "" if there is none.

    >>> parse_value("python tutorial +1,250%")
    '+1,250%'
    >>> parse_value("chatgpt Breakout")
    'Breakout'
    """
    match = VALUE_PATTERN.search(text or "")
    return match.group(1) if match else ""


def is_rising_value(value: str) -> bool:
    return "+" in value or value == BREAKOUT


def extract_related_queries(document: BeautifulSoup | str, keyword: str) -> RelatedData:
    """
    Extract rising/top related queries from a rendered explore page.

    Args:
        document: Parsed page, or raw HTML which is parsed here
        keyword: The searched keyword; it is never reported as its own related query

    Returns:
        RelatedData with related_queries filled in and related_topics empty
    """
    if isinstance(document, str):
        document = BeautifulSoup(document, "html.parser")

    result = RelatedData()
    seen: set[str] = set()

    _collect_explore_links(document, keyword, seen, result.related_queries)
    _collect_table_rows(document, keyword, seen, result.related_queries)

    return result


def _text(element: Tag | None) -> str:
    if element is None:
        return ""
    return _text_content(element).strip()


def _text_content(element: Tag) -> str:
    """
    All text below element, like the DOM's textContent.

    Unlike get_text(), strings inside <script>, <style> and <template> count;
    comments and declarations do not.
    """
    return "".join(
        s for s in element.find_all(string=True)
        if not isinstance(s, (Comment, Declaration, Doctype, ProcessingInstruction))
    )


def _accept(query: str, keyword: str, seen: set[str]) -> bool:
    if not query or len(query) >= MAX_QUERY_LENGTH:
        return False
    if query == keyword or query in seen:
        return False
    seen.add(query)
    return True


def _collect_explore_links(
    document: BeautifulSoup,
    keyword: str,
    seen: set[str],
    bucket: ClassifiedBucket,
) -> None:
    for link in document.select(EXPLORE_LINK_SELECTOR):
        query = _text(link)
        if not _accept(query, keyword, seen):
            continue

        container = link.css.closest(ENTRY_CONTAINER_SELECTOR)
        container_text = _text_content(container) if container is not None else ""
        value = parse_value(container_text)
        rising = is_rising_value(value) or "rising" in container_text.lower()

        bucket.add(RelatedEntry(query=query, value=value), rising)


def _collect_table_rows(
    document: BeautifulSoup,
    keyword: str,
    seen: set[str],
    bucket: ClassifiedBucket,
) -> None:
    for table in document.select("table"):
        widget = table.css.closest(WIDGET_SELECTOR)
        header = widget.select_one(SECTION_HEADER_SELECTOR) if widget is not None else None
        rising_section = "rising" in _text(header).lower()

        # Browsers always wrap rows in tbody; raw HTML may not
        rows = table.select("tbody tr") or table.select(":scope > tr")
        for row in rows:
            cells = row.select("td")
            if not cells:
                continue

            query = _text(cells[0].select_one("a")) or _text(cells[0])
            if not _accept(query, keyword, seen):
                continue

            value = _text(cells[1]) if len(cells) >= 2 else ""
            rising = rising_section or is_rising_value(value)

            bucket.add(RelatedEntry(query=query, value=value), rising)
