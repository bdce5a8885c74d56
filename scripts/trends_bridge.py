#!/usr/bin/env python3
"""
trends_bridge.py

Bridge script for other processes (Node.js, cron jobs) to call the scraper.
Outputs JSON to stdout.

Usage:
    python trends_bridge.py related_queries --keyword="coffee" --geo=US
    python trends_bridge.py related_queries --keyword="tea" --geo=Worldwide
"""

import asyncio
import json
import logging
import sys

from playwright_fetcher import FetcherConfig
from trends_api import scrape
from trends_models import ScrapeError


def output_json(data: dict) -> None:
    """Output JSON to stdout."""
    print(json.dumps(data, ensure_ascii=False))


def output_error(message: str, kind: str = "UsageError") -> None:
    """Output error as JSON."""
    output_json({"error": message, "kind": kind, "success": False})


async def fetch_related_queries(keyword: str, geo: str = "US") -> int:
    """Fetch related queries for a keyword. Returns the process exit code."""
    try:
        result = await scrape(keyword, geo, config=FetcherConfig.from_env())
    except ScrapeError as e:
        output_error(e.message, e.kind)
        return 1

    output_json({
        "success": True,
        "data": result.to_dict(),
    })
    return 0


def parse_args(argv: list[str]) -> dict[str, str]:
    args = {}
    for arg in argv:
        if arg.startswith("--"):
            key, _, value = arg[2:].partition("=")
            args[key] = value
    return args


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # Logs go to stderr, stdout is reserved for the JSON payload
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    if not argv:
        output_error("Usage: python trends_bridge.py <command> [options]")
        return 1

    command = argv[0]
    args = parse_args(argv[1:])

    if command == "related_queries":
        keyword = args.get("keyword", "")
        if not keyword:
            output_error("--keyword is required")
            return 1
        return asyncio.run(fetch_related_queries(keyword, args.get("geo", "US")))

    output_error(f"Unknown command: {command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
