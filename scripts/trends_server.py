#!/usr/bin/env python3
"""
trends_server.py

HTTP service exposing the related-queries scraper.

Endpoints:
    GET  /          service banner
    GET  /health    liveness with timestamp
    POST /scrape    {"keyword": "...", "geo": "US"}
    GET  /scrape    ?keyword=...&geo=...  (q= also accepted)

Usage:
    python trends_server.py --port 3001
"""

import argparse
import logging
import os
from dataclasses import dataclass

import uvicorn
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import trends_api
from playwright_fetcher import FetcherConfig
from trends_models import RateLimitedError, ScrapeError, ValidationError, utc_timestamp

logger = logging.getLogger(__name__)

SERVICE_NAME = "trends-scraper"


@dataclass
class ServiceConfig:
    """Process-level settings for the HTTP service."""

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        return cls(
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", cls.port)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


class ScrapeBody(BaseModel):
    keyword: str | None = None
    geo: str = "US"


def create_app(fetcher_config: FetcherConfig | None = None) -> FastAPI:
    app = FastAPI(title="Trends Scraper")
    app.state.fetcher_config = fetcher_config or FetcherConfig.from_env()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def run_scrape(keyword: str, geo: str) -> JSONResponse:
        logger.info(f"Starting scrape for keyword: \"{keyword}\", geo: \"{geo}\"")
        try:
            result = await trends_api.scrape(keyword, geo, config=app.state.fetcher_config)
        except ValidationError as e:
            logger.warning(f"Rejected scrape request: {e.message}")
            return JSONResponse({"error": e.message}, status_code=400)
        except ScrapeError as e:
            logger.error(f"Scrape error ({e.kind}): {e.message}")
            status_code = 429 if isinstance(e, RateLimitedError) else 500
            return JSONResponse(
                {"error": e.message or "Failed to scrape trends data", "keyword": keyword, "geo": geo},
                status_code=status_code,
            )
        return JSONResponse(result.to_dict())

    @app.get("/")
    async def root():
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/health")
    async def health():
        return {"status": "healthy", "timestamp": utc_timestamp()}

    @app.post("/scrape")
    async def scrape_post(body: ScrapeBody | None = None):
        body = body or ScrapeBody()
        if not body.keyword:
            return JSONResponse({"error": "Missing required parameter: keyword"}, status_code=400)
        return await run_scrape(body.keyword, body.geo)

    # GET endpoint for simpler testing
    @app.get("/scrape")
    async def scrape_get(
        keyword: str | None = Query(default=None),
        q: str | None = Query(default=None),
        geo: str = Query(default="US"),
    ):
        keyword = keyword or q
        if not keyword:
            return JSONResponse({"error": "Missing required parameter: keyword or q"}, status_code=400)
        return await run_scrape(keyword, geo)

    return app


def main() -> None:
    config = ServiceConfig.from_env()

    parser = argparse.ArgumentParser(description="Google Trends related-queries scraper service")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument("--log-level", default=config.log_level)
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info(f"Trends scraper service running on port {args.port}")
    logger.info(f"Health check: http://localhost:{args.port}/health")
    logger.info(f"Scrape endpoint: POST http://localhost:{args.port}/scrape")

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
