"""
HTTP boundary for the search service.

Routes:
- GET  /                  service description
- GET  /search            multi-engine search
- GET  /extract           content extraction (422 for advisories)
- POST /linkedin/scrape   authenticated profile scrape
- GET  /stats             governor, proxy, quota and engine statistics
"""

from __future__ import annotations

import math
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import msgspec
from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from yarl import URL

from stealth_search.core.context import ServiceContext
from stealth_search.core.errors import (
    AuthenticationRequired,
    QuotaExceeded,
    RateLimitExceeded,
    ScraperError,
    SearchFailed,
)
from stealth_search.core.models import ExtractRequest, SearchRequest
from stealth_search.pipelines.orchestrator import EngineOrchestrator
from stealth_search.pipelines.profile_scraper import ProfileScraper
from stealth_search.pipelines.suggestions import alternative_suggestions
from stealth_search.utils.logging import get_logger, safe_url

logger = get_logger(__name__)

MAX_RESULT_LIMIT = 50




class LinkedInScrapeBody(BaseModel):
    url: str | None = None
    email: str | None = None
    password: str | None = None
    manual: bool = False




def _json(payload: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(msgspec.to_builtins(payload), status_code=status_code, headers=headers)


def _error(message: str, status_code: int, /, **extra: Any) -> JSONResponse:
    return _json({"error": message, **extra}, status_code)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def is_valid_url(value: str) -> bool:
    try:
        url = URL(value)
    except ValueError:
        return False
    return url.scheme in ("http", "https") and bool(url.host)




def create_app(
    context: ServiceContext,
    *,
    orchestrator: EngineOrchestrator | None = None,
    profile_scraper: ProfileScraper | None = None,
) -> FastAPI:
    """
    Build the FastAPI application around a service context.

    Args:
        context: Shared service instances; closed on shutdown
        orchestrator: Orchestrator override (defaults to one over context)
        profile_scraper: Profile scraper override

    Returns:
        Configured FastAPI application
    """
    orchestrator = orchestrator or EngineOrchestrator(context)
    profile_scraper = profile_scraper or ProfileScraper(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await context.aclose()

    app = FastAPI(
        title="Stealth Search",
        description="Anti-bot resilient web search and content extraction",
        version="1.0.0",
        lifespan=lifespan,
    )




    @app.get("/")
    async def index() -> dict[str, Any]:
        return {
            "message": "Stealth search and content extraction service",
            "endpoints": {
                "search": "/search?q=your+query&limit=10",
                "extract": "/extract?url=https://example.com",
                "extract-full": "/extract?url=https://example.com&full=true",
                "extract-no-images": "/extract?url=https://example.com&images=false",
                "linkedin-auth": "POST /linkedin/scrape (with credentials in body)",
                "stats": "/stats",
            },
        }




    @app.get("/search")
    async def search(
        q: str | None = None,
        limit: int = Query(10, ge=1, le=MAX_RESULT_LIMIT),
    ) -> JSONResponse:
        if not q or not q.strip():
            return _error('Query parameter "q" is required', 400)

        try:
            response = await orchestrator.search(SearchRequest(query=q.strip(), result_limit=limit))

        except RateLimitExceeded as exc:
            retry_after = max(1, math.ceil(exc.retry_after))
            return _json(
                {
                    "error": "Rate limit exceeded",
                    "message": str(exc),
                    "retryAfter": retry_after,
                },
                429,
                headers={"Retry-After": str(retry_after)},
            )

        except (SearchFailed, QuotaExceeded) as exc:
            logger.error("Search failed: %s", exc)
            diagnostics = exc.diagnostics() if isinstance(exc, SearchFailed) else {}
            return _error(
                "Failed to perform search",
                500,
                message=str(exc),
                attempts=exc.attempts,
                **{k: v for k, v in diagnostics.items() if k != "attempts"},
            )

        return _json(
            {
                "query": response.query,
                "results": response.results,
                "count": response.count,
                "engine": response.engine,
                "attempts": response.attempts,
            }
        )




    @app.get("/extract")
    async def extract(
        url: str | None = None,
        full: bool = False,
        images: bool = True,
    ) -> JSONResponse:
        if not url:
            return _error("URL parameter is required", 400)
        if not is_valid_url(url):
            return _error("Invalid URL format", 400)

        request = ExtractRequest(url=url, full_page=full, include_images=images)
        try:
            content = await orchestrator.extract(request)
        except ScraperError as exc:
            logger.error("Extraction of %s failed: %s", safe_url(url), exc)
            return _error("Failed to extract content", 500, message=str(exc))

        payload: dict[str, Any] = {
            "url": url,
            "content": content,
            "extractedAt": _now_iso(),
        }

        if content.auth_required or content.is_empty:
            if content.is_empty:
                message = (
                    f"Content extraction failed: {content.platform} returned "
                    "empty content (likely blocked)"
                )
            else:
                message = f"Content extraction blocked: {content.platform} requires authentication"

            payload["suggestions"] = alternative_suggestions(content.platform)
            payload["message"] = message
            return _json(payload, 422)

        return _json(payload)




    @app.post("/linkedin/scrape")
    async def linkedin_scrape(body: LinkedInScrapeBody) -> JSONResponse:
        if not body.url:
            return _error("LinkedIn URL is required", 400)
        if not body.manual and not (body.email and body.password):
            return _error(
                "Email and password required for automatic login, or set manual=true",
                400,
            )

        try:
            result = await profile_scraper.scrape(
                body.url,
                email=body.email,
                password=body.password,
                manual=body.manual,
            )
        except ScraperError as exc:
            logger.error("Profile scrape failed: %s", exc)
            suggestion = (
                "Try manual login mode or check credentials"
                if isinstance(exc, AuthenticationRequired)
                else "Retry later or use manual login mode"
            )
            return _error(
                "LinkedIn scraping failed",
                500,
                message=str(exc),
                suggestion=suggestion,
            )

        return _json({**msgspec.to_builtins(result), "extractedAt": _now_iso()})




    @app.get("/stats")
    async def stats() -> JSONResponse:
        return _json(
            {
                "governor": context.governor.stats(),
                "proxies": context.proxy_selector.stats() if context.proxy_selector else None,
                "api": context.api_client.usage_stats() if context.api_client else None,
                "engines": orchestrator.stats(),
            }
        )

    return app
