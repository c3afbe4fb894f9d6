"""
Search engines driven by the orchestrator.

Each engine turns one attempt into a classified EngineOutcome:
- success: at least one structured result
- blocked: block path or block phrase on the result page
- transient_error: navigation failure, timeout or unknown error
- empty: zero results, including markup drift (no container matched)

ProxyFailure is the only exception that escapes a scrape engine; the
orchestrator reports it and retries without a proxy.
"""

from __future__ import annotations

from datetime import UTC, datetime

from stealth_search.config.constants import EngineName
from stealth_search.core.errors import (
    ApiError,
    NavigationError,
    ProxyFailure,
    QuotaExceeded,
    SelectorNotFound,
)
from stealth_search.core.models import EngineOutcome, SearchRequest, ServiceConfig
from stealth_search.pipelines.api_client import OfficialSearchClient
from stealth_search.pipelines.browser import BrowserSession, PageHandle
from stealth_search.pipelines.result_parser import EngineLayout, ResultParser
from stealth_search.utils.block_detection import detect_block
from stealth_search.utils.logging import get_logger, safe_url

logger = get_logger(__name__)

COOKIE_CLICK_TIMEOUT_SECONDS = 2.0




# ==== SCRAPE ENGINE ==== #

class ScrapeEngine:
    """
    Browser scrape of one search site.

    Args:
        name: Engine slot in the fallback chain
        layout: Result page layout of the site
        config: Service configuration (timeouts, stealth, screenshots)
    """

    def __init__(self, name: EngineName, layout: EngineLayout, config: ServiceConfig) -> None:
        self.name = name
        self.layout = layout
        self.parser = ResultParser(layout)
        self._config = config




    async def _capture(self, page: PageHandle, label: str) -> None:
        """Save a debug screenshot; failures only log."""
        if not self._config.debug_screenshots:
            return

        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
        path = self._config.screenshot_dir / f"{self.layout.name}-{label}-{stamp}.png"
        try:
            await page.screenshot(path)
            logger.info("Saved debug screenshot %s", path)
        except Exception as exc:
            logger.warning("Screenshot failed: %s", exc)




    async def _blocked(self, page: PageHandle) -> EngineOutcome | None:
        title = await page.title()
        html = await page.html()
        detection = detect_block(page.final_url, title, html)

        if not detection["blocked"]:
            return None

        logger.warning(
            "%s blocked at %s (%s)",
            self.layout.name,
            safe_url(page.final_url),
            detection["reason"],
        )
        await self._capture(page, "blocked")
        return EngineOutcome(
            outcome="blocked",
            error=detection["reason"],
            final_url=safe_url(page.final_url),
        )




    async def run(self, session: BrowserSession, request: SearchRequest) -> EngineOutcome:
        """
        Execute one search attempt inside a browser session.

        This method:
        1. Navigates directly to the engine's result URL
        2. Classifies block pages
        3. Dismisses cookie consent if shown
        4. Waits for result containers
        5. Simulates a reader on the page
        6. Parses structured results

        Raises:
            ProxyFailure: If the session proxy failed during navigation
        """
        timeouts = self._config.timeouts
        url = self.layout.build_search_url(request.query, request.result_limit)

        try:
            page = await session.navigate(url, timeouts.navigation)

            blocked = await self._blocked(page)
            if blocked is not None:
                return blocked

            if self.layout.cookie_buttons and self._config.stealth.accept_cookies:
                await page.click_first(self.layout.cookie_buttons, COOKIE_CLICK_TIMEOUT_SECONDS)

            matched = await page.wait_for_any(
                self.layout.container.selectors,
                timeouts.selector_wait,
            )
            if matched is None:
                blocked = await self._blocked(page)
                if blocked is not None:
                    return blocked
                await self._capture(page, "empty")
                return EngineOutcome(
                    outcome="empty",
                    error="no result container appeared",
                    final_url=safe_url(page.final_url),
                )

            if self._config.stealth.simulate_human_behavior:
                await page.humanize()

            results = self.parser.parse(
                await page.html(),
                page.final_url,
                request.result_limit,
                self.name,
            )

        except ProxyFailure:
            raise

        except NavigationError as exc:
            logger.warning("%s navigation failed: %s", self.layout.name, exc)
            return EngineOutcome(outcome="transient_error", error=str(exc))

        except SelectorNotFound as exc:
            return EngineOutcome(outcome="empty", error=str(exc))

        except Exception as exc:
            logger.exception("%s attempt failed unexpectedly", self.layout.name)
            return EngineOutcome(
                outcome="transient_error",
                error=f"unknown_transient: {type(exc).__name__}: {exc}",
            )

        if not results:
            return EngineOutcome(
                outcome="empty",
                error="zero results parsed",
                final_url=safe_url(page.final_url),
            )

        return EngineOutcome(
            outcome="success",
            results=results,
            final_url=safe_url(page.final_url),
        )




# ==== API ENGINE ==== #

class ApiEngine:
    """Official API engine; the last link of the chain."""

    name: EngineName = "api"

    def __init__(self, client: OfficialSearchClient) -> None:
        self.client = client


    def available(self) -> bool:
        return self.client.is_configured and self.client.has_quota()


    async def run(self, request: SearchRequest) -> EngineOutcome:
        """
        Query the official API.

        Quota exhaustion is reported as 'rate_limited'; API errors as
        'transient_error'.
        """
        try:
            results = await self.client.search(request.query, request.result_limit)
        except QuotaExceeded as exc:
            return EngineOutcome(outcome="rate_limited", error=str(exc))
        except ApiError as exc:
            logger.warning("API search failed: %s", exc)
            return EngineOutcome(outcome="transient_error", error=str(exc))
        except Exception as exc:
            logger.exception("API attempt failed unexpectedly")
            return EngineOutcome(
                outcome="transient_error",
                error=f"unknown_transient: {type(exc).__name__}: {exc}",
            )

        if not results:
            return EngineOutcome(outcome="empty", error="API returned no items")

        return EngineOutcome(outcome="success", results=results)
