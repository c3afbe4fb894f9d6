"""
Multi-engine fallback orchestration.

This module implements the search state machine:

    Idle -> AttemptingPrimary -> AttemptingSecondary -> AttemptingAPI
         -> {Succeeded, Failed}

with:
- Adaptive reordering that skips the primary engine after recent failures
- Rate-governed dispatch of scrape attempts
- One identity and one proxy per request, with proxy failover
- A bounded in-memory attempt log shared across requests

It also drives content extraction through the content normalizer.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

import msgspec

from stealth_search.config.constants import (
    ATTEMPT_LOG_SIZE,
    RATE_LIMIT_WAIT_SECONDS,
    REORDER_FAILURE_THRESHOLD,
    REORDER_LOOKBACK_SECONDS,
    EngineName,
)
from stealth_search.core.context import ServiceContext
from stealth_search.core.errors import (
    EmptyContent,
    NavigationBlocked,
    NavigationError,
    ProxyFailure,
    QuotaExceeded,
    RateLimitExceeded,
    ScraperError,
    SearchFailed,
    UnknownTransient,
)
from stealth_search.core.models import (
    EngineAttempt,
    EngineOutcome,
    ExtractedContent,
    ExtractRequest,
    Identity,
    ProxyEndpoint,
    SearchRequest,
    SearchResponse,
)
from stealth_search.pipelines.browser import BrowserSession
from stealth_search.pipelines.content_normalizer import ContentNormalizer
from stealth_search.pipelines.engines import ApiEngine, ScrapeEngine
from stealth_search.pipelines.result_parser import DUCKDUCKGO_LAYOUT, GOOGLE_LAYOUT
from stealth_search.utils.logging import get_logger, safe_url
from stealth_search.utils.metrics import summarize_attempts

logger = get_logger(__name__)

T = TypeVar("T")




# ==== STATE MACHINE ==== #

class SearchState(Enum):
    IDLE = "idle"
    ATTEMPTING_PRIMARY = "attempting_primary"
    ATTEMPTING_SECONDARY = "attempting_secondary"
    ATTEMPTING_API = "attempting_api"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


NEXT_STATE: dict[SearchState, SearchState] = {
    SearchState.ATTEMPTING_PRIMARY: SearchState.ATTEMPTING_SECONDARY,
    SearchState.ATTEMPTING_SECONDARY: SearchState.ATTEMPTING_API,
    SearchState.ATTEMPTING_API: SearchState.FAILED,
}

STATE_ENGINE: dict[SearchState, EngineName] = {
    SearchState.ATTEMPTING_PRIMARY: "primary",
    SearchState.ATTEMPTING_SECONDARY: "secondary",
    SearchState.ATTEMPTING_API: "api",
}




@dataclass
class RequestRun:
    """
    Per-request pipeline state.

    Attributes:
        identity: Identity used for every step of the request
        proxy: Egress endpoint (cleared after a proxy failure)
        attempts: Attempts recorded by this request
        last_error: Error of the most recent failed attempt
        waited_on_limit: Whether the one-time rate-limit wait was spent
    """

    identity: Identity
    proxy: ProxyEndpoint | None
    attempts: list[EngineAttempt] = field(default_factory=list)
    last_error: ScraperError | None = None
    waited_on_limit: bool = False




def error_for(engine: EngineName, outcome: EngineOutcome) -> ScraperError:
    """Map a failed outcome to the error reported if the chain ends here."""
    url = outcome.final_url or engine
    if outcome.outcome == "blocked":
        return NavigationBlocked(url, outcome.error)
    if outcome.outcome == "empty":
        return EmptyContent(url, outcome.error)
    if outcome.outcome == "rate_limited" and engine == "api":
        return QuotaExceeded(url, outcome.error)
    if outcome.outcome == "transient_error" and (outcome.error or "").startswith("navigation"):
        return NavigationError(url, outcome.error)
    return UnknownTransient(url, outcome.error)




# ==== ORCHESTRATOR ==== #

class EngineOrchestrator:
    """
    Runs the fallback chain for searches and drives content extraction.

    Args:
        context: Shared service instances
        primary: Primary scrape engine (defaults to Google)
        secondary: Secondary scrape engine (defaults to DuckDuckGo)
        normalizer: Content normalizer
        clock: Monotonic clock for attempt timestamps
        sleep: Coroutine used for governor delays

    Example:
        orchestrator = EngineOrchestrator(context)
        response = await orchestrator.search(SearchRequest("example query", 5))
    """

    def __init__(
        self,
        context: ServiceContext,
        *,
        primary: ScrapeEngine | None = None,
        secondary: ScrapeEngine | None = None,
        normalizer: ContentNormalizer | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._context = context
        config = context.config

        self.primary = primary or ScrapeEngine("primary", GOOGLE_LAYOUT, config)
        self.secondary = secondary or ScrapeEngine("secondary", DUCKDUCKGO_LAYOUT, config)
        self.api = ApiEngine(context.api_client) if context.api_client is not None else None
        self.normalizer = normalizer or ContentNormalizer()

        self._clock = clock
        self._sleep = sleep
        self._attempts: deque[EngineAttempt] = deque(maxlen=ATTEMPT_LOG_SIZE)
        self._lock = threading.Lock()




    # --► ATTEMPT LOG

    def _record(
        self,
        run: RequestRun,
        engine: EngineName,
        outcome: EngineOutcome,
        started: float,
    ) -> EngineAttempt:
        now = self._clock()
        attempt = EngineAttempt(
            engine=engine,
            outcome=outcome.outcome,
            timestamp=now,
            detail=outcome.error,
            duration_ms=int((now - started) * 1000),
        )
        with self._lock:
            self._attempts.append(attempt)
        run.attempts.append(attempt)

        logger.info(
            "Engine %s -> %s%s",
            engine,
            outcome.outcome,
            f" ({outcome.error})" if outcome.error else "",
        )
        return attempt


    def attempts(self) -> list[EngineAttempt]:
        with self._lock:
            return list(self._attempts)


    def should_skip_primary(self) -> bool:
        """
        Check whether the chain should start at the secondary engine.

        True when the log holds at least two blocked/transient_error primary
        outcomes within the last five minutes.
        """
        cutoff = self._clock() - REORDER_LOOKBACK_SECONDS
        with self._lock:
            recent_failures = sum(
                1
                for attempt in self._attempts
                if attempt.engine == "primary"
                and attempt.outcome in ("blocked", "transient_error")
                and attempt.timestamp >= cutoff
            )
        return recent_failures >= REORDER_FAILURE_THRESHOLD




    # --► RESOURCES

    def _new_run(self) -> RequestRun:
        context = self._context
        proxy = None
        if context.config.proxy_enabled and context.proxy_selector is not None:
            proxy = context.proxy_selector.select(context.config.proxy_pool_class)
        return RequestRun(identity=context.rotator.next(), proxy=proxy)


    async def _with_session(
        self,
        run: RequestRun,
        action: Callable[[BrowserSession], Awaitable[T]],
    ) -> T:
        """
        Run an action in a browser session, failing over once to no proxy.

        Raises:
            ProxyFailure: If the direct retry also reports a proxy failure
        """
        browser = self._context.browser

        try:
            async with browser.session(run.identity, run.proxy) as session:
                return await action(session)
        except ProxyFailure as exc:
            if run.proxy is None:
                raise
            if self._context.proxy_selector is not None:
                self._context.proxy_selector.report_failure(run.proxy, exc.detail or str(exc))
            logger.warning("Proxy %s failed, retrying without proxy", run.proxy.address)
            run.proxy = None

        async with browser.session(run.identity, None) as session:
            return await action(session)




    # --► DISPATCH

    async def _reserve_slot(self, run: RequestRun) -> float:
        """
        Claim a rate-governor slot, waiting once if configured.

        Raises:
            RateLimitExceeded: If no slot is available
        """
        governor = self._context.governor

        try:
            return governor.reserve()
        except RateLimitExceeded:
            if not governor.config.wait_on_limit or run.waited_on_limit:
                raise

        run.waited_on_limit = True
        logger.info("Rate limit reached, waiting %.0fs once", RATE_LIMIT_WAIT_SECONDS)
        await self._sleep(RATE_LIMIT_WAIT_SECONDS)
        return governor.reserve()


    async def _attempt_scrape(
        self,
        run: RequestRun,
        engine: ScrapeEngine,
        request: SearchRequest,
    ) -> tuple[EngineOutcome, ScraperError | None]:
        try:
            delay = await self._reserve_slot(run)
        except RateLimitExceeded as exc:
            return EngineOutcome(outcome="rate_limited", error=str(exc)), exc

        await self._sleep(delay)

        try:
            outcome = await self._with_session(
                run,
                lambda session: engine.run(session, request),
            )
        except ScraperError as exc:
            outcome = EngineOutcome(outcome="transient_error", error=str(exc))
        except Exception as exc:
            # browser launch and context failures land here
            logger.exception("Engine %s crashed", engine.name)
            outcome = EngineOutcome(
                outcome="transient_error",
                error=f"unknown_transient: {type(exc).__name__}: {exc}",
            )

        self._context.governor.record_outcome(outcome.outcome == "success")

        if outcome.outcome == "success":
            return outcome, None
        return outcome, error_for(engine.name, outcome)




    # --► SEARCH

    async def search(self, request: SearchRequest) -> SearchResponse:
        """
        Run the fallback chain for a search request.

        Args:
            request: Search request

        Returns:
            SearchResponse from the first engine producing results

        Raises:
            RateLimitExceeded: If the last engine was refused by the governor
            QuotaExceeded: If the API quota is exhausted and nothing else is left
            SearchFailed: If every engine failed otherwise
        """
        run = self._new_run()
        state = SearchState.IDLE

        if self.should_skip_primary():
            logger.info("Primary engine failing recently, starting at secondary")
            state = SearchState.ATTEMPTING_SECONDARY
        else:
            state = SearchState.ATTEMPTING_PRIMARY

        logger.info(
            "Search started (limit %d, identity %s, proxy %s)",
            request.result_limit,
            run.identity.name,
            run.proxy.address if run.proxy else "none",
        )

        outcome: EngineOutcome | None = None

        while state not in (SearchState.SUCCEEDED, SearchState.FAILED):
            engine_name = STATE_ENGINE[state]
            started = self._clock()

            if state is SearchState.ATTEMPTING_API:
                if self.api is None or not self.api.client.is_configured:
                    logger.info("API engine not configured")
                    state = SearchState.FAILED
                    break
                if not self.api.available():
                    logger.warning("API quota exhausted, not attempting API engine")
                    run.last_error = QuotaExceeded("api", "daily quota exhausted")
                    state = SearchState.FAILED
                    break
                outcome = await self.api.run(request)
                error = None if outcome.outcome == "success" else error_for("api", outcome)
            else:
                engine = self.primary if state is SearchState.ATTEMPTING_PRIMARY else self.secondary
                outcome, error = await self._attempt_scrape(run, engine, request)

            self._record(run, engine_name, outcome, started)

            if outcome.outcome == "success" and outcome.results:
                state = SearchState.SUCCEEDED
            else:
                run.last_error = error
                state = NEXT_STATE[state]

        if state is SearchState.SUCCEEDED and outcome is not None:
            engine_name = run.attempts[-1].engine
            results = [
                msgspec.structs.replace(result, position=position, source_engine=engine_name)
                for position, result in enumerate(
                    outcome.results[: request.result_limit],
                    start=1,
                )
            ]
            logger.info("Search succeeded via %s with %d results", engine_name, len(results))
            return SearchResponse(
                query=request.query,
                results=results,
                engine=engine_name,
                attempts=list(run.attempts),
            )

        return self._fail(run)


    def _fail(self, run: RequestRun) -> SearchResponse:
        last_error = run.last_error
        logger.error(
            "Search failed after %d attempts: %s",
            len(run.attempts),
            last_error,
        )

        if isinstance(last_error, (RateLimitExceeded, QuotaExceeded)):
            last_error.attempts = list(run.attempts)
            raise last_error

        raise SearchFailed(
            detail=str(last_error) if last_error else "no engine available",
            attempts=run.attempts,
            last_error=last_error,
        )




    # --► EXTRACT

    async def extract(self, request: ExtractRequest) -> ExtractedContent:
        """
        Extract normalized content from a URL.

        Confidently auth-walled URLs return an advisory without navigating.

        Raises:
            NavigationError: If the page cannot be loaded
        """
        info = self.normalizer.classify(request.url)

        if info.walled:
            logger.info("Auth-walled %s URL, skipping navigation", info.platform)
            return self.normalizer.auth_advisory(request, info)

        run = self._new_run()
        logger.info("Extracting %s (%s)", safe_url(request.url), info.platform)

        return await self._with_session(
            run,
            lambda session: self.normalizer.extract(
                request,
                info,
                session,
                self._context.config.timeouts.navigation,
            ),
        )




    # --► INTROSPECTION

    def stats(self) -> dict[str, Any]:
        return summarize_attempts(self.attempts())
