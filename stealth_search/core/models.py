"""
Core data models and type definitions for the stealth search service.

This module defines:
- Configuration structures (ServiceConfig, RateLimitConfig, TimeoutConfig, ApiConfig)
- Request types (SearchRequest, ExtractRequest)
- Identity and proxy endpoint models
- Engine attempt records and classified engine outcomes
- Result types (SearchResult, SearchResponse, ExtractedContent, QuotaState)
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import msgspec

from stealth_search.config.constants import (
    DEFAULT_API_DAILY_LIMIT,
    DEFAULT_API_TIMEOUT_SECONDS,
    DEFAULT_BROWSER_LAUNCH_TIMEOUT,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_REQUESTS_PER_MINUTE,
    DEFAULT_MIN_DELAY_SECONDS,
    DEFAULT_NAVIGATION_TIMEOUT,
    DEFAULT_SELECTOR_TIMEOUT,
    JITTER_RATIO,
    EngineName,
    Environment,
    ExtractionMode,
    Outcome,
    PoolSelector,
    ProxyClass,
)
from stealth_search.stealth.config import StealthConfig




# ==== CONFIGURATION MODELS ==== #

class RateLimitConfig(msgspec.Struct, omit_defaults=True):
    """
    Rate governor configuration.

    Attributes:
        max_requests_per_minute: Attempts allowed inside the 60 s window
        min_delay_seconds: Floor for the adaptive base delay
        max_delay_seconds: Ceiling for the adaptive base delay
        initial_delay_seconds: Starting base delay (defaults to min delay)
        jitter_ratio: Multiplicative jitter amplitude (0 disables jitter)
        micro_pauses: Whether thinking/distraction/break pauses are added
        human_patterns: Whether circadian/weekend/lunch multipliers apply
        adaptive: Whether recorded outcomes adjust the base delay
        wait_on_limit: Wait a fixed interval once instead of failing fast
    """

    max_requests_per_minute: int = DEFAULT_MAX_REQUESTS_PER_MINUTE
    min_delay_seconds: float = DEFAULT_MIN_DELAY_SECONDS
    max_delay_seconds: float = DEFAULT_MAX_DELAY_SECONDS
    initial_delay_seconds: float | None = None
    jitter_ratio: float = JITTER_RATIO
    micro_pauses: bool = True
    human_patterns: bool = True
    adaptive: bool = True
    wait_on_limit: bool = False




class TimeoutConfig(msgspec.Struct, omit_defaults=True):
    """
    Per-step browser timeouts in seconds.

    Attributes:
        browser_launch: Browser process launch timeout
        navigation: Page navigation timeout
        selector_wait: Wait for result containers to appear
    """

    browser_launch: int = DEFAULT_BROWSER_LAUNCH_TIMEOUT
    navigation: int = DEFAULT_NAVIGATION_TIMEOUT
    selector_wait: int = DEFAULT_SELECTOR_TIMEOUT




class ApiConfig(msgspec.Struct, omit_defaults=True):
    """
    Official search API configuration.

    Attributes:
        api_key: API key (None disables the API engine)
        search_engine_id: Custom search engine identifier
        enabled: Whether the API may be used as a fallback
        daily_limit: Requests allowed per calendar day
        timeout_seconds: HTTP timeout for API calls
    """

    api_key: str | None = None
    search_engine_id: str | None = None
    enabled: bool = True
    daily_limit: int = DEFAULT_API_DAILY_LIMIT
    timeout_seconds: float = DEFAULT_API_TIMEOUT_SECONDS




class ServiceConfig(msgspec.Struct, omit_defaults=True):
    """
    Immutable configuration snapshot read once at process start.

    Attributes:
        env: Execution environment (local, production)
        rate_limit: Rate governor settings
        timeouts: Browser step timeouts
        api: Official search API settings
        stealth: Stealth/anti-detection settings
        headless: Run the browser headless
        proxy_enabled: Whether proxies are used at all
        proxy_pool_path: Optional JSON file describing the proxy pool
        proxy_pool_class: Pool class requested from the selector
        proxy_override: PROXY_URL endpoint that bypasses the pool
        debug_screenshots: Capture screenshots of block pages
        screenshot_dir: Directory for debug screenshots
    """

    env: Environment = "local"
    rate_limit: RateLimitConfig = msgspec.field(default_factory=RateLimitConfig)
    timeouts: TimeoutConfig = msgspec.field(default_factory=TimeoutConfig)
    api: ApiConfig = msgspec.field(default_factory=ApiConfig)
    stealth: StealthConfig = msgspec.field(default_factory=StealthConfig)
    headless: bool = True
    proxy_enabled: bool = True
    proxy_pool_path: Path | None = None
    proxy_pool_class: PoolSelector = "any"
    proxy_override: ProxyEndpoint | None = None
    debug_screenshots: bool = False
    screenshot_dir: Path = Path("debug")




# ==== REQUEST MODELS ==== #

def _utc_now() -> datetime:
    return datetime.now(UTC)


class SearchRequest(msgspec.Struct, frozen=True):
    """
    One search request; immutable for the lifetime of the request.

    Attributes:
        query: Search terms
        result_limit: Maximum number of results to return
        requested_at: UTC timestamp of the request
    """

    query: str
    result_limit: int = 10
    requested_at: datetime = msgspec.field(default_factory=_utc_now)




class ExtractRequest(msgspec.Struct, frozen=True):
    """
    One content extraction request.

    Attributes:
        url: Document URL
        full_page: Extract the whole document instead of the main content
        include_images: Keep images (with absolute URLs) in the Markdown
        requested_at: UTC timestamp of the request
    """

    url: str
    full_page: bool = False
    include_images: bool = True
    requested_at: datetime = msgspec.field(default_factory=_utc_now)




# ==== IDENTITY & PROXY MODELS ==== #

class Viewport(msgspec.Struct, frozen=True):
    width: int
    height: int


class ScreenProfile(msgspec.Struct, frozen=True):
    width: int
    height: int
    color_depth: int = 24


class Identity(msgspec.Struct, frozen=True):
    """
    Browser identity presented for one session.

    Attributes:
        name: Template name the identity was derived from
        browser_family: 'chromium' or 'firefox'
        user_agent: User-Agent string
        viewport: Window viewport (jittered)
        platform: navigator.platform value
        accept_language: Accept-Language header value
        screen_profile: Screen metrics
        headers: Full set of extra request headers for the session
        locale: Browser locale
        timezone_id: IANA timezone
    """

    name: str
    browser_family: str
    user_agent: str
    viewport: Viewport
    platform: str
    accept_language: str
    screen_profile: ScreenProfile
    headers: dict[str, str]
    locale: str = "en-US"
    timezone_id: str = "America/New_York"

    @property
    def languages(self) -> list[str]:
        """Language tags without quality weights, for navigator.languages."""
        return [part.split(";")[0].strip() for part in self.accept_language.split(",")]




class ProxyEndpoint(msgspec.Struct):
    """
    Egress proxy endpoint with mutable health state.

    Attributes:
        address: host:port (scheme optional)
        username: Optional credential user
        password: Optional credential password
        region: Country/region label
        proxy_class: residential, datacenter or environment
        failure_count: Failures since last reset
        last_failure_at: Clock value of the last failure
        last_used_at: Clock value of the last selection
    """

    address: str
    username: str | None = None
    password: str | None = None
    region: str = "unknown"
    proxy_class: ProxyClass = "residential"
    failure_count: int = 0
    last_failure_at: float | None = None
    last_used_at: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.address}:{self.username or ''}"




# ==== ENGINE ATTEMPT MODELS ==== #

class EngineAttempt(msgspec.Struct, frozen=True):
    """
    Record of one state-machine transition.

    Attributes:
        engine: Engine that was attempted
        outcome: Classified outcome
        timestamp: Clock value when the attempt finished
        detail: Short diagnostic message
        duration_ms: Attempt latency in milliseconds
    """

    engine: EngineName
    outcome: Outcome
    timestamp: float
    detail: str | None = None
    duration_ms: int | None = None




class SearchResult(msgspec.Struct):
    """
    One structured search hit.

    Attributes:
        title: Result title
        link: Absolute destination URL
        snippet: Result description text
        display_url: URL as displayed by the engine
        position: 1-based extraction order
        source_engine: Engine that produced the hit
    """

    title: str
    link: str
    snippet: str = ""
    display_url: str = ""
    position: int = 0
    source_engine: EngineName | None = None




class EngineOutcome(msgspec.Struct):
    """
    Classified result of one engine task.

    Engines never raise for expected failures; they return an outcome and
    let the orchestrator's transition table decide what happens next.
    """

    outcome: Outcome
    results: list[SearchResult] = msgspec.field(default_factory=list)
    error: str | None = None
    final_url: str | None = None




class SearchResponse(msgspec.Struct):
    """
    Successful search response.

    Attributes:
        query: Original query
        results: Ordered hits with contiguous positions
        engine: Engine that satisfied the request
        attempts: Attempt records for this request
    """

    query: str
    results: list[SearchResult]
    engine: EngineName
    attempts: list[EngineAttempt] = msgspec.field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.results)




class ExtractedContent(msgspec.Struct):
    """
    Normalized document content or an advisory.

    Exactly one of {normal content, auth_required advisory, is_empty
    advisory} is populated. Advisories keep ``markdown`` empty and explain
    themselves in ``advisory``.
    """

    title: str
    markdown: str
    source_url: str
    extraction_mode: ExtractionMode
    platform: str
    auth_required: bool = False
    is_empty: bool = False
    advisory: str | None = None
    diagnostics: dict[str, Any] | None = None




class QuotaState(msgspec.Struct):
    """
    Official API quota counter.

    Attributes:
        requests_used_today: Successful requests since reset_date
        daily_limit: Requests allowed per day
        reset_date: Calendar date the counter belongs to
    """

    requests_used_today: int
    daily_limit: int
    reset_date: date

    @property
    def remaining(self) -> int:
        return max(0, self.daily_limit - self.requests_used_today)
