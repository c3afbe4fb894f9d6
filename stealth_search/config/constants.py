"""
Configuration constants and type aliases for the stealth search service.

This module defines:
- Type literals for engines, attempt outcomes, proxy classes and extraction modes
- Default rate-governor values (sliding window, delays, adaptive thresholds)
- Default browser timeouts for local and production environments
- Proxy quarantine limits and content thresholds
"""

from __future__ import annotations

from typing import Literal

# ==== TYPE DEFINITIONS ==== #

EngineName = Literal["primary", "secondary", "api"]
"""
Search engine identifier.

- 'primary': Scrape of the primary search site (Google)
- 'secondary': Scrape of the secondary search site (DuckDuckGo)
- 'api': Official, quota-limited search API
"""


Outcome = Literal[
    "success",
    "blocked",
    "transient_error",
    "empty",
    "rate_limited",
]
"""
Classified outcome of one engine attempt.

- 'success': Engine returned at least one structured result
- 'blocked': Explicit bot-block indicators (block path, block phrase)
- 'transient_error': Navigation/network timeout or unknown transient failure
- 'empty': Engine ran but produced zero results (includes selector drift)
- 'rate_limited': Rate governor refused to dispatch the attempt
"""


ProxyClass = Literal["residential", "datacenter", "environment"]
"""Egress endpoint class; 'environment' marks the env override endpoint."""


PoolSelector = Literal["residential", "datacenter", "any"]
"""Pool class requested from the proxy selector."""


ExtractionMode = Literal["main-content", "full-page"]
"""Fragment selection mode for content extraction."""


Environment = Literal["local", "production"]
"""Execution environment; production uses conservative defaults."""




# ==== RATE GOVERNOR DEFAULTS ==== #

RATE_WINDOW_SECONDS: float = 60.0
"""Sliding window length for the per-minute request cap."""

DEFAULT_MAX_REQUESTS_PER_MINUTE: int = 3
"""Per-minute attempt cap for local runs."""

PRODUCTION_MAX_REQUESTS_PER_MINUTE: int = 2
"""Per-minute attempt cap in production."""

DEFAULT_MIN_DELAY_SECONDS: float = 2.0
"""Lower bound for the adaptive base delay and every computed delay."""

DEFAULT_MAX_DELAY_SECONDS: float = 60.0
"""Upper bound for the adaptive base delay and every computed delay."""

RATE_LIMIT_WAIT_SECONDS: float = 60.0
"""Fixed wait applied once when the orchestrator is configured to wait."""

OUTCOME_HISTORY_SIZE: int = 50
"""Ring buffer size for recorded outcomes."""

ADAPTIVE_WINDOW: int = 10
"""Number of most recent outcomes used to compute the success rate."""

JITTER_RATIO: float = 0.3
"""Multiplicative jitter applied to each delay (+/- 30%)."""

CIRCADIAN_MULTIPLIERS: dict[int, float] = {
    0: 0.3,
    3: 0.2,
    6: 0.5,
    9: 1.0,
    12: 0.8,
    15: 1.0,
    18: 0.9,
    21: 0.6,
}
"""Delay multiplier keyed by the first hour of each 3-hour block."""

WEEKEND_SLOWDOWN: float = 0.7
"""Weekend activity factor; delay is divided by it (about 1.43x)."""

WORKING_HOURS: tuple[int, int] = (9, 17)
LUNCH_BREAK: tuple[int, int] = (12, 13)

MICRO_PAUSES: tuple[tuple[float, float, float], ...] = (
    (0.30, 2.0, 7.0),
    (0.10, 10.0, 25.0),
    (0.05, 60.0, 90.0),
)
"""(probability, low seconds, high seconds) for thinking, distraction and break pauses."""




# ==== ORCHESTRATOR DEFAULTS ==== #

REORDER_LOOKBACK_SECONDS: float = 300.0
"""Window in which primary-engine failures trigger adaptive reordering."""

REORDER_FAILURE_THRESHOLD: int = 2
"""Primary failures within the lookback that start the chain at secondary."""

ATTEMPT_LOG_SIZE: int = 500
"""Maximum number of engine attempts retained in memory."""




# ==== PROXY DEFAULTS ==== #

PROXY_MAX_FAILURES: int = 3
"""Failures after which an endpoint is quarantined."""

PROXY_COOLDOWN_SECONDS: float = 30 * 60
"""Quarantine duration measured from the last failure."""




# ==== BROWSER TIMEOUTS (seconds) ==== #

DEFAULT_BROWSER_LAUNCH_TIMEOUT: int = 30
DEFAULT_NAVIGATION_TIMEOUT: int = 30
DEFAULT_SELECTOR_TIMEOUT: int = 20

PRODUCTION_BROWSER_LAUNCH_TIMEOUT: int = 45
PRODUCTION_NAVIGATION_TIMEOUT: int = 45
PRODUCTION_SELECTOR_TIMEOUT: int = 30




# ==== OFFICIAL API DEFAULTS ==== #

DEFAULT_API_DAILY_LIMIT: int = 100
"""Free-tier daily request allowance for the official search API."""

API_MAX_RESULTS_PER_REQUEST: int = 10
"""The official API returns at most 10 items per request."""

DEFAULT_API_TIMEOUT_SECONDS: float = 10.0




# ==== CONTENT THRESHOLDS ==== #

LOGIN_WALL_MIN_TEXT: int = 200
"""Visible text shorter than this on an auth-walled platform means a login wall."""

EMPTY_MARKDOWN_MIN_CHARS: int = 50
"""Markdown shorter than this on a classified platform becomes an empty advisory."""

GENERIC_PLATFORM: str = "general"
