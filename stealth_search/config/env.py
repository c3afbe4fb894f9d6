"""
Environment-based configuration loading with validation.

This module provides:
- Environment variable parsing with defaults
- Configuration value clamping for safety
- ServiceConfig construction from environment
- Proxy pool loading from JSON files and the environment override
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from stealth_search.config.constants import (
    DEFAULT_API_DAILY_LIMIT,
    DEFAULT_BROWSER_LAUNCH_TIMEOUT,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_REQUESTS_PER_MINUTE,
    DEFAULT_MIN_DELAY_SECONDS,
    DEFAULT_NAVIGATION_TIMEOUT,
    DEFAULT_SELECTOR_TIMEOUT,
    PRODUCTION_BROWSER_LAUNCH_TIMEOUT,
    PRODUCTION_MAX_REQUESTS_PER_MINUTE,
    PRODUCTION_NAVIGATION_TIMEOUT,
    PRODUCTION_SELECTOR_TIMEOUT,
)
from stealth_search.core.models import (
    ApiConfig,
    ProxyEndpoint,
    RateLimitConfig,
    ServiceConfig,
    TimeoutConfig,
)
from stealth_search.stealth.config import StealthConfig

# ==== ENVIRONMENT VARIABLE HELPERS ==== #

def _env_int(name: str, default: int) -> int:
    """
    Read integer from environment variable with fallback.

    Args:
        name: Environment variable name
        default: Default value if variable not set

    Returns:
        Integer value from environment or default

    Note:
        Raises ValueError if environment value cannot be parsed as int.
    """
    value = os.getenv(name)

    if value is None or value.strip() == "":
        return default

    return int(value)




def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)

    if value is None or value.strip() == "":
        return default

    return float(value)




def _env_bool(name: str, default: bool) -> bool:
    """
    Read boolean flag from environment.

    Accepts true/false, 1/0, yes/no and on/off (case-insensitive).

    Example:
        PROXY_ENABLED=false -> False
        PROXY_ENABLED unset -> default
    """
    value = os.getenv(name)

    if value is None or value.strip() == "":
        return default

    return value.strip().lower() in {"1", "true", "yes", "on"}




def _clamp(value: float, lower: float, upper: float) -> float:
    """
    Clamp numeric value to safe range.

    Example:
        _clamp(150, 1, 30) -> 30
        _clamp(5, 10, 100) -> 10
    """
    return max(lower, min(upper, value))




# ==== CONFIGURATION LOADERS ==== #

def load_service_config() -> ServiceConfig:
    """
    Load service configuration from environment variables.

    This function:
    1. Picks environment-specific defaults (local or production)
    2. Reads environment variables with those defaults
    3. Clamps values to safe ranges
    4. Constructs an immutable ServiceConfig snapshot

    Environment Variables:
        SEARCH_ENV: Execution environment (local/production)
        MAX_REQUESTS_PER_MINUTE: Sliding-window cap (clamped 1-30)
        MIN_DELAY_SECONDS / MAX_DELAY_SECONDS: Delay bounds (clamped 0.5-600)
        RATE_LIMIT_WAIT: Wait once on the rate limit instead of failing fast
        BROWSER_LAUNCH_TIMEOUT / NAVIGATION_TIMEOUT / SELECTOR_TIMEOUT:
            Step timeouts in seconds (clamped 5-120)
        HEADLESS: Browser headless mode (true/false)
        PROXY_ENABLED: Disable all proxies when false
        PROXY_POOL_PATH: Optional JSON proxy pool file
        PROXY_POOL_CLASS: residential, datacenter or any
        PROXY_URL / PROXY_USERNAME / PROXY_PASSWORD / PROXY_REGION:
            Override endpoint used instead of the pool
        GOOGLE_API_KEY / GOOGLE_SEARCH_ENGINE_ID: Official API credentials
        API_FALLBACK_ENABLED: Allow the official API as last resort
        API_DAILY_LIMIT: Official API daily quota (clamped 1-10000)
        DEBUG_SCREENSHOTS: Capture screenshots of block pages
        SCREENSHOT_DIR: Screenshot directory

    Returns:
        ServiceConfig with validated configuration values
    """
    # --► ENVIRONMENT
    env = os.getenv("SEARCH_ENV", "local").strip().lower()
    is_production = env == "production"
    if not is_production:
        env = "local"

    # --► RATE GOVERNOR
    max_rpm = int(_clamp(
        _env_int(
            "MAX_REQUESTS_PER_MINUTE",
            PRODUCTION_MAX_REQUESTS_PER_MINUTE
            if is_production else DEFAULT_MAX_REQUESTS_PER_MINUTE,
        ),
        1,
        30,
    ))
    min_delay = _clamp(
        _env_float("MIN_DELAY_SECONDS", DEFAULT_MIN_DELAY_SECONDS),
        0.5,
        600.0,
    )
    max_delay = _clamp(
        _env_float("MAX_DELAY_SECONDS", DEFAULT_MAX_DELAY_SECONDS),
        min_delay,
        600.0,
    )

    rate_limit = RateLimitConfig(
        max_requests_per_minute=max_rpm,
        min_delay_seconds=min_delay,
        max_delay_seconds=max_delay,
        wait_on_limit=_env_bool("RATE_LIMIT_WAIT", False),
    )

    # --► TIMEOUTS
    timeouts = TimeoutConfig(
        browser_launch=int(_clamp(
            _env_int(
                "BROWSER_LAUNCH_TIMEOUT",
                PRODUCTION_BROWSER_LAUNCH_TIMEOUT
                if is_production else DEFAULT_BROWSER_LAUNCH_TIMEOUT,
            ),
            5,
            120,
        )),
        navigation=int(_clamp(
            _env_int(
                "NAVIGATION_TIMEOUT",
                PRODUCTION_NAVIGATION_TIMEOUT
                if is_production else DEFAULT_NAVIGATION_TIMEOUT,
            ),
            5,
            120,
        )),
        selector_wait=int(_clamp(
            _env_int(
                "SELECTOR_TIMEOUT",
                PRODUCTION_SELECTOR_TIMEOUT
                if is_production else DEFAULT_SELECTOR_TIMEOUT,
            ),
            5,
            120,
        )),
    )

    # --► OFFICIAL API
    api = ApiConfig(
        api_key=os.getenv("GOOGLE_API_KEY") or None,
        search_engine_id=os.getenv("GOOGLE_SEARCH_ENGINE_ID") or None,
        enabled=_env_bool("API_FALLBACK_ENABLED", True),
        daily_limit=int(_clamp(
            _env_int("API_DAILY_LIMIT", DEFAULT_API_DAILY_LIMIT),
            1,
            10_000,
        )),
    )

    # --► PROXIES
    pool_path_env = os.getenv("PROXY_POOL_PATH")
    pool_class = os.getenv("PROXY_POOL_CLASS", "any").strip().lower()
    if pool_class not in {"residential", "datacenter", "any"}:
        pool_class = "any"

    # --► CONSTRUCT SERVICECONFIG
    return ServiceConfig(
        env=env,  # type: ignore[arg-type]
        rate_limit=rate_limit,
        timeouts=timeouts,
        api=api,
        stealth=StealthConfig(
            simulate_human_behavior=_env_bool("HUMAN_BEHAVIOR", True),
        ),
        headless=_env_bool("HEADLESS", True),
        proxy_enabled=_env_bool("PROXY_ENABLED", True),
        proxy_pool_path=Path(pool_path_env).resolve() if pool_path_env else None,
        proxy_pool_class=pool_class,  # type: ignore[arg-type]
        proxy_override=load_proxy_override(),
        debug_screenshots=_env_bool("DEBUG_SCREENSHOTS", False),
        screenshot_dir=Path(os.getenv("SCREENSHOT_DIR", "debug")),
    )




def load_proxy_override() -> ProxyEndpoint | None:
    """
    Build the environment override endpoint.

    Environment Variables:
        PROXY_URL: Proxy address (scheme optional)
        PROXY_USERNAME / PROXY_PASSWORD: Optional credentials

    Returns:
        ProxyEndpoint with class 'environment', or None when PROXY_URL is unset
    """
    address = os.getenv("PROXY_URL")
    if not address:
        return None

    return ProxyEndpoint(
        address=address.strip(),
        username=os.getenv("PROXY_USERNAME") or None,
        password=os.getenv("PROXY_PASSWORD") or None,
        region=os.getenv("PROXY_REGION", "env"),
        proxy_class="environment",
    )




def load_proxy_pool_from_json(path: Path) -> list[ProxyEndpoint]:
    """
    Load a static proxy pool from a JSON file.

    Expected JSON structure:
        {
            "residential": [
                {"address": "proxy1.example.com:8080",
                 "username": "user", "password": "pass", "region": "US"}
            ],
            "datacenter": [
                {"address": "dc-proxy1.example.com:3128", "region": "US"}
            ]
        }

    Args:
        path: Path to proxy pool JSON file

    Returns:
        Endpoints in file order, residential before datacenter

    Raises:
        FileNotFoundError: If path does not exist
        json.JSONDecodeError: If file is not valid JSON
        KeyError: If an entry has no address
    """
    raw = json.loads(path.read_text(encoding="utf-8"))

    endpoints: list[ProxyEndpoint] = []
    for proxy_class in ("residential", "datacenter"):
        for entry in raw.get(proxy_class, []):
            endpoints.append(
                ProxyEndpoint(
                    address=entry["address"],
                    username=entry.get("username"),
                    password=entry.get("password"),
                    region=entry.get("region", "unknown"),
                    proxy_class=proxy_class,  # type: ignore[arg-type]
                )
            )

    return endpoints
