"""
Official search API client with daily quota tracking.

This module implements the last-resort engine with:
- Google Custom Search JSON API requests over httpx
- A per-day request counter that resets when the date changes
- Slot reservation so concurrent requests never overrun the quota
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx

from stealth_search.config.constants import API_MAX_RESULTS_PER_REQUEST
from stealth_search.core.errors import ApiError, QuotaExceeded
from stealth_search.core.models import ApiConfig, QuotaState, SearchResult
from stealth_search.utils.logging import get_logger

logger = get_logger(__name__)




# ==== CLIENT CONFIGURATION ==== #

API_BASE_URL: str = "https://www.googleapis.com/customsearch/v1"

API_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (compatible; stealth-search/1.0)",
    "Accept": "application/json",
}




def make_http_client(config: ApiConfig) -> httpx.AsyncClient:
    """Create httpx AsyncClient for the official API."""
    return httpx.AsyncClient(
        http2=True,
        follow_redirects=True,
        timeout=httpx.Timeout(config.timeout_seconds),
        headers=API_HEADERS,
    )




# ==== OFFICIAL SEARCH CLIENT ==== #

class OfficialSearchClient:
    """
    Quota-limited client for the official search API.

    Attributes:
        quota: Current quota counter
    """

    def __init__(
        self,
        config: ApiConfig,
        client: httpx.AsyncClient | None = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._config = config
        self._client = client or make_http_client(config)
        self._today = today
        self._lock = threading.Lock()
        self.quota = QuotaState(
            requests_used_today=0,
            daily_limit=config.daily_limit,
            reset_date=today(),
        )




    # --► QUOTA

    @property
    def is_configured(self) -> bool:
        return bool(
            self._config.enabled
            and self._config.api_key
            and self._config.search_engine_id
        )


    def _roll_date(self) -> None:
        """Reset the counter on date change. Must be called with the lock held."""
        today = self._today()
        if self.quota.reset_date != today:
            logger.info(
                "API quota reset (%d used on %s)",
                self.quota.requests_used_today,
                self.quota.reset_date,
            )
            self.quota.requests_used_today = 0
            self.quota.reset_date = today


    def has_quota(self) -> bool:
        with self._lock:
            self._roll_date()
            return self.quota.requests_used_today < self.quota.daily_limit


    def _reserve(self) -> None:
        with self._lock:
            self._roll_date()
            if self.quota.requests_used_today >= self.quota.daily_limit:
                logger.warning("API daily limit of %d reached", self.quota.daily_limit)
                raise QuotaExceeded(
                    API_BASE_URL,
                    f"daily limit of {self.quota.daily_limit} requests reached",
                )
            self.quota.requests_used_today += 1


    def _refund(self) -> None:
        with self._lock:
            if self.quota.requests_used_today > 0:
                self.quota.requests_used_today -= 1




    # --► SEARCH

    async def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        """
        Search using the official API.

        Args:
            query: Search terms
            limit: Requested results (the API returns at most 10)

        Returns:
            Results numbered 1..n, tagged with the 'api' engine

        Raises:
            ApiError: If the API is not configured or answers with an error
            QuotaExceeded: If the daily quota is exhausted

        Note:
            Only successful responses count against the quota.
        """
        if not self.is_configured:
            raise ApiError(API_BASE_URL, "API key or search engine id not configured")

        self._reserve()

        params = {
            "key": self._config.api_key,
            "cx": self._config.search_engine_id,
            "q": query,
            "num": str(max(1, min(limit, API_MAX_RESULTS_PER_REQUEST))),
        }

        try:
            response = await self._client.get(API_BASE_URL, params=params)
        except httpx.HTTPError as exc:
            self._refund()
            raise ApiError(API_BASE_URL, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code == 429:
            self._refund()
            raise QuotaExceeded(API_BASE_URL, "API answered 429 Too Many Requests")

        if response.status_code >= 400:
            self._refund()
            raise ApiError(
                API_BASE_URL,
                f"API request failed: {response.status_code} {response.text[:200]}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            self._refund()
            raise ApiError(API_BASE_URL, f"API answered with invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            self._refund()
            raise ApiError(
                API_BASE_URL,
                f"API answered with {type(data).__name__}, expected an object",
            )

        if "error" in data:
            self._refund()
            error = data["error"]
            raise ApiError(
                API_BASE_URL,
                f"{error.get('message', 'unknown error')} (code {error.get('code')})",
            )

        results = format_results(data, limit)
        logger.info(
            "API returned %d results (%d/%d requests today)",
            len(results),
            self.quota.requests_used_today,
            self.quota.daily_limit,
        )
        return results




    # --► INTROSPECTION

    def usage_stats(self) -> dict[str, Any]:
        with self._lock:
            self._roll_date()
            used = self.quota.requests_used_today
            limit = self.quota.daily_limit
            return {
                "requests_used": used,
                "requests_remaining": self.quota.remaining,
                "daily_limit": limit,
                "usage_percentage": round(used / limit * 100) if limit else 0,
                "reset_date": self.quota.reset_date.isoformat(),
                "is_configured": self.is_configured,
            }


    async def aclose(self) -> None:
        await self._client.aclose()




def format_results(data: dict[str, Any], limit: int) -> list[SearchResult]:
    """Map API items to SearchResult, skipping items without title or link."""
    results: list[SearchResult] = []

    for item in data.get("items") or []:
        if len(results) >= limit:
            break

        title = (item.get("title") or "").strip()
        link = (item.get("link") or "").strip()
        if not title or not link:
            continue

        results.append(
            SearchResult(
                title=title,
                link=link,
                snippet=(item.get("snippet") or "").strip(),
                display_url=item.get("displayLink") or "",
                position=len(results) + 1,
                source_engine="api",
            )
        )

    return results
