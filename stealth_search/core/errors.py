"""Custom exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stealth_search.core.models import EngineAttempt


class ScraperError(Exception):
    """Base exception for scraper errors."""

    kind = "scraper_error"

    def __init__(self, url: str = "", detail: str | None = None) -> None:
        self.url = url
        self.detail = detail
        self.attempts: list[EngineAttempt] = []
        message = f"{self.kind} for {url}: {detail or ''}"
        super().__init__(message)


class RateLimitExceeded(ScraperError):
    """The sliding-window request cap has been reached."""

    kind = "rate_limit_exceeded"

    def __init__(
        self,
        url: str = "",
        detail: str | None = None,
        retry_after: float = 0.0,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(url, detail)


class NavigationBlocked(ScraperError):
    """The engine served a bot-block page (challenge path or block phrase)."""

    kind = "navigation_blocked"


class NavigationError(ScraperError):
    """Navigation failed at the network level or timed out."""

    kind = "navigation_error"


class SelectorNotFound(ScraperError):
    """No container selector matched; the page markup has drifted."""

    kind = "selector_not_found"


class AuthenticationRequired(ScraperError):
    """Content is withheld behind a login wall."""

    kind = "authentication_required"


class EmptyContent(ScraperError):
    """The engine ran but produced nothing usable."""

    kind = "empty_content"


class ProxyFailure(ScraperError):
    """The egress proxy refused or broke the connection."""

    kind = "proxy_failure"


class QuotaExceeded(ScraperError):
    """The official API daily quota is exhausted."""

    kind = "quota_exceeded"


class ApiError(ScraperError):
    """The official API answered with an error."""

    kind = "api_error"


class UnknownTransient(ScraperError):
    """Unclassified failure that may succeed on another engine."""

    kind = "unknown_transient"


class SearchFailed(ScraperError):
    """Every engine in the fallback chain failed."""

    kind = "search_failed"

    def __init__(
        self,
        url: str = "",
        detail: str | None = None,
        attempts: list[EngineAttempt] | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(url, detail)
        self.attempts = list(attempts or [])
        self.last_error = last_error

    def diagnostics(self) -> dict[str, Any]:
        return {
            "last_error": str(self.last_error) if self.last_error else None,
            "attempts": [
                {"engine": a.engine, "outcome": a.outcome, "detail": a.detail}
                for a in self.attempts
            ],
        }
