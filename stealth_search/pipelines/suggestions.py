"""Alternative-access suggestions returned with auth-wall and empty-content advisories."""

from __future__ import annotations

from typing import Any

PLATFORM_SUGGESTIONS: dict[str, dict[str, Any]] = {
    "linkedin": {
        "apiUrl": "https://docs.microsoft.com/en-us/linkedin/",
        "publicAlternatives": [
            "Try LinkedIn company pages (linkedin.com/company/company-name)",
            "Look for the company's official website",
            "Check for press releases or news articles about the content",
        ],
        "tools": [
            "LinkedIn API with proper authentication",
            "Authenticated profile scrape via POST /linkedin/scrape",
            "Manual copy-paste from an authenticated session",
        ],
    },
    "facebook": {
        "apiUrl": "https://developers.facebook.com/docs/graph-api/",
        "publicAlternatives": [
            "Try Facebook business pages",
            "Look for the organization's official website",
            "Check for cross-posted content on other platforms",
        ],
        "tools": [
            "Facebook Graph API",
            "Official Facebook business tools",
        ],
    },
    "twitter": {
        "apiUrl": "https://developer.twitter.com/en/docs/twitter-api",
        "publicAlternatives": [
            "Most Twitter content should be publicly accessible",
            "Try accessing the profile directly",
        ],
        "tools": [
            "Twitter API v2",
            "Direct URL access usually works",
        ],
    },
}

DEFAULT_SUGGESTIONS: dict[str, Any] = {
    "publicAlternatives": ["Try accessing the content directly in a browser"],
    "tools": ["Manual copy-paste"],
}


def alternative_suggestions(platform: str) -> dict[str, Any]:
    """Suggestions for reaching content on a platform; generic ones otherwise."""
    return PLATFORM_SUGGESTIONS.get(platform, DEFAULT_SUGGESTIONS)
