"""Tests for bot-block detection."""

import pytest

from stealth_search.utils.block_detection import detect_block

SEARCH_URL = "https://www.google.com/search?q=example"


def test_detect_search_challenge_path() -> None:
    result = detect_block("https://www.google.com/sorry/index?continue=x", "", None)
    assert result["blocked"]
    assert result["vendor"] == "search_challenge"
    assert "/sorry/" in result["reason"]


def test_detect_interstitial_title() -> None:
    result = detect_block(SEARCH_URL, "CAPTCHA check", "<html></html>")
    assert result["blocked"]
    assert result["reason"] == "interstitial page title"


def test_captcha_in_query_and_title_is_not_a_block() -> None:
    url = "https://www.google.com/search?q=captcha+solver&hl=en"
    html = "<html><body><div id='rso'><h3>Best captcha solver</h3></div></body></html>"

    result = detect_block(url, "captcha solver - Google Search", html)

    assert not result["blocked"]


def test_captcha_path_segment_is_a_block() -> None:
    result = detect_block("https://example.com/captcha/verify?next=/", "", None)
    assert result["blocked"]
    assert result["vendor"] == "search_challenge"


@pytest.mark.parametrize(
    ("html", "vendor"),
    [
        ('<div class="g-recaptcha" data-sitekey="abc123"></div>', "recaptcha"),
        ('<div class="h-captcha" data-sitekey="xyz789"></div>', "hcaptcha"),
        ('<div class="cf-turnstile" data-sitekey="test"></div>', "turnstile"),
        (
            "<html><body>Checking your browser before accessing example.com</body></html>",
            "cloudflare_block",
        ),
        (
            "<p>Our systems have detected unusual traffic from your computer network.</p>",
            "generic_block",
        ),
    ],
)
def test_detect_vendors(html: str, vendor: str) -> None:
    result = detect_block(SEARCH_URL, "Search", html)
    assert result["blocked"]
    assert result["vendor"] == vendor


def test_normal_results_page_not_blocked() -> None:
    html = "<html><body><div id='rso'><h3>Example Domain</h3></div></body></html>"
    result = detect_block(SEARCH_URL, "example - Google Search", html)
    assert not result["blocked"]
    assert result["vendor"] is None
    assert not detect_block(SEARCH_URL, "example", None)["blocked"]
