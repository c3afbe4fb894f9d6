"""
Bot-block detection for search and content pages.

This module provides:
- Block-path detection on the final page URL path
- Interstitial page title detection
- Block-phrase detection in visible text
- Vendor CAPTCHA widget detection (reCAPTCHA, hCaptcha, Turnstile)
- Cloudflare challenge page detection
"""

from __future__ import annotations

from typing import Literal, TypedDict

from yarl import URL

# ==== TYPE DEFINITIONS ==== #

BlockVendor = Literal[
    "search_challenge",
    "recaptcha",
    "hcaptcha",
    "turnstile",
    "cloudflare_block",
    "generic_block",
]
"""
Block source identifiers.

- search_challenge: Search engine's own interstitial (e.g. /sorry/ page)
- recaptcha: Google reCAPTCHA
- hcaptcha: hCaptcha service
- turnstile: Cloudflare Turnstile
- cloudflare_block: Cloudflare browser check
- generic_block: Generic bot verification text
"""




class BlockDetection(TypedDict):
    """
    Block detection result.

    Attributes:
        blocked: Whether the page is a bot-block page
        vendor: Identified block source (if any)
        reason: Human-readable detection reason
    """

    blocked: bool
    vendor: BlockVendor | None
    reason: str




BLOCK_PATH_SEGMENTS: tuple[str, ...] = ("sorry", "captcha")

BLOCK_TITLES: frozenset[str] = frozenset(
    {
        "captcha",
        "captcha check",
        "are you a robot?",
        "just a moment...",
        "attention required! | cloudflare",
    }
)

BLOCK_PHRASES: tuple[str, ...] = (
    "our systems have detected unusual traffic",
    "unusual traffic from your computer network",
    "please verify you are a human",
    "checking your browser before accessing",
    "automation tools to browse the website",
)




# ==== DETECTION LOGIC ==== #

def detect_block(
    url: str,
    title: str,
    content: str | None,
) -> BlockDetection:
    """
    Detect a bot-block page from its final URL, title and content.

    Checks, in order:
    1. Known block segments in the URL path (never the query string)
    2. Known interstitial page titles
    3. Vendor widget/script signatures in the HTML
    4. Block phrases in the content

    Args:
        url: Final page URL after redirects
        title: Page title
        content: HTML or visible text (only the first 200KB is analyzed)

    Returns:
        BlockDetection with blocked flag, vendor and reason
    """
    # --► URL PATH SEGMENTS
    segments = [part.lower() for part in URL(url).parts if part != "/"]
    for segment in BLOCK_PATH_SEGMENTS:
        if segment in segments:
            return {
                "blocked": True,
                "vendor": "search_challenge",
                "reason": f"block path '/{segment}/' in URL",
            }

    if title.strip().lower() in BLOCK_TITLES:
        return {
            "blocked": True,
            "vendor": "search_challenge",
            "reason": "interstitial page title",
        }

    if not content:
        return {"blocked": False, "vendor": None, "reason": ""}

    body_lc = content[:200_000].lower()

    # --► VENDOR WIDGET/SCRIPT DETECTION
    if "g-recaptcha" in body_lc or "recaptcha/api.js" in body_lc:
        return {"blocked": True, "vendor": "recaptcha", "reason": "recaptcha widget/script"}

    if "h-captcha" in body_lc or "hcaptcha.com/1/api.js" in body_lc:
        return {"blocked": True, "vendor": "hcaptcha", "reason": "hcaptcha widget/script"}

    if "cf-turnstile" in body_lc or "challenges.cloudflare.com/turnstile" in body_lc:
        return {"blocked": True, "vendor": "turnstile", "reason": "turnstile widget"}

    # --► BLOCK PHRASES
    for phrase in BLOCK_PHRASES:
        if phrase in body_lc:
            vendor: BlockVendor = (
                "cloudflare_block" if "checking your browser" in phrase else "generic_block"
            )
            return {"blocked": True, "vendor": vendor, "reason": f"block phrase '{phrase}'"}

    return {"blocked": False, "vendor": None, "reason": ""}