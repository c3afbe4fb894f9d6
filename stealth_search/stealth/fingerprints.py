"""
Browser identity templates and rotation.

Every identity is drawn from a static pool of real desktop fingerprints so
that User-Agent, platform, screen metrics and client hints always agree.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from stealth_search.core.models import Identity, ScreenProfile, Viewport
from stealth_search.utils.logging import get_logger

logger = get_logger(__name__)


VIEWPORT_JITTER_PX = 50

ACCEPT_HEADER = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,"
    "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
)

CHROMIUM_CLIENT_HINT = (
    '"Chromium";v="122", "Not(A:Brand";v="24", "Google Chrome";v="122"'
)

COMMON_REFERERS = (
    "https://www.google.com/",
    "https://duckduckgo.com/",
    "https://www.bing.com/",
    "",
)


@dataclass(frozen=True)
class IdentityTemplate:
    name: str
    browser_family: str
    user_agent: str
    viewport_width: int
    viewport_height: int
    platform: str
    accept_language: str
    screen_width: int
    screen_height: int
    color_depth: int = 24


IDENTITY_TEMPLATES: tuple[IdentityTemplate, ...] = (
    IdentityTemplate(
        name="chrome_windows",
        browser_family="chromium",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
        ),
        viewport_width=1920,
        viewport_height=1080,
        platform="Win32",
        accept_language="en-US,en;q=0.9",
        screen_width=1920,
        screen_height=1080,
    ),
    IdentityTemplate(
        name="chrome_macos",
        browser_family="chromium",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
        ),
        viewport_width=1440,
        viewport_height=900,
        platform="MacIntel",
        accept_language="en-US,en;q=0.9",
        screen_width=1440,
        screen_height=900,
    ),
    IdentityTemplate(
        name="chrome_linux",
        browser_family="chromium",
        user_agent=(
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
        ),
        viewport_width=1366,
        viewport_height=768,
        platform="Linux x86_64",
        accept_language="en-US,en;q=0.9",
        screen_width=1366,
        screen_height=768,
    ),
    IdentityTemplate(
        name="firefox_windows",
        browser_family="firefox",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) "
            "Gecko/20100101 Firefox/123.0"
        ),
        viewport_width=1280,
        viewport_height=720,
        platform="Win32",
        accept_language="en-US,en;q=0.5",
        screen_width=1280,
        screen_height=720,
    ),
    IdentityTemplate(
        name="firefox_macos",
        browser_family="firefox",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:123.0) "
            "Gecko/20100101 Firefox/123.0"
        ),
        viewport_width=1680,
        viewport_height=1050,
        platform="MacIntel",
        accept_language="en-US,en;q=0.5",
        screen_width=1680,
        screen_height=1050,
    ),
)




def client_hint_platform(platform: str) -> str:
    if "Win" in platform:
        return '"Windows"'
    if "Mac" in platform:
        return '"macOS"'
    return '"Linux"'




def build_headers(
    template: IdentityTemplate,
    rng: random.Random,
) -> dict[str, str]:
    """
    Derive request headers consistent with a template.

    Chromium client hints are added with probability 0.5 and never for
    Firefox templates, which do not send them.
    """
    headers = {
        "Accept": ACCEPT_HEADER,
        "Accept-Language": template.accept_language,
        "Accept-Encoding": "gzip, deflate, br",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "max-age=0",
    }

    referer = rng.choice(COMMON_REFERERS)
    if referer:
        headers["Referer"] = referer

    if template.browser_family == "chromium" and rng.random() < 0.5:
        headers["Sec-CH-UA"] = CHROMIUM_CLIENT_HINT
        headers["Sec-CH-UA-Mobile"] = "?0"
        headers["Sec-CH-UA-Platform"] = client_hint_platform(template.platform)

    return headers




class FingerprintRotator:
    """
    Produces one self-consistent Identity per browsing session.

    Args:
        templates: Template pool to draw from
        rng: Random source (inject a seeded one for deterministic tests)
    """

    def __init__(
        self,
        templates: tuple[IdentityTemplate, ...] = IDENTITY_TEMPLATES,
        rng: random.Random | None = None,
    ) -> None:
        if not templates:
            raise ValueError("At least one identity template is required")
        self.templates = templates
        self._rng = rng or random.Random()


    def next(self) -> Identity:
        template = self._rng.choice(self.templates)

        # a window never outgrows the screen it reports
        viewport = Viewport(
            width=min(
                template.screen_width,
                template.viewport_width
                + self._rng.randint(-VIEWPORT_JITTER_PX, VIEWPORT_JITTER_PX),
            ),
            height=min(
                template.screen_height,
                template.viewport_height
                + self._rng.randint(-VIEWPORT_JITTER_PX, VIEWPORT_JITTER_PX),
            ),
        )

        identity = Identity(
            name=template.name,
            browser_family=template.browser_family,
            user_agent=template.user_agent,
            viewport=viewport,
            platform=template.platform,
            accept_language=template.accept_language,
            screen_profile=ScreenProfile(
                width=template.screen_width,
                height=template.screen_height,
                color_depth=template.color_depth,
            ),
            headers=build_headers(template, self._rng),
        )

        logger.debug(
            "Identity %s viewport %dx%d",
            identity.name,
            viewport.width,
            viewport.height,
        )
        return identity




def build_context_options(identity: Identity) -> dict[str, Any]:
    """
    Build kwargs for browser.new_context from an identity.

    Returns:
        Options dict for Playwright's new_context
    """
    return {
        "user_agent": identity.user_agent,
        "viewport": {
            "width": identity.viewport.width,
            "height": identity.viewport.height,
        },
        "screen": {
            "width": identity.screen_profile.width,
            "height": identity.screen_profile.height,
        },
        "locale": identity.locale,
        "timezone_id": identity.timezone_id,
        "extra_http_headers": dict(identity.headers),
        "device_scale_factor": 1,
        "permissions": [],
    }
