"""
Platform-aware content extraction and Markdown normalization.

This module implements the extraction pipeline with:
- Platform classification from host and path
- Login-wall detection for authentication-walled platforms
- Main-content or full-page fragment selection
- Image removal or URL absolutization (src, srcset, background-image)
- HTML to Markdown conversion and cleanup
- Advisory payloads for auth walls and empty content
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from markdownify import MarkdownConverter
from yarl import URL

from stealth_search.config.constants import (
    EMPTY_MARKDOWN_MIN_CHARS,
    GENERIC_PLATFORM,
    LOGIN_WALL_MIN_TEXT,
)
from stealth_search.core.models import ExtractedContent, ExtractRequest
from stealth_search.pipelines.browser import BrowserSession
from stealth_search.utils.logging import get_logger, safe_url
from stealth_search.utils.parsing import extract_visible_text, meta_content, parse_html

logger = get_logger(__name__)




# ==== PLATFORM CLASSIFICATION ==== #

@dataclass(frozen=True)
class PlatformRule:
    """
    Host/path rule describing one platform.

    Attributes:
        name: Platform name (also matched against page titles)
        hosts: Registrable domains belonging to the platform
        requires_auth: Whether content is generally behind a login
        public_markers: Path fragments of publicly viewable pages
        profile_markers: Path fragments that are never public
    """

    name: str
    hosts: tuple[str, ...]
    requires_auth: bool
    public_markers: tuple[str, ...] = ()
    profile_markers: tuple[str, ...] = ()

    def matches(self, host: str) -> bool:
        return any(host == h or host.endswith(f".{h}") for h in self.hosts)

    def is_public_path(self, path: str) -> bool:
        if any(marker in path for marker in self.profile_markers):
            return False
        return any(marker in path for marker in self.public_markers)




@dataclass(frozen=True)
class PlatformInfo:
    platform: str
    requires_auth: bool
    public_content_possible: bool

    @property
    def walled(self) -> bool:
        """Confidently auth-walled: no navigation is worth attempting."""
        return self.requires_auth and not self.public_content_possible




DEFAULT_PLATFORM_RULES: tuple[PlatformRule, ...] = (
    PlatformRule(
        name="linkedin",
        hosts=("linkedin.com",),
        requires_auth=True,
        public_markers=("/company/", "/school/", "/showcase/", "/posts/"),
        profile_markers=("/in/",),
    ),
    PlatformRule(
        name="facebook",
        hosts=("facebook.com", "fb.com"),
        requires_auth=True,
        public_markers=("/pages/",),
    ),
    PlatformRule(
        name="twitter",
        hosts=("twitter.com", "x.com"),
        requires_auth=False,
    ),
)


LOGIN_PHRASES: tuple[str, ...] = (
    "sign in",
    "log in",
    "login",
    "authentication required",
    "please sign in",
    "member login",
    "join linkedin",
    "this content is not available",
    "linkedin login",
    "access linkedin",
)




# ==== FRAGMENT SELECTION ==== #

MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    '[role="main"]',
    ".content",
    ".main-content",
    ".post-content",
    ".entry-content",
    "#content",
    "#main",
)

BOILERPLATE_SELECTORS: tuple[str, ...] = (
    "nav",
    "header",
    "footer",
    ".nav",
    ".navbar",
    ".sidebar",
    ".advertisement",
    ".ad",
    ".cookie-banner",
    ".social-share",
    ".comments",
)

NON_CONTENT_TAGS: tuple[str, ...] = ("script", "style", "noscript")

IMAGE_TAGS: tuple[str, ...] = ("img", "picture", "source")

CSS_URL_RE = re.compile(r"""url\(\s*['"]?([^'")]+?)['"]?\s*\)""")
NESTED_IMAGE_LINK_RE = re.compile(r"\[!\[.*?\]\(.*?\)\]\(.*?\)")
EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")




# ==== URL ABSOLUTIZATION ==== #

def absolutize(url: str, base_url: str) -> str:
    """
    Resolve a possibly relative URL against a base URL.

    Data, fragment, mailto and javascript URLs are returned unchanged.
    Applying it twice gives the same result as applying it once.

    Example:
        absolutize("/img/a.png", "https://example.com/post/1")
        -> "https://example.com/img/a.png"
    """
    url = url.strip()
    if not url or url.startswith(("data:", "#", "mailto:", "javascript:")):
        return url
    return urljoin(base_url, url)




def absolutize_srcset(srcset: str, base_url: str) -> str:
    """Absolutize every candidate URL of a srcset, keeping descriptors."""
    entries = []
    for entry in srcset.split(","):
        parts = entry.strip().split()
        if not parts:
            continue
        parts[0] = absolutize(parts[0], base_url)
        entries.append(" ".join(parts))
    return ", ".join(entries)




def absolutize_style(style: str, base_url: str) -> str:
    """Absolutize url(...) references inside an inline style."""
    return CSS_URL_RE.sub(
        lambda match: f"url('{absolutize(match.group(1), base_url)}')",
        style,
    )




# ==== MARKDOWN ==== #

def to_markdown(html: str) -> str:
    """Convert an HTML fragment to Markdown with ATX headings and fenced code."""
    soup = BeautifulSoup(html, "html.parser")
    return MarkdownConverter(heading_style="ATX", bullets="-").convert_soup(soup)




def clean_markdown(markdown: str) -> str:
    """
    Tidy converter output.

    Collapses three or more newlines to two, trims, then strips nested
    image-link artifacts such as [![alt](src)](href).
    """
    markdown = EXCESS_NEWLINES_RE.sub("\n\n", markdown).strip()
    return NESTED_IMAGE_LINK_RE.sub("", markdown).strip()




# ==== CONTENT NORMALIZER ==== #

class ContentNormalizer:
    """
    Turns a navigated document into ExtractedContent.

    Args:
        rules: Platform rules checked in order
    """

    def __init__(self, rules: tuple[PlatformRule, ...] = DEFAULT_PLATFORM_RULES) -> None:
        self.rules = rules




    # --► CLASSIFICATION

    def classify(self, url: str) -> PlatformInfo:
        """
        Classify a URL by platform.

        Example:
            classify("https://www.linkedin.com/in/alice") -> walled
            classify("https://www.linkedin.com/company/acme") -> public possible
        """
        parsed = URL(url)
        host = (parsed.host or "").lower()
        path = parsed.path.lower()

        for rule in self.rules:
            if rule.matches(host):
                return PlatformInfo(
                    platform=rule.name,
                    requires_auth=rule.requires_auth,
                    public_content_possible=(
                        not rule.requires_auth or rule.is_public_path(path)
                    ),
                )

        return PlatformInfo(
            platform=GENERIC_PLATFORM,
            requires_auth=False,
            public_content_possible=True,
        )




    # --► ADVISORIES

    def auth_advisory(
        self,
        request: ExtractRequest,
        info: PlatformInfo,
        title: str = "",
        diagnostics: dict[str, object] | None = None,
    ) -> ExtractedContent:
        name = info.platform.capitalize()
        return ExtractedContent(
            title=title or f"{name} Content Requires Authentication",
            markdown="",
            source_url=request.url,
            extraction_mode="full-page" if request.full_page else "main-content",
            platform=info.platform,
            auth_required=True,
            advisory=(
                f"{name} requires authentication to view {request.url}. "
                "Automated visitors are served a login wall instead of the content."
            ),
            diagnostics=diagnostics,
        )


    def empty_advisory(
        self,
        request: ExtractRequest,
        info: PlatformInfo,
        title: str,
        final_url: str,
        markdown_length: int,
    ) -> ExtractedContent:
        name = info.platform.capitalize()
        return ExtractedContent(
            title=title or f"{name} Content Not Available",
            markdown="",
            source_url=final_url,
            extraction_mode="full-page" if request.full_page else "main-content",
            platform=info.platform,
            is_empty=True,
            advisory=(
                f"No usable content could be extracted from {request.url}. "
                "The platform may require a login or be blocking automated access."
            ),
            diagnostics={
                "markdown_length": markdown_length,
                "title_available": bool(title),
            },
        )




    # --► LOGIN WALL

    def detect_login_wall(
        self,
        info: PlatformInfo,
        title: str,
        html: str,
    ) -> dict[str, object] | None:
        """
        Apply the login-wall heuristic to a navigated auth-walled page.

        Any of these triggers the wall:
        1. A login phrase in the visible text
        2. Visible text shorter than 200 characters
        3. An empty title, or one containing the platform's own name

        Returns:
            Diagnostics when a wall is detected, otherwise None
        """
        if not info.requires_auth:
            return None

        text = extract_visible_text(html)
        text_lower = text.lower()
        title_lower = title.strip().lower()

        has_login_phrase = any(phrase in text_lower for phrase in LOGIN_PHRASES)
        too_short = len(text) < LOGIN_WALL_MIN_TEXT
        platform_title = not title_lower or info.platform in title_lower

        if not (has_login_phrase or too_short or platform_title):
            return None

        tree = parse_html(html)
        heading = tree.css_first("h1")

        return {
            "title": title,
            "content_length": len(text),
            "meta_description": meta_content(tree, "description"),
            "heading": heading.text(strip=True) if heading is not None else "",
            "login_phrase": has_login_phrase,
        }




    # --► FRAGMENT & IMAGES

    def select_fragment(self, html: str, full_page: bool) -> Tag:
        soup = BeautifulSoup(html, "html.parser")

        for node in soup.find_all(list(NON_CONTENT_TAGS)):
            if not node.decomposed:
                node.decompose()

        if full_page:
            return soup.body or soup

        target = None
        for selector in MAIN_CONTENT_SELECTORS:
            target = soup.select_one(selector)
            if target is not None:
                break

        if target is None:
            target = soup.body or soup

        for selector in BOILERPLATE_SELECTORS:
            for node in target.select(selector):
                # nested matches are already gone with their ancestor
                if not node.decomposed:
                    node.decompose()

        return target


    def process_images(self, fragment: Tag, include_images: bool, base_url: str) -> None:
        if not include_images:
            for node in fragment.find_all(list(IMAGE_TAGS)):
                if not node.decomposed:
                    node.decompose()
            return

        for node in fragment.find_all(["img", "source"]):
            if node.get("src"):
                node["src"] = absolutize(node["src"], base_url)
            if node.get("srcset"):
                node["srcset"] = absolutize_srcset(node["srcset"], base_url)

        for node in fragment.select('[style*="background-image"]'):
            node["style"] = absolutize_style(node["style"], base_url)




    # --► NORMALIZATION

    def normalize(
        self,
        request: ExtractRequest,
        info: PlatformInfo,
        html: str,
        title: str,
        final_url: str,
    ) -> ExtractedContent:
        """
        Convert a navigated document into Markdown content.

        Args:
            request: Extraction request
            info: Platform classification
            html: Rendered document HTML
            title: Document title
            final_url: URL after redirects (base for relative URLs)

        Returns:
            ExtractedContent, or an is_empty advisory for near-empty output
            on a classified platform
        """
        fragment = self.select_fragment(html, request.full_page)
        self.process_images(fragment, request.include_images, final_url)

        markdown = clean_markdown(to_markdown(fragment.decode_contents()))

        if len(markdown) < EMPTY_MARKDOWN_MIN_CHARS and info.platform != GENERIC_PLATFORM:
            logger.warning(
                "Empty content from %s (%d chars)",
                safe_url(final_url),
                len(markdown),
            )
            return self.empty_advisory(request, info, title, final_url, len(markdown))

        return ExtractedContent(
            title=title,
            markdown=markdown,
            source_url=final_url,
            extraction_mode="full-page" if request.full_page else "main-content",
            platform=info.platform,
        )




    async def extract(
        self,
        request: ExtractRequest,
        info: PlatformInfo,
        session: BrowserSession,
        timeout: float | None = None,
    ) -> ExtractedContent:
        """
        Navigate and extract content within one browser session.

        Raises:
            NavigationError: If navigation fails
            ProxyFailure: If the session proxy fails
        """
        page = await session.navigate(request.url, timeout)
        title = await page.title()
        html = await page.html()

        wall = self.detect_login_wall(info, title, html)
        if wall is not None:
            logger.info(
                "Login wall on %s (%s)",
                safe_url(page.final_url),
                info.platform,
            )
            return self.auth_advisory(request, info, title, wall)

        return self.normalize(request, info, html, title, page.final_url)
