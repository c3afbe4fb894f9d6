"""
Search result page parsing with ordered selector fallbacks.

This module provides:
- Engine layouts: named selector strategies per field
- Redirect-wrapper unwrapping (/url?q=, /l/?uddg=)
- Self-referential link filtering
- Contiguous 1-based result numbering capped at the requested limit
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin

from yarl import URL

from stealth_search.config.constants import EngineName
from stealth_search.core.errors import SelectorNotFound
from stealth_search.core.models import SearchResult
from stealth_search.utils.logging import get_logger, safe_url
from stealth_search.utils.parsing import FieldStrategy, parse_html

logger = get_logger(__name__)




# ==== ENGINE LAYOUTS ==== #

@dataclass(frozen=True)
class EngineLayout:
    """
    Markup description of one search engine's result page.

    Attributes:
        name: Human-readable engine name
        search_url: Endpoint queried with ?q=
        self_domains: Domains whose links are engine-internal
        container: Result container strategy
        title: Title strategy (inside a container)
        link: Link strategy reading the href attribute
        snippet: Snippet strategy
        display_url: Displayed URL strategy (None uses the link host)
        cookie_buttons: Consent buttons dismissed before parsing
        extra_params: Extra query parameters for the search URL
    """

    name: str
    search_url: str
    self_domains: tuple[str, ...]
    container: FieldStrategy
    title: FieldStrategy
    link: FieldStrategy
    snippet: FieldStrategy
    display_url: FieldStrategy | None = None
    cookie_buttons: tuple[str, ...] = ()
    extra_params: tuple[tuple[str, str], ...] = ()

    def build_search_url(self, query: str, limit: int) -> str:
        params = {"q": query, **dict(self.extra_params)}
        if self.name == "google":
            # Over-fetch: some containers are filtered out as self links
            params["num"] = str(min(100, limit + 5))
        return str(URL(self.search_url).with_query(params))




GOOGLE_LAYOUT = EngineLayout(
    name="google",
    search_url="https://www.google.com/search",
    self_domains=("google.com", "googleusercontent.com", "gstatic.com"),
    container=FieldStrategy(
        "container",
        ("#search .g", "#rso .g", ".g", "[data-sokoban-container]", ".tF2Cxc"),
    ),
    title=FieldStrategy("title", ("h3", ".LC20lb", ".DKV0Md")),
    link=FieldStrategy("link", ("a[href]",), attr="href"),
    snippet=FieldStrategy(
        "snippet",
        ('[data-sn="snippet"]', ".VwiC3b", ".s", ".aCOpRe", ".yXK7lf"),
    ),
    display_url=FieldStrategy("display_url", ("cite", ".tjvcx", ".UdQypb", ".iUh30")),
    cookie_buttons=(
        "#L2AGLb",
        'button:has-text("Accept all")',
        'button:has-text("I agree")',
        'button:has-text("Accept")',
        '[aria-label*="Accept"]',
    ),
    extra_params=(("hl", "en"),),
)


DUCKDUCKGO_LAYOUT = EngineLayout(
    name="duckduckgo",
    search_url="https://html.duckduckgo.com/html/",
    self_domains=("duckduckgo.com",),
    container=FieldStrategy(
        "container",
        (
            '[data-result="result"]',
            '[data-testid="result"]',
            ".result",
            ".web-result",
            '[data-layout="organic"]',
        ),
    ),
    title=FieldStrategy(
        "title",
        ("h2 a", ".result__title a", "h3 a", '[data-testid="result-title-a"]'),
    ),
    link=FieldStrategy(
        "link",
        ("h2 a", ".result__title a", "h3 a", '[data-testid="result-title-a"]'),
        attr="href",
    ),
    snippet=FieldStrategy(
        "snippet",
        (".result__snippet", '[data-result="snippet"]', ".result-snippet", ".result__body"),
    ),
)




# ==== LINK HELPERS ==== #

def unwrap_redirect(link: str) -> str:
    """
    Resolve engine redirect wrappers to the destination URL.

    Example:
        unwrap_redirect("https://www.google.com/url?q=https://example.com/&sa=U")
        -> "https://example.com/"
        unwrap_redirect("https://duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2F")
        -> "https://example.com/"
    """
    try:
        url = URL(link)
    except ValueError:
        return link

    if url.path == "/url":
        target = url.query.get("q") or url.query.get("url")
        if target:
            return target

    if url.path in {"/l/", "/l"}:
        target = url.query.get("uddg")
        if target:
            return target

    return link




def is_self_link(link: str, self_domains: tuple[str, ...]) -> bool:
    try:
        host = (URL(link).host or "").lower()
    except ValueError:
        return True

    return any(host == domain or host.endswith(f".{domain}") for domain in self_domains)




def resolve_link(href: str, base_url: str) -> str | None:
    """Absolute, unwrapped http(s) link for an href, or None."""
    absolute = unwrap_redirect(urljoin(base_url, href))

    try:
        url = URL(absolute)
    except ValueError:
        return None

    if url.scheme not in {"http", "https"} or not url.host:
        return None

    return absolute




# ==== RESULT PARSER ==== #

class ResultParser:
    """
    Structured extraction of organic results from an engine's HTML.

    Example:
        parser = ResultParser(GOOGLE_LAYOUT)
        results = parser.parse(html, "https://www.google.com/search?q=x", 5, "primary")
    """

    def __init__(self, layout: EngineLayout) -> None:
        self.layout = layout


    def _primary_link(self, href: str, base_url: str) -> str | None:
        """
        Resolve a container's first link.

        Containers whose primary link points back into the engine (maps,
        knowledge panels, image strips) are dropped, never salvaged from a
        secondary anchor.
        """
        link = resolve_link(href, base_url) if href else None
        if link is None or is_self_link(link, self.layout.self_domains):
            return None
        return link


    def parse(
        self,
        html: str,
        base_url: str,
        limit: int,
        engine: EngineName,
    ) -> list[SearchResult]:
        """
        Extract up to ``limit`` results in document order.

        Args:
            html: Result page HTML
            base_url: Final page URL used to resolve relative links
            limit: Maximum number of results
            engine: Engine tag stored on each result

        Returns:
            Results numbered 1..n in extraction order

        Raises:
            SelectorNotFound: If no container strategy matched anything
        """
        layout = self.layout
        tree = parse_html(html)

        containers = layout.container.containers(tree)
        if not containers:
            raise SelectorNotFound(
                safe_url(base_url),
                f"no {layout.name} result container matched",
            )

        results: list[SearchResult] = []
        seen_links: set[str] = set()

        for container in containers:
            if len(results) >= limit:
                break

            title = layout.title.extract(container)
            link = self._primary_link(layout.link.extract(container), base_url)

            if not title or not link or link in seen_links:
                continue

            display_url = (
                layout.display_url.extract(container) if layout.display_url else ""
            )
            if not display_url:
                display_url = URL(link).host or ""

            seen_links.add(link)
            results.append(
                SearchResult(
                    title=title,
                    link=link,
                    snippet=layout.snippet.extract(container),
                    display_url=display_url,
                    position=len(results) + 1,
                    source_engine=engine,
                )
            )

        logger.info(
            "Parsed %d %s results from %d containers",
            len(results),
            layout.name,
            len(containers),
        )
        return results
