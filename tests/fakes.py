"""
In-memory browser engine and fixtures for orchestrator and service tests.

FakeBrowser serves canned pages keyed by host, records every navigation
with the proxy it used, and can raise configured errors instead.
"""

from __future__ import annotations

import random
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import quote

from selectolax.parser import HTMLParser
from yarl import URL

from stealth_search.config.proxies import ProxySelector
from stealth_search.core.context import ServiceContext
from stealth_search.core.models import (
    Identity,
    ProxyEndpoint,
    RateLimitConfig,
    ServiceConfig,
)
from stealth_search.core.rate_governor import RateGovernor
from stealth_search.pipelines.api_client import OfficialSearchClient
from stealth_search.stealth.config import StealthConfig
from stealth_search.stealth.fingerprints import FingerprintRotator


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(seconds: float) -> None:
    return None




class FakePage:
    """PageHandle over static HTML."""

    def __init__(
        self,
        html: str,
        *,
        url: str = "https://example.com/",
        title: str = "",
        logged_in: bool = True,
    ) -> None:
        self._html = html
        self._url = url
        self._title = title
        self.logged_in = logged_in
        self.typed: dict[str, str] = {}
        self.clicked: list[str] = []
        self.screenshots: list[Path] = []

    @property
    def final_url(self) -> str:
        return self._url

    async def title(self) -> str:
        return self._title

    async def html(self) -> str:
        return self._html

    async def text(self) -> str:
        body = HTMLParser(self._html).body
        return body.text(separator=" ", strip=True) if body is not None else ""

    async def query(self, selector: str) -> list[str]:
        return [n.text(strip=True) for n in HTMLParser(self._html).css(selector)]

    async def wait_for_any(self, selectors: Sequence[str], timeout: float) -> str | None:
        tree = HTMLParser(self._html)
        for selector in selectors:
            if tree.css_first(selector) is not None:
                return selector
        return None

    async def click_first(self, selectors: Sequence[str], timeout: float) -> bool:
        tree = HTMLParser(self._html)
        for selector in selectors:
            if selector.startswith(("#", "[", "button[")) and tree.css_first(selector):
                self.clicked.append(selector)
                return True
        return False

    async def type_into(self, selector: str, text: str) -> None:
        self.typed[selector] = text

    async def wait_for_url(self, predicate: Callable[[str], bool], timeout: float) -> bool:
        return self.logged_in

    async def humanize(self) -> None:
        return None

    async def screenshot(self, path: Path) -> None:
        self.screenshots.append(path)


PageSource = FakePage | Exception | Callable[[str, ProxyEndpoint | None], FakePage]


class FakeSession:
    def __init__(self, browser: FakeBrowser, proxy: ProxyEndpoint | None) -> None:
        self._browser = browser
        self._proxy = proxy

    async def navigate(self, url: str, timeout: float | None = None) -> FakePage:
        return self._browser.serve(url, self._proxy)


class FakeBrowser:
    """
    BrowserEngine serving pages by host.

    Attributes:
        navigations: (url, proxy) for every navigate call, in order
        identities: Identity used by every opened session
    """

    def __init__(self, routes: dict[str, PageSource | list[PageSource]] | None = None) -> None:
        self.routes = dict(routes or {})
        self.navigations: list[tuple[str, ProxyEndpoint | None]] = []
        self.identities: list[Identity] = []
        self.closed = False

    def serve(self, url: str, proxy: ProxyEndpoint | None) -> FakePage:
        self.navigations.append((url, proxy))
        host = URL(url).host or ""

        source = self.routes.get(host)
        if isinstance(source, list):
            source = source.pop(0) if len(source) > 1 else source[0]

        if source is None:
            raise AssertionError(f"unexpected navigation to {url}")
        if isinstance(source, Exception):
            raise source
        if not isinstance(source, FakePage):
            return source(url, proxy)
        return source

    @asynccontextmanager
    async def session(
        self,
        identity: Identity,
        proxy: ProxyEndpoint | None,
    ) -> AsyncIterator[FakeSession]:
        self.identities.append(identity)
        yield FakeSession(self, proxy)

    async def close(self) -> None:
        self.closed = True

    def hosts(self) -> list[str]:
        return [URL(url).host or "" for url, _ in self.navigations]




# ==== CONTEXT ==== #

def fake_config(**overrides: object) -> ServiceConfig:
    values: dict[str, object] = {
        "rate_limit": RateLimitConfig(
            max_requests_per_minute=30,
            min_delay_seconds=0.5,
            jitter_ratio=0.0,
            micro_pauses=False,
            human_patterns=False,
        ),
        "stealth": StealthConfig(simulate_human_behavior=False),
        "proxy_enabled": False,
    }
    values.update(overrides)
    return ServiceConfig(**values)  # type: ignore[arg-type]




def make_context(
    browser: FakeBrowser,
    *,
    config: ServiceConfig | None = None,
    api_client: OfficialSearchClient | None = None,
    proxy_selector: ProxySelector | None = None,
    clock: FakeClock | None = None,
) -> ServiceContext:
    config = config or fake_config()
    clock = clock or FakeClock()
    return ServiceContext(
        config=config,
        governor=RateGovernor(config.rate_limit, clock=clock, rng=random.Random(0)),
        rotator=FingerprintRotator(rng=random.Random(0)),
        proxy_selector=proxy_selector,
        api_client=api_client,
        browser=browser,
    )




# ==== RESULT PAGES ==== #

GOOGLE_SEARCH_URL = "https://www.google.com/search?q=example+query"
DUCKDUCKGO_SEARCH_URL = "https://html.duckduckgo.com/html/?q=example+query"


def google_results_html(hits: Sequence[tuple[str, str, str]]) -> str:
    """Google-like result page; hits are (title, href, snippet)."""
    blocks = "".join(
        f'<div class="g"><div><a href="{href}"><h3>{title}</h3></a>'
        f"<cite>{URL(href).host or ''}</cite></div>"
        f'<div class="VwiC3b">{snippet}</div></div>'
        for title, href, snippet in hits
    )
    return (
        "<html><head><title>example query - Google Search</title></head>"
        f'<body><div id="search"><div id="rso">{blocks}</div></div></body></html>'
    )


def duckduckgo_results_html(hits: Sequence[tuple[str, str, str]]) -> str:
    """DuckDuckGo html-endpoint result page with /l/?uddg= redirect links."""
    blocks = "".join(
        '<div class="result results_links web-result"><div class="links_main">'
        f'<h2 class="result__title"><a class="result__a" '
        f'href="//duckduckgo.com/l/?uddg={quote(link, safe="")}&amp;rut=abc">{title}</a></h2>'
        f'<a class="result__snippet" href="#">{snippet}</a></div></div>'
        for title, link, snippet in hits
    )
    return f'<html><body><div id="links" class="results">{blocks}</div></body></html>'


def example_hits(count: int) -> list[tuple[str, str, str]]:
    return [
        (f"Example result {i}", f"https://example{i}.org/page", f"Snippet number {i}")
        for i in range(1, count + 1)
    ]


GOOGLE_BLOCK_PAGE = FakePage(
    "<html><body><p>Our systems have detected unusual traffic from your "
    "computer network.</p></body></html>",
    url="https://www.google.com/sorry/index?continue=https://www.google.com/search",
    title="https://www.google.com/search",
)

DUCKDUCKGO_BLOCK_PAGE = FakePage(
    '<html><body><div class="g-recaptcha"></div></body></html>',
    url="https://html.duckduckgo.com/html/",
    title="DuckDuckGo",
)
