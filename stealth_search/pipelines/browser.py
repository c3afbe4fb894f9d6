"""
Browser automation engine built on Playwright.

This module provides:
- Protocols for the browser engine, per-request sessions and page handles
- A Playwright implementation sharing one browser process per family
- One browser context per session (identity, proxy, init scripts)
- Resource blocking for fonts and media
- Proxy failure classification on navigation errors
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Request,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from stealth_search.config.proxies import playwright_proxy
from stealth_search.core.errors import NavigationError, ProxyFailure
from stealth_search.core.models import Identity, ProxyEndpoint, ServiceConfig
from stealth_search.stealth.behavior import human_type, simulate_reading
from stealth_search.stealth.core import apply_core_stealth
from stealth_search.stealth.fingerprints import build_context_options
from stealth_search.utils.logging import get_logger, safe_url

logger = get_logger(__name__)




# ==== COLLABORATOR PROTOCOLS ==== #

class PageHandle(Protocol):
    """Loaded page exposed to engines and the content normalizer."""

    @property
    def final_url(self) -> str: ...

    async def title(self) -> str: ...

    async def html(self) -> str: ...

    async def text(self) -> str: ...

    async def query(self, selector: str) -> list[str]: ...

    async def wait_for_any(
        self,
        selectors: Sequence[str],
        timeout: float,
    ) -> str | None: ...

    async def click_first(self, selectors: Sequence[str], timeout: float) -> bool: ...

    async def type_into(self, selector: str, text: str) -> None: ...

    async def wait_for_url(
        self,
        predicate: Callable[[str], bool],
        timeout: float,
    ) -> bool: ...

    async def humanize(self) -> None: ...

    async def screenshot(self, path: Path) -> None: ...




class BrowserSession(Protocol):
    """One isolated browsing session (cookies, identity, proxy)."""

    async def navigate(self, url: str, timeout: float | None = None) -> PageHandle: ...




class BrowserEngine(Protocol):
    """Shared browser process handing out per-request sessions."""

    def session(
        self,
        identity: Identity,
        proxy: ProxyEndpoint | None,
    ) -> AbstractAsyncContextManager[BrowserSession]: ...

    async def close(self) -> None: ...




# ==== ERROR CLASSIFICATION ==== #

PROXY_ERROR_MARKERS: tuple[str, ...] = (
    "err_proxy",
    "err_tunnel",
    "ns_error_proxy",
    "proxy connection",
    "407",
)


def is_proxy_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in PROXY_ERROR_MARKERS)




# ==== PLAYWRIGHT PAGE ==== #

class PlaywrightPage:
    """PageHandle over a Playwright page."""

    def __init__(self, page: Page, config: ServiceConfig, rng: random.Random) -> None:
        self._page = page
        self._config = config
        self._rng = rng


    @property
    def final_url(self) -> str:
        return self._page.url


    async def title(self) -> str:
        return await self._page.title()


    async def html(self) -> str:
        return await self._page.content()


    async def text(self) -> str:
        try:
            return await self._page.inner_text("body")
        except PlaywrightError:
            return ""


    async def query(self, selector: str) -> list[str]:
        texts = []
        for element in await self._page.query_selector_all(selector):
            text = (await element.inner_text()).strip()
            if text:
                texts.append(text)
        return texts


    async def wait_for_any(
        self,
        selectors: Sequence[str],
        timeout: float,
    ) -> str | None:
        """
        Wait until any selector is attached.

        Returns:
            The first selector (in list order) present on the page, or None
            when nothing appeared within the timeout
        """
        try:
            await self._page.wait_for_selector(
                ", ".join(selectors),
                timeout=timeout * 1000,
                state="attached",
            )
        except PlaywrightTimeoutError:
            return None

        for selector in selectors:
            if await self._page.query_selector(selector) is not None:
                return selector
        return None


    async def click_first(self, selectors: Sequence[str], timeout: float) -> bool:
        for selector in selectors:
            try:
                await self._page.locator(selector).first.click(timeout=timeout * 1000)
            except PlaywrightError:
                continue
            logger.debug("Clicked %s", selector)
            return True
        return False


    async def type_into(self, selector: str, text: str) -> None:
        await human_type(self._page, selector, text, self._config.stealth, self._rng)


    async def wait_for_url(
        self,
        predicate: Callable[[str], bool],
        timeout: float,
    ) -> bool:
        try:
            await self._page.wait_for_url(predicate, timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            return False
        return True


    async def humanize(self) -> None:
        await simulate_reading(self._page, self._config.stealth, self._rng)


    async def screenshot(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        await self._page.screenshot(path=str(path), full_page=True)




# ==== PLAYWRIGHT SESSION ==== #

class PlaywrightSession:
    """BrowserSession over one Playwright browser context."""

    def __init__(
        self,
        context: BrowserContext,
        config: ServiceConfig,
        proxy: ProxyEndpoint | None,
        rng: random.Random,
    ) -> None:
        self._context = context
        self._config = config
        self._proxy = proxy
        self._rng = rng
        self._page: Page | None = None


    async def navigate(self, url: str, timeout: float | None = None) -> PageHandle:
        """
        Navigate the session page to a URL.

        Args:
            url: Target URL
            timeout: Navigation timeout in seconds (defaults to config)

        Returns:
            Handle to the loaded page

        Raises:
            ProxyFailure: If the proxy refused or broke the connection
            NavigationError: On any other navigation failure or timeout
        """
        timeout = timeout or self._config.timeouts.navigation

        if self._page is None:
            self._page = await self._context.new_page()

        try:
            await self._page.goto(
                url,
                timeout=timeout * 1000,
                wait_until="domcontentloaded",
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationError(safe_url(url), f"timeout after {timeout}s") from exc
        except PlaywrightError as exc:
            message = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
            if self._proxy is not None and is_proxy_error(message):
                raise ProxyFailure(safe_url(url), message) from exc
            raise NavigationError(safe_url(url), message) from exc

        return PlaywrightPage(self._page, self._config, self._rng)




# ==== PLAYWRIGHT ENGINE ==== #

class PlaywrightBrowser:
    """
    Shared Playwright browser processes, launched lazily per family.

    Each session gets its own browser context, so cookies, identity and
    proxy never leak between concurrent requests.
    """

    def __init__(self, config: ServiceConfig, rng: random.Random | None = None) -> None:
        self._config = config
        self._rng = rng or random.Random()
        self._playwright: Playwright | None = None
        self._browsers: dict[str, Browser] = {}
        self._launch_lock = asyncio.Lock()




    async def _browser(self, family: str) -> Browser:
        async with self._launch_lock:
            if family in self._browsers:
                return self._browsers[family]

            if self._playwright is None:
                self._playwright = await async_playwright().start()

            launch_args = []
            if family == "chromium" and self._config.stealth.enabled:
                launch_args.append("--disable-blink-features=AutomationControlled")

            browser_type = (
                self._playwright.firefox
                if family == "firefox"
                else self._playwright.chromium
            )
            logger.info("Launching %s (headless=%s)", family, self._config.headless)
            browser = await browser_type.launch(
                headless=self._config.headless,
                args=launch_args,
                timeout=self._config.timeouts.browser_launch * 1000,
            )
            self._browsers[family] = browser
            return browser




    async def _block_resources(self, route: Route, request: Request) -> None:
        if request.resource_type in {"font", "media"}:
            await route.abort()
            return
        await route.continue_()




    @asynccontextmanager
    async def session(
        self,
        identity: Identity,
        proxy: ProxyEndpoint | None,
    ) -> AsyncIterator[BrowserSession]:
        """
        Open a browser context for one request.

        Args:
            identity: Identity used for every step of the session
            proxy: Egress endpoint, or None for a direct connection

        Yields:
            BrowserSession bound to a fresh context

        Note:
            The context is closed when the block exits, even on errors.
        """
        browser = await self._browser(identity.browser_family)

        options = build_context_options(identity)
        if proxy is not None:
            options["proxy"] = playwright_proxy(proxy)

        context = await browser.new_context(**options)
        try:
            await apply_core_stealth(context, identity, self._config.stealth)
            if self._config.stealth.block_resources:
                await context.route("**/*", self._block_resources)

            yield PlaywrightSession(context, self._config, proxy, self._rng)
        finally:
            await context.close()




    async def close(self) -> None:
        for browser in self._browsers.values():
            await browser.close()
        self._browsers.clear()

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
