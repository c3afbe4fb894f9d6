"""
Shared runtime context.

Every piece of shared mutable state (rate governor, proxy health, API
quota, browser processes) lives inside one ServiceContext that is built
once from configuration and passed by reference.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

import msgspec

from stealth_search.config.env import load_proxy_pool_from_json
from stealth_search.config.proxies import ProxySelector
from stealth_search.core.models import ServiceConfig
from stealth_search.core.rate_governor import RateGovernor
from stealth_search.pipelines.api_client import OfficialSearchClient
from stealth_search.pipelines.browser import BrowserEngine, PlaywrightBrowser
from stealth_search.stealth.fingerprints import FingerprintRotator
from stealth_search.utils.logging import get_logger

logger = get_logger(__name__)




@dataclass
class ServiceContext:
    """
    Shared, explicitly constructed service instances.

    Attributes:
        config: Immutable configuration snapshot
        governor: Rate governor shared by the scrape engines
        rotator: Fingerprint rotator
        proxy_selector: Proxy selector (None when proxies are disabled)
        api_client: Official search client (None when not configured)
        browser: Browser automation engine
    """

    config: ServiceConfig
    governor: RateGovernor
    rotator: FingerprintRotator
    proxy_selector: ProxySelector | None
    api_client: OfficialSearchClient | None
    browser: BrowserEngine




    @classmethod
    def create(
        cls,
        config: ServiceConfig,
        *,
        browser: BrowserEngine | None = None,
        rng: random.Random | None = None,
    ) -> ServiceContext:
        """
        Build every service instance from a configuration snapshot.

        Args:
            config: Configuration snapshot
            browser: Browser engine override (defaults to Playwright)
            rng: Shared random source for delays, identities and behavior

        Returns:
            Ready-to-use context; the browser launches lazily
        """
        rng = rng or random.Random()

        proxy_selector = None
        if config.proxy_enabled:
            endpoints = (
                load_proxy_pool_from_json(config.proxy_pool_path)
                if config.proxy_pool_path is not None
                else []
            )
            # the selector stamps usage on its endpoints, keep the snapshot untouched
            override = (
                msgspec.structs.replace(config.proxy_override)
                if config.proxy_override is not None
                else None
            )
            if endpoints or override is not None:
                proxy_selector = ProxySelector(endpoints, override=override)
            else:
                logger.info("No proxies configured, using direct connections")

        api_client = OfficialSearchClient(config.api)
        if not api_client.is_configured:
            logger.info("Official search API not configured, API fallback disabled")

        context = cls(
            config=config,
            governor=RateGovernor(config.rate_limit, rng=rng),
            rotator=FingerprintRotator(rng=rng),
            proxy_selector=proxy_selector,
            api_client=api_client,
            browser=browser or PlaywrightBrowser(config, rng),
        )

        logger.info(
            "Service context ready (env=%s, %d req/min, proxies=%s, api=%s)",
            config.env,
            config.rate_limit.max_requests_per_minute,
            "on" if proxy_selector else "off",
            "on" if api_client.is_configured else "off",
        )
        return context




    async def aclose(self) -> None:
        """Release browser processes and the API HTTP client."""
        await self.browser.close()
        if self.api_client is not None:
            await self.api_client.aclose()
