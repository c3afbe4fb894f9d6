"""
Proxy selection and formatting for Playwright browser contexts.

This module provides:
- Least-recently-used selection over a static endpoint pool
- Failure bookkeeping with time-based quarantine
- An environment override endpoint that always wins
- Playwright proxy formatting
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

from stealth_search.config.constants import (
    PROXY_COOLDOWN_SECONDS,
    PROXY_MAX_FAILURES,
    PoolSelector,
)
from stealth_search.core.models import ProxyEndpoint
from stealth_search.utils.logging import get_logger

logger = get_logger(__name__)

# ==== PROXY SELECTOR ==== #

class ProxySelector:
    """
    Chooses a healthy egress endpoint per request.

    Endpoints are never removed. An endpoint with three or more failures is
    quarantined until thirty minutes have passed since its last failure,
    after which its failure count resets and it is eligible again.

    Attributes:
        endpoints: Static pool in load order
        override: Environment override endpoint, if configured
    """

    def __init__(
        self,
        endpoints: Iterable[ProxyEndpoint] = (),
        *,
        override: ProxyEndpoint | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.endpoints: list[ProxyEndpoint] = list(endpoints)
        self.override = override
        self._clock = clock
        self._lock = threading.Lock()




    # --► HEALTH

    def _is_quarantined(self, endpoint: ProxyEndpoint, now: float) -> bool:
        """
        Check quarantine status and reinstate after cooldown.

        Must be called with the lock held.
        """
        if endpoint.failure_count < PROXY_MAX_FAILURES:
            return False

        last_failure = endpoint.last_failure_at or 0.0
        if now - last_failure < PROXY_COOLDOWN_SECONDS:
            return True

        endpoint.failure_count = 0
        endpoint.last_failure_at = None
        logger.info("Proxy %s reinstated after cooldown", endpoint.address)
        return False




    # --► SELECTION

    def select(self, pool_class: PoolSelector = "any") -> ProxyEndpoint | None:
        """
        Select the least recently used healthy endpoint.

        Args:
            pool_class: residential, datacenter or any

        Returns:
            Selected endpoint, or None when nothing is available

        Note:
            The override endpoint is returned regardless of pool class.
        """
        if self.override is not None:
            with self._lock:
                self.override.last_used_at = self._clock()
            logger.debug("Using environment proxy %s", self.override.address)
            return self.override

        with self._lock:
            now = self._clock()
            candidates = [
                endpoint
                for endpoint in self.endpoints
                if (pool_class == "any" or endpoint.proxy_class == pool_class)
                and not self._is_quarantined(endpoint, now)
            ]

            if not candidates:
                logger.warning(
                    "No healthy %s proxy available, using direct connection",
                    pool_class,
                )
                return None

            # min() keeps the first of equal timestamps, so ties follow load order
            selected = min(candidates, key=lambda endpoint: endpoint.last_used_at)
            selected.last_used_at = now

        logger.info(
            "Selected proxy %s (%s, %s)",
            selected.address,
            selected.region,
            selected.proxy_class,
        )
        return selected




    def report_failure(self, endpoint: ProxyEndpoint | None, reason: str) -> None:
        """
        Record a failure for an endpoint.

        Args:
            endpoint: Endpoint that failed (None is ignored)
            reason: Short failure description for the log
        """
        if endpoint is None:
            return

        with self._lock:
            endpoint.failure_count += 1
            endpoint.last_failure_at = self._clock()
            count = endpoint.failure_count

        logger.warning(
            "Proxy failure %s (%d/%d): %s",
            endpoint.address,
            count,
            PROXY_MAX_FAILURES,
            reason,
        )

        if count == PROXY_MAX_FAILURES:
            logger.warning(
                "Proxy %s quarantined for %d minutes",
                endpoint.address,
                int(PROXY_COOLDOWN_SECONDS // 60),
            )




    # --► INTROSPECTION

    def stats(self) -> dict[str, Any]:
        """Pool health summary for the stats endpoint."""
        with self._lock:
            now = self._clock()
            quarantined = [
                endpoint.address
                for endpoint in self.endpoints
                if self._is_quarantined(endpoint, now)
            ]
            return {
                "total": len(self.endpoints),
                "healthy": len(self.endpoints) - len(quarantined),
                "quarantined": quarantined,
                "environment_override": self.override is not None,
                "residential": sum(
                    1 for e in self.endpoints if e.proxy_class == "residential"
                ),
                "datacenter": sum(
                    1 for e in self.endpoints if e.proxy_class == "datacenter"
                ),
            }




# ==== CLIENT-SPECIFIC PROXY FORMATTERS ==== #

def _server_url(endpoint: ProxyEndpoint) -> str:
    address = endpoint.address
    if "://" in address:
        return address
    return f"http://{address}"




def playwright_proxy(endpoint: ProxyEndpoint) -> dict[str, str]:
    """
    Get proxy configuration dict for Playwright.

    Returns:
        Dictionary with server and, when configured, username and password

    Format:
        {
            "server": "http://host:port",
            "username": "user",
            "password": "pass"
        }
    """
    proxy = {"server": _server_url(endpoint)}

    if endpoint.username:
        proxy["username"] = endpoint.username
        proxy["password"] = endpoint.password or ""

    return proxy
