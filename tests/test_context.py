"""Tests for building the shared service context."""

import json
import random

import pytest

from fakes import FakeBrowser, fake_config
from stealth_search.core.context import ServiceContext
from stealth_search.core.models import ApiConfig, ProxyEndpoint

OVERRIDE = ProxyEndpoint(
    address="gate.example.net:7000",
    region="env",
    proxy_class="environment",
)


@pytest.fixture(autouse=True)
def stray_proxy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """The context reads proxies from its config only, never the environment."""
    monkeypatch.setenv("PROXY_URL", "stray.example.net:1")


def test_direct_connections_without_proxies() -> None:
    context = ServiceContext.create(fake_config(proxy_enabled=True), browser=FakeBrowser())

    assert context.proxy_selector is None
    assert context.api_client is not None
    assert not context.api_client.is_configured


def test_pool_and_override_build_selector(tmp_path) -> None:
    path = tmp_path / "proxies.json"
    path.write_text(json.dumps({"datacenter": [{"address": "dc1.example.net:3128"}]}))
    config = fake_config(proxy_enabled=True, proxy_pool_path=path, proxy_override=OVERRIDE)

    context = ServiceContext.create(config, browser=FakeBrowser(), rng=random.Random(1))

    assert context.proxy_selector is not None
    stats = context.proxy_selector.stats()
    assert stats["total"] == 1
    assert stats["environment_override"] is True

    selected = context.proxy_selector.select()
    assert selected.address == "gate.example.net:7000"
    assert selected is not config.proxy_override
    assert config.proxy_override.last_used_at == 0.0


def test_proxies_disabled_ignore_override() -> None:
    config = fake_config(proxy_enabled=False, proxy_override=OVERRIDE)

    context = ServiceContext.create(config, browser=FakeBrowser())

    assert context.proxy_selector is None


@pytest.mark.asyncio
async def test_aclose_releases_browser() -> None:
    browser = FakeBrowser()
    context = ServiceContext.create(
        fake_config(api=ApiConfig(api_key="key", search_engine_id="cx")),
        browser=browser,
    )

    assert context.api_client.is_configured
    await context.aclose()

    assert browser.closed
