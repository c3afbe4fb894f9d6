"""Tests for proxy selection, quarantine and formatting."""

import json
from concurrent.futures import ThreadPoolExecutor

from fakes import FakeClock
from stealth_search.config.env import load_proxy_pool_from_json
from stealth_search.config.proxies import ProxySelector, playwright_proxy
from stealth_search.core.models import ProxyEndpoint


def make_pool() -> list[ProxyEndpoint]:
    return [
        ProxyEndpoint(address="res1.example.net:8080", proxy_class="residential"),
        ProxyEndpoint(address="res2.example.net:8080", proxy_class="residential"),
        ProxyEndpoint(address="dc1.example.net:3128", proxy_class="datacenter"),
    ]


def test_least_recently_used_rotation() -> None:
    clock = FakeClock()
    selector = ProxySelector(make_pool(), clock=clock)

    picked = []
    for _ in range(4):
        picked.append(selector.select().address)
        clock.advance(1)

    assert picked == [
        "res1.example.net:8080",
        "res2.example.net:8080",
        "dc1.example.net:3128",
        "res1.example.net:8080",
    ]


def test_pool_class_filter() -> None:
    selector = ProxySelector(make_pool(), clock=FakeClock())
    assert selector.select("datacenter").address == "dc1.example.net:3128"


def test_quarantine_after_three_failures() -> None:
    """A quarantined endpoint returns only after 30 minutes past its last failure."""
    clock = FakeClock()
    endpoint = ProxyEndpoint(address="only.example.net:8080")
    selector = ProxySelector([endpoint], clock=clock)

    for _ in range(3):
        selector.report_failure(endpoint, "ERR_PROXY_CONNECTION_FAILED")
        clock.advance(60)

    assert selector.select() is None
    assert selector.stats()["quarantined"] == ["only.example.net:8080"]

    # 29 minutes after the last failure
    clock.advance(28 * 60)
    assert selector.select() is None

    clock.advance(60)
    assert selector.select() is endpoint
    assert endpoint.failure_count == 0


def test_concurrent_failure_reports_are_exact() -> None:
    pool = make_pool()
    selector = ProxySelector(pool, clock=FakeClock())
    reports = [endpoint for endpoint in pool for _ in range(50)]

    with ThreadPoolExecutor(max_workers=12) as executor:
        list(executor.map(lambda e: selector.report_failure(e, "ERR_TIMED_OUT"), reports))

    assert [endpoint.failure_count for endpoint in pool] == [50, 50, 50]
    assert selector.stats()["healthy"] == 0
    assert selector.select() is None


def test_concurrent_selection_skips_quarantined() -> None:
    pool = make_pool()
    selector = ProxySelector(pool, clock=FakeClock())
    for _ in range(3):
        selector.report_failure(pool[0], "ERR_PROXY_CONNECTION_FAILED")

    with ThreadPoolExecutor(max_workers=12) as executor:
        picked = list(executor.map(lambda _: selector.select(), range(200)))

    assert all(endpoint is not None for endpoint in picked)
    assert {endpoint.address for endpoint in picked} == {
        "res2.example.net:8080",
        "dc1.example.net:3128",
    }


def test_two_failures_do_not_quarantine() -> None:
    endpoint = ProxyEndpoint(address="flaky.example.net:8080")
    selector = ProxySelector([endpoint], clock=FakeClock())

    selector.report_failure(endpoint, "timeout")
    selector.report_failure(endpoint, "timeout")

    assert selector.select() is endpoint


def test_override_wins_even_when_pool_class_mismatches() -> None:
    override = ProxyEndpoint(address="env.example.net:9000", proxy_class="environment")
    selector = ProxySelector(make_pool(), override=override, clock=FakeClock())

    assert selector.select("datacenter") is override
    assert selector.stats()["environment_override"] is True


def test_empty_pool_returns_none() -> None:
    assert ProxySelector([], clock=FakeClock()).select() is None


def test_report_failure_ignores_none() -> None:
    ProxySelector(make_pool()).report_failure(None, "no proxy")


def test_stats_counts_classes() -> None:
    stats = ProxySelector(make_pool(), clock=FakeClock()).stats()
    assert stats["total"] == 3
    assert stats["healthy"] == 3
    assert stats["residential"] == 2
    assert stats["datacenter"] == 1


def test_playwright_proxy_format() -> None:
    endpoint = ProxyEndpoint(
        address="res1.example.net:8080",
        username="user",
        password="secret",
    )

    assert playwright_proxy(endpoint) == {
        "server": "http://res1.example.net:8080",
        "username": "user",
        "password": "secret",
    }
    assert playwright_proxy(ProxyEndpoint(address="socks5://p.example.net:1080")) == {
        "server": "socks5://p.example.net:1080",
    }


def test_load_proxy_pool_from_json(tmp_path) -> None:
    path = tmp_path / "proxies.json"
    path.write_text(
        json.dumps(
            {
                "residential": [
                    {
                        "address": "res1.example.net:8080",
                        "username": "u",
                        "password": "p",
                        "region": "US",
                    }
                ],
                "datacenter": [{"address": "dc1.example.net:3128"}],
            }
        )
    )

    endpoints = load_proxy_pool_from_json(path)

    assert [e.address for e in endpoints] == ["res1.example.net:8080", "dc1.example.net:3128"]
    assert endpoints[0].region == "US"
    assert endpoints[0].proxy_class == "residential"
    assert endpoints[1].proxy_class == "datacenter"
    assert endpoints[1].region == "unknown"
