"""Tests for search result parsing."""

import pytest

from fakes import (
    DUCKDUCKGO_SEARCH_URL,
    GOOGLE_SEARCH_URL,
    duckduckgo_results_html,
    example_hits,
    google_results_html,
)
from stealth_search.core.errors import SelectorNotFound
from stealth_search.pipelines.result_parser import (
    DUCKDUCKGO_LAYOUT,
    GOOGLE_LAYOUT,
    ResultParser,
    is_self_link,
    resolve_link,
    unwrap_redirect,
)


def google_hits_with_self_links() -> list[tuple[str, str, str]]:
    hits = [
        (title, f"/url?q={link}&sa=U&ved=abc", snippet)
        for title, link, snippet in example_hits(6)
    ]
    hits.insert(2, ("Images for example query", "https://www.google.com/search?tbm=isch", ""))
    return hits


def test_limit_positions_and_self_link_filtering() -> None:
    """Seven raw hits with a limit of five give positions 1..5 and no engine links."""
    html = google_results_html(google_hits_with_self_links())

    results = ResultParser(GOOGLE_LAYOUT).parse(html, GOOGLE_SEARCH_URL, 5, "primary")

    assert len(results) == 5
    assert [r.position for r in results] == [1, 2, 3, 4, 5]
    assert all("google.com" not in r.link for r in results)
    assert results[0].link == "https://example1.org/page"
    assert results[0].title == "Example result 1"
    assert results[0].snippet == "Snippet number 1"
    assert all(r.source_engine == "primary" for r in results)


def test_duplicate_links_are_skipped() -> None:
    hits = example_hits(2) + [("Same page again", "https://example1.org/page", "dup")]
    html = google_results_html(hits)

    results = ResultParser(GOOGLE_LAYOUT).parse(html, GOOGLE_SEARCH_URL, 10, "primary")

    assert [r.link for r in results] == [
        "https://example1.org/page",
        "https://example2.org/page",
    ]


def test_display_url_falls_back_to_host() -> None:
    html = duckduckgo_results_html(example_hits(3))

    results = ResultParser(DUCKDUCKGO_LAYOUT).parse(html, DUCKDUCKGO_SEARCH_URL, 10, "secondary")

    assert [r.position for r in results] == [1, 2, 3]
    assert results[1].link == "https://example2.org/page"
    assert results[1].display_url == "example2.org"
    assert results[1].snippet == "Snippet number 2"


def test_container_with_engine_primary_link_is_dropped() -> None:
    """A maps card whose secondary anchor is external must not surface as a hit."""
    html = (
        "<html><body><div id=\"search\">"
        '<div class="g"><a href="https://maps.google.com/maps?q=cafe"><h3>Maps card</h3></a>'
        '<a href="https://cafe.example/">cafe.example</a></div>'
        '<div class="g"><a href="https://real.example.org/"><h3>Real</h3></a></div>'
        "</div></body></html>"
    )

    results = ResultParser(GOOGLE_LAYOUT).parse(html, GOOGLE_SEARCH_URL, 5, "primary")

    assert [(r.position, r.title, r.link) for r in results] == [
        (1, "Real", "https://real.example.org/")
    ]


def test_fallback_container_selector() -> None:
    html = (
        "<html><body>"
        '<div class="tF2Cxc"><a href="https://example.org/a"><h3>Alpha</h3></a></div>'
        "</body></html>"
    )

    results = ResultParser(GOOGLE_LAYOUT).parse(html, GOOGLE_SEARCH_URL, 5, "primary")

    assert [r.title for r in results] == ["Alpha"]


def test_no_container_raises_selector_not_found() -> None:
    with pytest.raises(SelectorNotFound):
        ResultParser(GOOGLE_LAYOUT).parse(
            "<html><body><p>nothing here</p></body></html>",
            GOOGLE_SEARCH_URL,
            5,
            "primary",
        )


def test_unwrap_redirect() -> None:
    assert (
        unwrap_redirect("https://www.google.com/url?q=https://example.com/&sa=U")
        == "https://example.com/"
    )
    assert (
        unwrap_redirect("https://duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fx&rut=1")
        == "https://example.com/x"
    )
    assert unwrap_redirect("https://example.com/url") == "https://example.com/url"


def test_resolve_link_rejects_non_http() -> None:
    assert resolve_link("javascript:void(0)", GOOGLE_SEARCH_URL) is None
    assert resolve_link("mailto:a@example.com", GOOGLE_SEARCH_URL) is None
    assert resolve_link("/url?q=https://example.org/", GOOGLE_SEARCH_URL) == "https://example.org/"


def test_is_self_link() -> None:
    domains = GOOGLE_LAYOUT.self_domains
    assert is_self_link("https://maps.google.com/x", domains)
    assert is_self_link("https://webcache.googleusercontent.com/search", domains)
    assert not is_self_link("https://notgoogle.com/", domains)


def test_google_search_url_over_fetches() -> None:
    url = GOOGLE_LAYOUT.build_search_url("example query", 10)
    assert url.startswith("https://www.google.com/search?")
    assert "num=15" in url
    assert "hl=en" in url
    assert "q=example+query" in url or "q=example%20query" in url
