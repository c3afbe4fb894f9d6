"""Tests for HTML parsing helpers."""

from stealth_search.utils.parsing import (
    FieldStrategy,
    extract_visible_text,
    meta_content,
    parse_html,
)

RESULTS_HTML = """
<div id="rso">
  <div class="g"><a href="https://a.example.org"><h3>  Alpha   result </h3></a></div>
  <div class="g"><a href="https://b.example.org"><span class="LC20lb">Beta</span></a></div>
</div>
"""


def test_extract_visible_text_excludes_script() -> None:
    """Visible text helper should ignore script contents."""
    html = """
    <html>
      <head><title>Test</title></head>
      <body>
        <h1>Hello</h1>
        <script>var msg = 'enable javascript';</script>
        <style>p { color: red; }</style>
        <p>World</p>
      </body>
    </html>
    """
    text = extract_visible_text(html)
    assert "Hello" in text
    assert "World" in text
    assert "enable javascript" not in text
    assert "color" not in text


def test_extract_visible_text_collapses_whitespace() -> None:
    assert extract_visible_text("<body><p>a\n\n   b</p>\t<p>c</p></body>") == "a b c"


def test_meta_content() -> None:
    tree = parse_html(
        '<head><meta property="og:title" content=" Alice "><meta name="robots"></head>'
    )
    assert meta_content(tree, "og:title") == "Alice"
    assert meta_content(tree, "robots") == ""
    assert meta_content(tree, "description") == ""


def test_field_strategy_fallback_order() -> None:
    tree = parse_html(RESULTS_HTML)
    containers = FieldStrategy("container", (".tF2Cxc", ".g")).containers(tree)
    title = FieldStrategy("title", ("h3", ".LC20lb"))

    assert len(containers) == 2
    assert title.extract(containers[0]) == "Alpha result"
    assert title.extract(containers[1]) == "Beta"


def test_field_strategy_attribute() -> None:
    tree = parse_html(RESULTS_HTML)

    link = FieldStrategy("link", (".missing a", "a"), attr="href").extract(tree.root)

    assert link == "https://a.example.org"
    assert FieldStrategy("missing", (".nope",)).extract(tree.root) == ""
    assert FieldStrategy("missing", (".nope",)).containers(tree) == []
