"""Tests for platform classification and Markdown normalization."""

import pytest

from fakes import FakeBrowser, FakePage
from stealth_search.core.models import ExtractRequest
from stealth_search.pipelines.content_normalizer import (
    ContentNormalizer,
    PlatformRule,
    absolutize,
    absolutize_srcset,
    absolutize_style,
    clean_markdown,
)

ARTICLE_HTML = """
<html>
  <head><title>Example article</title><script>var tracking = 1;</script></head>
  <body>
    <nav><a href="/">Home</a> <a href="/about">About</a></nav>
    <main>
      <h1>Example article</h1>
      <p>This paragraph carries the actual content of the article and it is
         long enough to be meaningful on its own.</p>
      <img src="/img/cover.png" alt="cover">
      <picture><source srcset="/img/wide.webp 2x"><img src="img/small.png" alt="small"></picture>
      <div class="sidebar">Related links</div>
    </main>
    <footer>Copyright Example</footer>
  </body>
</html>
"""

BASE_URL = "https://example.com/posts/1"


def extract_request(**overrides) -> ExtractRequest:
    values = {"url": BASE_URL}
    values.update(overrides)
    return ExtractRequest(**values)




# ==== CLASSIFICATION ==== #

@pytest.mark.parametrize(
    ("url", "platform", "walled"),
    [
        ("https://www.linkedin.com/in/alice", "linkedin", True),
        ("https://www.linkedin.com/company/acme/", "linkedin", False),
        ("https://linkedin.com/feed/", "linkedin", True),
        ("https://www.facebook.com/someone", "facebook", True),
        ("https://www.facebook.com/pages/acme", "facebook", False),
        ("https://x.com/someone", "twitter", False),
        ("https://example.com/article", "general", False),
        ("https://notlinkedin.com/in/alice", "general", False),
    ],
)
def test_classify(url: str, platform: str, walled: bool) -> None:
    info = ContentNormalizer().classify(url)
    assert info.platform == platform
    assert info.walled is walled


def test_custom_rule_profile_pattern_is_walled() -> None:
    normalizer = ContentNormalizer(
        (PlatformRule("socialnet", ("socialnet.example",), True, ("/groups/",), ("/in/",)),)
    )
    assert normalizer.classify("https://socialnet.example/in/alice").walled
    assert not normalizer.classify("https://socialnet.example/groups/python").walled




# ==== URL ABSOLUTIZATION ==== #

@pytest.mark.parametrize(
    "url",
    [
        "/img/a.png",
        "img/b.png",
        "../c.png",
        "https://cdn.example.net/d.png",
        "//cdn.example.net/e.png",
        "data:image/png;base64,AAAA",
        "#section",
        "mailto:someone@example.com",
    ],
)
def test_absolutize_is_idempotent(url: str) -> None:
    once = absolutize(url, BASE_URL)
    assert absolutize(once, BASE_URL) == once


def test_absolutize_values() -> None:
    assert absolutize("/img/a.png", BASE_URL) == "https://example.com/img/a.png"
    assert absolutize("img/b.png", BASE_URL) == "https://example.com/posts/img/b.png"
    assert absolutize("data:image/png;base64,AAAA", BASE_URL) == "data:image/png;base64,AAAA"


def test_absolutize_srcset_and_style() -> None:
    assert (
        absolutize_srcset("/a.png 1x, /b.png 2x", BASE_URL)
        == "https://example.com/a.png 1x, https://example.com/b.png 2x"
    )
    assert (
        absolutize_style("background-image: url('/bg.png')", BASE_URL)
        == "background-image: url('https://example.com/bg.png')"
    )




# ==== NORMALIZATION ==== #

def test_main_content_without_images() -> None:
    normalizer = ContentNormalizer()
    request = extract_request(include_images=False)

    content = normalizer.normalize(
        request,
        normalizer.classify(BASE_URL),
        ARTICLE_HTML,
        "Example article",
        BASE_URL,
    )

    assert "![" not in content.markdown
    assert "# Example article" in content.markdown
    assert "actual content" in content.markdown
    assert "Home" not in content.markdown
    assert "Related links" not in content.markdown
    assert "Copyright" not in content.markdown
    assert "tracking" not in content.markdown
    assert content.extraction_mode == "main-content"
    assert not content.auth_required
    assert not content.is_empty


def test_images_are_absolutized() -> None:
    normalizer = ContentNormalizer()

    content = normalizer.normalize(
        extract_request(),
        normalizer.classify(BASE_URL),
        ARTICLE_HTML,
        "Example article",
        BASE_URL,
    )

    assert "![cover](https://example.com/img/cover.png)" in content.markdown
    assert "![small](https://example.com/posts/img/small.png)" in content.markdown


def test_full_page_keeps_navigation() -> None:
    normalizer = ContentNormalizer()

    content = normalizer.normalize(
        extract_request(full_page=True),
        normalizer.classify(BASE_URL),
        ARTICLE_HTML,
        "Example article",
        BASE_URL,
    )

    assert content.extraction_mode == "full-page"
    assert "Home" in content.markdown
    assert "Copyright Example" in content.markdown


def test_near_empty_platform_page_becomes_advisory() -> None:
    normalizer = ContentNormalizer()
    url = "https://www.linkedin.com/company/acme"

    content = normalizer.normalize(
        extract_request(url=url),
        normalizer.classify(url),
        "<html><body><main><p>Hi</p></main></body></html>",
        "Acme",
        url,
    )

    assert content.is_empty
    assert content.markdown == ""
    assert content.platform == "linkedin"
    assert content.advisory
    assert content.diagnostics["markdown_length"] < 50


def test_near_empty_generic_page_is_returned() -> None:
    normalizer = ContentNormalizer()

    content = normalizer.normalize(
        extract_request(),
        normalizer.classify(BASE_URL),
        "<html><body><p>Short</p></body></html>",
        "",
        BASE_URL,
    )

    assert not content.is_empty
    assert content.markdown == "Short"


def test_clean_markdown() -> None:
    raw = "# Title\n\n\n\n\nText [![logo](/l.png)](/home) end\n\n\n"
    assert clean_markdown(raw) == "# Title\n\nText  end"




# ==== LOGIN WALL ==== #

def test_login_wall_detected_on_public_path() -> None:
    normalizer = ContentNormalizer()
    info = normalizer.classify("https://www.linkedin.com/company/acme")
    html = (
        '<html><head><meta name="description" content="Join to see"></head>'
        "<body><h1>Join LinkedIn</h1><p>Sign in to see who you already know.</p></body></html>"
    )

    wall = normalizer.detect_login_wall(info, "Sign Up | LinkedIn", html)

    assert wall is not None
    assert wall["login_phrase"] is True
    assert wall["heading"] == "Join LinkedIn"
    assert wall["meta_description"] == "Join to see"


def test_login_wall_not_applied_to_open_platforms() -> None:
    normalizer = ContentNormalizer()
    info = normalizer.classify(BASE_URL)

    assert normalizer.detect_login_wall(info, "", "<html><body>log in</body></html>") is None


@pytest.mark.asyncio
async def test_extract_through_session() -> None:
    url = "https://www.linkedin.com/company/acme"
    page = FakePage(
        "<html><body><p>Please sign in to continue</p></body></html>",
        url=url,
        title="LinkedIn",
    )
    browser = FakeBrowser({"www.linkedin.com": page})
    normalizer = ContentNormalizer()

    async with browser.session(identity=None, proxy=None) as session:  # type: ignore[arg-type]
        content = await normalizer.extract(
            extract_request(url=url),
            normalizer.classify(url),
            session,
        )

    assert content.auth_required
    assert content.markdown == ""
    assert content.diagnostics["login_phrase"] is True
    assert browser.hosts() == ["www.linkedin.com"]

