from __future__ import annotations

import types

from webcrawl.crawler import HTMLLinkExtractor, LinkExtractor, PageContent, SerializedExtractor


def html_page(body: str, *, url: str = "https://example.com/docs/", content_type: str | None = "text/html; charset=utf-8") -> PageContent:
    return PageContent(
        requested_url=url,
        final_url=url,
        status_code=200,
        content_type=content_type,
        body=body.encode("utf-8"),
    )


def test_extracts_resolved_links():
    content = html_page(
        """
        <html><body>
          <a href="intro.html">Intro</a>
          <a href="/about#team">About</a>
          <a href="https://Other.org/x?utm_medium=mail">Other</a>
          <a href="#top">Top</a>
          <a href="mailto:someone@example.com">Mail</a>
          <a>No href</a>
          <map><area href="/map-target"></map>
        </body></html>
        """
    )

    links = list(HTMLLinkExtractor().extract(content))

    assert links == [
        "https://example.com/docs/intro.html",
        "https://example.com/about",
        "https://other.org/x",
        "https://example.com/map-target",
    ]


def test_extraction_is_lazy():
    content = html_page('<a href="/a">a</a>')

    result = HTMLLinkExtractor().extract(content)

    assert isinstance(result, types.GeneratorType)
    assert list(result) == ["https://example.com/a"]


def test_nofollow_links_are_skipped_by_default():
    content = html_page('<a rel="nofollow" href="/hidden">x</a><a href="/shown">y</a>')

    assert list(HTMLLinkExtractor().extract(content)) == ["https://example.com/shown"]
    assert list(HTMLLinkExtractor(include_nofollow=True).extract(content)) == [
        "https://example.com/hidden",
        "https://example.com/shown",
    ]


def test_base_tag_overrides_page_url():
    content = html_page(
        '<head><base href="https://cdn.example.com/root/"></head><a href="file.html">f</a>'
    )

    assert list(HTMLLinkExtractor().extract(content)) == ["https://cdn.example.com/root/file.html"]


def test_non_html_and_empty_pages_yield_nothing():
    extractor = HTMLLinkExtractor()

    assert list(extractor.extract(html_page('<a href="/a">a</a>', content_type="application/pdf"))) == []
    assert list(extractor.extract(html_page(""))) == []
    assert list(extractor.extract(html_page('<a href="/a">a</a>', content_type=None))) == [
        "https://example.com/a"
    ]


def test_serialized_extractor_materializes_links():
    wrapped = SerializedExtractor(HTMLLinkExtractor())

    links = wrapped.extract(html_page('<a href="/a">a</a><a href="/a">again</a>'))

    assert isinstance(wrapped, LinkExtractor)
    assert links == ["https://example.com/a", "https://example.com/a"]
