"""Link extractor capability and its BeautifulSoup-based default."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, Protocol, runtime_checkable
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .types import PageContent
from .url import resolve_url


HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


@runtime_checkable
class LinkExtractor(Protocol):
    """Produce candidate outbound URLs for a fetched page.

    The result must be finite and may be lazy. Duplicates are allowed; the
    visited registry takes care of dedup.
    """

    def extract(self, content: PageContent) -> Iterable[str]:
        ...


def is_html(content: PageContent) -> bool:
    """Return True when the page declares an HTML content type (or none at all)."""

    if not content.content_type:
        return True
    media_type = content.content_type.split(";", maxsplit=1)[0].strip().lower()
    return media_type in HTML_CONTENT_TYPES


@dataclass(slots=True)
class HTMLLinkExtractor:
    """Extract `<a href>` and `<area href>` targets, resolved and canonicalized."""

    include_nofollow: bool = False
    parser: str = "lxml"

    def extract(self, content: PageContent) -> Iterator[str]:
        if not content.body or not is_html(content):
            return iter(())
        return self._iter_links(content)

    def _iter_links(self, content: PageContent) -> Iterator[str]:
        soup = BeautifulSoup(content.body, self.parser)
        base_url = content.base_url

        base_tag = soup.find("base", href=True)
        if base_tag is not None:
            base_url = urljoin(base_url, str(base_tag.get("href")).strip())

        for element in soup.find_all(["a", "area"]):
            href = element.get("href")
            if not href:
                continue

            rel_values = {value.lower() for value in (element.get("rel") or [])}
            if not self.include_nofollow and "nofollow" in rel_values:
                continue

            resolved = resolve_url(base_url, href)
            if resolved:
                yield resolved


class SerializedExtractor:
    """Serialize calls into an extractor that is not safe for concurrent use.

    The wrapped result is materialized inside the lock, so a lazy inner
    sequence is never consumed by two workers at once.
    """

    def __init__(self, inner: LinkExtractor) -> None:
        self.inner = inner
        self._lock = threading.Lock()

    def extract(self, content: PageContent) -> list[str]:
        with self._lock:
            return list(self.inner.extract(content))


__all__ = [
    "HTMLLinkExtractor",
    "LinkExtractor",
    "SerializedExtractor",
    "is_html",
]
