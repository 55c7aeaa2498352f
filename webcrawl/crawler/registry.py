"""Thread-safe visited registry: the single admission gate into the frontier."""

from __future__ import annotations

import threading
from typing import Iterable


class VisitedRegistry:
    """Set of canonical URLs that have been scheduled in this crawl session.

    `try_mark` is the only way in. Check and insert happen under one lock, so
    when several workers discover the same URL exactly one of them claims it.
    There is no removal: URLs are never re-crawled within a session.
    """

    def __init__(self, initial_urls: Iterable[str] | None = None) -> None:
        self._lock = threading.Lock()
        self._urls: set[str] = set(initial_urls or ())
        self._rejected = 0

    def try_mark(self, url: str) -> bool:
        """Claim `url`. Returns True only for the call that inserted it."""

        with self._lock:
            if url in self._urls:
                self._rejected += 1
                return False
            self._urls.add(url)
            return True

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)

    def snapshot(self) -> frozenset[str]:
        """Return a point-in-time copy of the registered URLs."""

        with self._lock:
            return frozenset(self._urls)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"registered": len(self._urls), "rejected_marks": self._rejected}


__all__ = ["VisitedRegistry"]
