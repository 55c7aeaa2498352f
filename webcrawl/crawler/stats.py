"""Thread-safe crawl statistics shared by all workers of one session."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any

from .types import FailedURL


class StatsCollector:
    """Collect per-item outcomes reported by concurrent workers.

    After `freeze()` every `record_*` call is ignored, so a worker that
    outlives the crawl cannot change a summary that was already returned.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frozen = False

        self._visited = 0
        self._fetched_ok = 0
        self._enqueued = 0
        self._skipped_seen = 0
        self._skipped_depth = 0
        self._skipped_invalid = 0
        self._links_total = 0
        self._fetch_elapsed_ms_total = 0
        self._fetch_bytes_total = 0

        self._failed: list[FailedURL] = []
        self._failure_reason_counts: dict[str, int] = defaultdict(int)

    def record_fetch_attempt(self) -> None:
        with self._lock:
            if not self._frozen:
                self._visited += 1

    def record_fetch_ok(self, *, elapsed_ms: int | None = None, content_length: int = 0) -> None:
        with self._lock:
            if self._frozen:
                return
            self._fetched_ok += 1
            if elapsed_ms is not None:
                self._fetch_elapsed_ms_total += int(elapsed_ms)
            self._fetch_bytes_total += int(content_length)

    def record_failure(self, failed: FailedURL) -> None:
        with self._lock:
            if self._frozen:
                return
            self._failed.append(failed)
            self._failure_reason_counts[failed.reason.value] += 1

    def record_enqueued(self, count: int = 1) -> None:
        self._add("_enqueued", count)

    def record_skipped_seen(self, count: int = 1) -> None:
        self._add("_skipped_seen", count)

    def record_skipped_depth(self, count: int = 1) -> None:
        self._add("_skipped_depth", count)

    def record_skipped_invalid(self, count: int = 1) -> None:
        self._add("_skipped_invalid", count)

    def record_links(self, count: int) -> None:
        self._add("_links_total", count)

    def _add(self, attr: str, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            if not self._frozen:
                setattr(self, attr, getattr(self, attr) + count)

    def freeze(self) -> None:
        """Stop accepting records."""

        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        with self._lock:
            return self._frozen

    def failed_urls(self) -> tuple[FailedURL, ...]:
        with self._lock:
            return tuple(self._failed)

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-serializable copy of every counter."""

        with self._lock:
            return {
                "visited": self._visited,
                "fetched_ok": self._fetched_ok,
                "failed": len(self._failed),
                "enqueued": self._enqueued,
                "skipped_seen": self._skipped_seen,
                "skipped_depth": self._skipped_depth,
                "skipped_invalid": self._skipped_invalid,
                "links_total": self._links_total,
                "fetch_elapsed_ms_total": self._fetch_elapsed_ms_total,
                "fetch_bytes_total": self._fetch_bytes_total,
                "failure_reason_counts": dict(self._failure_reason_counts),
                "frozen": self._frozen,
            }


__all__ = ["StatsCollector"]
