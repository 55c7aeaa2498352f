"""Core type definitions for the crawl engine.

This module is intentionally dependency-light so every other crawler module can
import shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for summaries."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class FailureReason(str, Enum):
    """Why one work item did not produce a usable page."""

    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    HTTP_STATUS = "http_status"
    REQUEST_ERROR = "request_error"
    INVALID_URL = "invalid_url"
    FETCHER_ERROR = "fetcher_error"
    EXTRACTOR_ERROR = "extractor_error"
    CANCELLED = "cancelled"


class TerminationReason(str, Enum):
    """How a crawl session ended. Both are normal terminations."""

    QUIESCENT = "quiescent"
    OVERALL_TIMEOUT = "overall_timeout"


class CoordinatorState(str, Enum):
    """Lifecycle of one crawl coordinator."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


@dataclass(frozen=True, slots=True)
class WorkItem:
    """One unit of crawl work: a canonical URL and its discovery depth."""

    url: str
    depth: int
    referrer: str | None = None

    def child(self, url: str) -> "WorkItem":
        return WorkItem(url=url, depth=self.depth + 1, referrer=self.url)


@dataclass(frozen=True, slots=True)
class PageContent:
    """Handle on a successfully fetched page, passed to the link extractor."""

    requested_url: str
    final_url: str | None
    status_code: int
    content_type: str | None
    body: bytes
    elapsed_ms: int | None = None

    @property
    def base_url(self) -> str:
        return self.final_url or self.requested_url

    @property
    def content_length(self) -> int:
        return len(self.body)


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    content: PageContent

    @property
    def ok(self) -> bool:
        return True

    @property
    def url(self) -> str:
        return self.content.requested_url


@dataclass(frozen=True, slots=True)
class FetchFailure:
    url: str
    reason: FailureReason
    message: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Union[FetchSuccess, FetchFailure]


@dataclass(frozen=True, slots=True)
class FailedURL:
    """One failed work item, as reported in `CrawlSummary.failed_urls`."""

    url: str
    depth: int
    reason: FailureReason
    message: str | None = None
    status_code: int | None = None
    failed_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_failure(
        cls,
        failure: FetchFailure,
        *,
        depth: int,
        url: str | None = None,
    ) -> "FailedURL":
        return cls(
            url=url or failure.url,
            depth=depth,
            reason=failure.reason,
            message=failure.message,
            status_code=failure.status_code,
        )

    @classmethod
    def from_exception(
        cls,
        *,
        url: str,
        depth: int,
        reason: FailureReason,
        exc: BaseException,
    ) -> "FailedURL":
        return cls(
            url=url,
            depth=depth,
            reason=reason,
            message=f"{exc.__class__.__name__}: {exc}",
        )

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "depth": self.depth,
            "reason": self.reason.value,
            "message": self.message,
            "status_code": self.status_code,
            "failed_at": self.failed_at,
        }


@dataclass(frozen=True, slots=True)
class CrawlSummary:
    """Result of one crawl session.

    `visited_count` counts work items that reached a fetch attempt, whether the
    fetch succeeded or failed. `registered_count` is the final size of the
    visited registry, which also includes URLs still queued at cutoff.
    """

    seed_url: str
    visited_count: int
    failed_urls: tuple[FailedURL, ...]
    elapsed_seconds: float
    termination: TerminationReason
    registered_count: int = 0
    fetched_ok: int = 0
    enqueued: int = 0
    skipped_depth: int = 0
    skipped_seen: int = 0
    skipped_invalid: int = 0
    abandoned_workers: int = 0
    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    @property
    def timed_out(self) -> bool:
        return self.termination == TerminationReason.OVERALL_TIMEOUT

    @property
    def failed_count(self) -> int:
        return len(self.failed_urls)

    def to_json(self) -> JSONDict:
        return {
            "seed_url": self.seed_url,
            "visited_count": self.visited_count,
            "failed_urls": [failed.to_json() for failed in self.failed_urls],
            "elapsed_seconds": self.elapsed_seconds,
            "termination": self.termination.value,
            "registered_count": self.registered_count,
            "fetched_ok": self.fetched_ok,
            "enqueued": self.enqueued,
            "skipped_depth": self.skipped_depth,
            "skipped_seen": self.skipped_seen,
            "skipped_invalid": self.skipped_invalid,
            "abandoned_workers": self.abandoned_workers,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CoordinatorState",
    "CrawlSummary",
    "FailedURL",
    "FailureReason",
    "FetchFailure",
    "FetchOutcome",
    "FetchSuccess",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "PageContent",
    "TerminationReason",
    "WorkItem",
    "utc_now_iso",
]
