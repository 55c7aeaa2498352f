"""Exceptions that propagate out of `crawl()`.

Per-URL problems never raise; they are reported as `FailedURL` records. Only
problems detected before workers start, or misuse of a coordinator, surface as
exceptions.
"""

from __future__ import annotations


class CrawlError(Exception):
    """Base class for crawl engine errors."""


class InvalidSeedURLError(CrawlError, ValueError):
    """Seed URL is empty or cannot be canonicalized."""

    def __init__(self, seed_url: object, detail: str | None = None) -> None:
        self.seed_url = seed_url
        message = f"Invalid seed URL: {seed_url!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CoordinatorStateError(CrawlError, RuntimeError):
    """Requested transition is not allowed from the coordinator's current state."""


__all__ = [
    "CoordinatorStateError",
    "CrawlError",
    "InvalidSeedURLError",
]
