"""Crawl engine package: config, shared types, and the concurrent crawler."""

from .config import CrawlConfig, load_config, save_config
from .coordinator import CrawlCoordinator, crawl
from .errors import CoordinatorStateError, CrawlError, InvalidSeedURLError
from .extractor import HTMLLinkExtractor, LinkExtractor, SerializedExtractor
from .fetcher import HttpPageFetcher, PageFetcher, RetryingFetcher, SerializedFetcher
from .frontier import FrontierQueue
from .pool import WorkerPool
from .registry import VisitedRegistry
from .stats import StatsCollector
from .types import (
    CoordinatorState,
    CrawlSummary,
    FailedURL,
    FailureReason,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    PageContent,
    TerminationReason,
    WorkItem,
    utc_now_iso,
)
from .url import is_http_url, normalize_url, resolve_url

__all__ = [
    "CoordinatorState",
    "CoordinatorStateError",
    "CrawlConfig",
    "CrawlCoordinator",
    "CrawlError",
    "CrawlSummary",
    "FailedURL",
    "FailureReason",
    "FetchFailure",
    "FetchOutcome",
    "FetchSuccess",
    "FrontierQueue",
    "HTMLLinkExtractor",
    "HttpPageFetcher",
    "InvalidSeedURLError",
    "LinkExtractor",
    "PageContent",
    "PageFetcher",
    "RetryingFetcher",
    "SerializedExtractor",
    "SerializedFetcher",
    "StatsCollector",
    "TerminationReason",
    "VisitedRegistry",
    "WorkItem",
    "WorkerPool",
    "crawl",
    "is_http_url",
    "load_config",
    "normalize_url",
    "resolve_url",
    "save_config",
    "utc_now_iso",
]
