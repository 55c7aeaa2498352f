"""In-memory collaborators for crawl tests."""

from __future__ import annotations

import threading
import time
from collections import Counter
from typing import Iterable, Iterator, Mapping, Sequence

from webcrawl.crawler import (
    CrawlConfig,
    FailureReason,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    PageContent,
)


def identity_url(url: str) -> str | None:
    """Canonicalizer for symbolic test URLs such as "A" or "B"."""

    return url.strip() or None


def fast_config(**overrides) -> CrawlConfig:
    values = {
        "worker_count": 1,
        "max_depth": 1,
        "fetch_timeout_seconds": 1.0,
        "overall_timeout_seconds": 10.0,
        "poll_interval_seconds": 0.01,
        "shutdown_grace_seconds": 0.5,
    }
    values.update(overrides)
    return CrawlConfig(**values)


def page(url: str) -> PageContent:
    return PageContent(
        requested_url=url,
        final_url=url,
        status_code=200,
        content_type="text/plain",
        body=url.encode("utf-8"),
        elapsed_ms=0,
    )


class GraphFetcher:
    """Serve every URL in `graph` and count how often each one is fetched."""

    def __init__(
        self,
        graph: Mapping[str, Sequence[str]],
        *,
        delay: float = 0.0,
        failures: Mapping[str, FailureReason] | None = None,
        raise_for: Iterable[str] = (),
    ) -> None:
        self.graph = graph
        self.delay = delay
        self.failures = dict(failures or {})
        self.raise_for = set(raise_for)

        self._lock = threading.Lock()
        self.calls: Counter[str] = Counter()
        self.timeouts: list[float] = []

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        with self._lock:
            self.calls[url] += 1
            self.timeouts.append(timeout)

        if self.delay:
            time.sleep(self.delay)
        if url in self.raise_for:
            raise RuntimeError(f"fetcher exploded on {url}")
        if url in self.failures:
            return FetchFailure(url=url, reason=self.failures[url], message="scripted failure")
        if url not in self.graph:
            return FetchFailure(
                url=url,
                reason=FailureReason.HTTP_STATUS,
                message="HTTP status 404",
                status_code=404,
            )
        return FetchSuccess(page(url))

    @property
    def fetched(self) -> set[str]:
        with self._lock:
            return set(self.calls)


class GraphExtractor:
    """Yield the outbound links recorded in `graph` for a fetched page."""

    def __init__(
        self,
        graph: Mapping[str, Sequence[str]],
        *,
        raise_after: Mapping[str, int] | None = None,
    ) -> None:
        self.graph = graph
        self.raise_after = dict(raise_after or {})

        self._lock = threading.Lock()
        self.calls: Counter[str] = Counter()

    def extract(self, content: PageContent) -> Iterator[str]:
        url = content.requested_url
        with self._lock:
            self.calls[url] += 1
        return self._links(url)

    def _links(self, url: str) -> Iterator[str]:
        links = list(self.graph.get(url, ()))
        limit = self.raise_after.get(url)
        for idx, link in enumerate(links):
            if limit is not None and idx >= limit:
                raise ValueError(f"extractor exploded on {url}")
            yield link
        if limit is not None and limit >= len(links):
            raise ValueError(f"extractor exploded on {url}")


class TimingOutFetcher:
    """Honour the timeout contract by waiting it out and reporting a timeout."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.calls: Counter[str] = Counter()

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        with self._lock:
            self.calls[url] += 1
        time.sleep(timeout)
        return FetchFailure(url=url, reason=FailureReason.TIMEOUT, message=f"Timed out after {timeout}s")


class BlockingFetcher:
    """Violate the timeout contract: block until `release` is set."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.started = threading.Event()

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        self.started.set()
        self.release.wait(10.0)
        return FetchSuccess(page(url))


def chain_graph(length: int) -> dict[str, list[str]]:
    """n0 -> n1 -> ... -> n{length-1}."""

    return {f"n{i}": ([f"n{i + 1}"] if i + 1 < length else []) for i in range(length)}


def complete_graph(size: int) -> dict[str, list[str]]:
    """Every node links to every node, itself included."""

    nodes = [f"p{i}" for i in range(size)]
    return {node: list(nodes) for node in nodes}
