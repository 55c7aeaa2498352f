"""Fixed-size pool of crawl worker threads."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .config import CrawlConfig
from .extractor import LinkExtractor
from .fetcher import PageFetcher
from .frontier import FrontierQueue
from .registry import VisitedRegistry
from .stats import StatsCollector
from .types import (
    FailedURL,
    FailureReason,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    PageContent,
    WorkItem,
)
from .url import normalize_url


LOGGER = logging.getLogger(__name__)

Canonicalizer = Callable[[str], Optional[str]]


class WorkerPool:
    """Run `config.worker_count` worker loops over one frontier.

    Each loop pops an item, fetches it, and on success pushes every newly
    claimed link as a child item one level deeper. Every iteration is isolated:
    a collaborator that raises turns into a `FailedURL` for that item and the
    loop carries on. `task_done()` is always called for a popped item, after
    its children have been pushed.

    Depth policy: an item at `max_depth` is fetched but not expanded, so URLs
    beyond the bound are never marked visited and never enqueued.
    """

    def __init__(
        self,
        *,
        frontier: FrontierQueue,
        registry: VisitedRegistry,
        fetcher: PageFetcher,
        extractor: LinkExtractor,
        config: CrawlConfig,
        stats: StatsCollector,
        canonicalize: Canonicalizer = normalize_url,
    ) -> None:
        self.frontier = frontier
        self.registry = registry
        self.fetcher = fetcher
        self.extractor = extractor
        self.config = config
        self.stats = stats
        self.canonicalize = canonicalize

        self._stop = threading.Event()
        self._cancel = threading.Event()

        self._threads: list[threading.Thread] = []
        self._state_lock = threading.Lock()
        self._active = 0
        self._acknowledged: set[str] = set()

    def start(self) -> None:
        """Launch the worker threads. A pool is started at most once."""

        with self._state_lock:
            if self._threads:
                raise RuntimeError("WorkerPool has already been started")
            self._threads = [
                threading.Thread(
                    target=self._worker_loop,
                    name=f"crawler-worker-{idx}",
                    daemon=True,
                )
                for idx in range(self.config.worker_count)
            ]

        for thread in self._threads:
            thread.start()

    def request_stop(self) -> None:
        """Ask workers to exit after their current iteration."""

        self._stop.set()

    def cancel(self) -> None:
        """Stop workers and skip link expansion for items still in flight."""

        self._cancel.set()
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def join(self, timeout: float) -> list[str]:
        """Wait up to `timeout` seconds for every worker to acknowledge stop.

        Returns the names of workers that are still running.
        """

        deadline = time.monotonic() + timeout
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        return [thread.name for thread in self._threads if thread.is_alive()]

    def active_count(self) -> int:
        """Workers currently processing an item."""

        with self._state_lock:
            return self._active

    def idle_count(self) -> int:
        """Running workers that are waiting for work."""

        alive = sum(1 for thread in self._threads if thread.is_alive())
        return max(0, alive - self.active_count())

    def acknowledged_count(self) -> int:
        """Workers whose loop has exited."""

        with self._state_lock:
            return len(self._acknowledged)

    def _worker_loop(self) -> None:
        name = threading.current_thread().name
        LOGGER.debug("%s started", name)
        try:
            while not self._stop.is_set():
                item = self.frontier.pop(timeout=self.config.poll_interval_seconds)
                if item is None:
                    continue

                self._set_active(1)
                try:
                    self._process(item)
                except Exception as exc:
                    LOGGER.exception("Unexpected error while processing %s", item.url)
                    self._record_failure(
                        FailedURL.from_exception(
                            url=item.url,
                            depth=item.depth,
                            reason=FailureReason.FETCHER_ERROR,
                            exc=exc,
                        )
                    )
                finally:
                    self._set_active(-1)
                    self.frontier.task_done()
        finally:
            with self._state_lock:
                self._acknowledged.add(name)
            LOGGER.debug("%s stopped", name)

    def _set_active(self, delta: int) -> None:
        with self._state_lock:
            self._active += delta

    def _process(self, item: WorkItem) -> None:
        if item.depth > self.config.max_depth:
            LOGGER.debug("Discarding %s beyond max depth (%d)", item.url, item.depth)
            self.stats.record_skipped_depth()
            return

        self.stats.record_fetch_attempt()
        outcome = self._fetch(item)

        if isinstance(outcome, FetchFailure):
            self._record_failure(FailedURL.from_failure(outcome, depth=item.depth, url=item.url))
            return

        content = outcome.content
        self.stats.record_fetch_ok(
            elapsed_ms=content.elapsed_ms,
            content_length=content.content_length,
        )
        LOGGER.debug("Fetched %s (depth=%d, status=%d)", item.url, item.depth, content.status_code)

        if self._cancel.is_set() or item.depth >= self.config.max_depth:
            return

        self._expand(item, content)

    def _fetch(self, item: WorkItem) -> FetchOutcome:
        timeout = self.config.fetch_timeout_seconds
        started = time.monotonic()
        try:
            outcome = self.fetcher.fetch(item.url, timeout)
        except Exception as exc:
            LOGGER.warning("Page fetcher raised for %s", item.url, exc_info=True)
            return FetchFailure(
                url=item.url,
                reason=FailureReason.FETCHER_ERROR,
                message=f"{exc.__class__.__name__}: {exc}",
            )

        elapsed = time.monotonic() - started
        if elapsed > self.config.stop_deadline_seconds:
            LOGGER.warning(
                "Page fetcher overran its %.1fs timeout for %s (%.1fs)",
                timeout,
                item.url,
                elapsed,
            )
            return FetchFailure(
                url=item.url,
                reason=FailureReason.TIMEOUT,
                message=f"Fetch took {elapsed:.1f}s, exceeding the {timeout:.1f}s timeout",
            )

        if not isinstance(outcome, (FetchSuccess, FetchFailure)):
            return FetchFailure(
                url=item.url,
                reason=FailureReason.FETCHER_ERROR,
                message=f"Page fetcher returned {type(outcome).__name__}, not a fetch outcome",
            )
        return outcome

    def _expand(self, item: WorkItem, content: PageContent) -> None:
        try:
            for candidate in self.extractor.extract(content):
                if self._cancel.is_set():
                    return
                self.stats.record_links(1)

                url = self._canonical(candidate)
                if url is None:
                    self.stats.record_skipped_invalid()
                    continue

                # Mark before push: nothing reaches the frontier unregistered.
                if not self.registry.try_mark(url):
                    self.stats.record_skipped_seen()
                    continue

                if not self.frontier.push(item.child(url)):
                    LOGGER.debug("Frontier closed, dropping %s", url)
                    return
                self.stats.record_enqueued()
        except Exception as exc:
            LOGGER.warning("Link extractor raised for %s", item.url, exc_info=True)
            self._record_failure(
                FailedURL.from_exception(
                    url=item.url,
                    depth=item.depth,
                    reason=FailureReason.EXTRACTOR_ERROR,
                    exc=exc,
                )
            )

    def _canonical(self, candidate: object) -> str | None:
        if not isinstance(candidate, str):
            return None
        try:
            return self.canonicalize(candidate)
        except ValueError:
            LOGGER.debug("Could not canonicalize %r", candidate, exc_info=True)
            return None

    def _record_failure(self, failed: FailedURL) -> None:
        LOGGER.info(
            "Failed %s (depth=%d): %s%s",
            failed.url,
            failed.depth,
            failed.reason.value,
            f" ({failed.message})" if failed.message else "",
        )
        self.stats.record_failure(failed)


__all__ = ["Canonicalizer", "WorkerPool"]
