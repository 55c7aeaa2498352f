"""Crawl coordinator: seeds the frontier, runs the pool, and ends the crawl."""

from __future__ import annotations

import logging
import threading
import time

from .config import CrawlConfig
from .errors import CoordinatorStateError, InvalidSeedURLError
from .extractor import HTMLLinkExtractor, LinkExtractor
from .fetcher import HttpPageFetcher, PageFetcher
from .frontier import FrontierQueue
from .pool import Canonicalizer, WorkerPool
from .registry import VisitedRegistry
from .stats import StatsCollector
from .types import CoordinatorState, CrawlSummary, TerminationReason, WorkItem, utc_now_iso
from .url import normalize_url


LOGGER = logging.getLogger(__name__)

_TRANSITIONS: dict[CoordinatorState, CoordinatorState] = {
    CoordinatorState.IDLE: CoordinatorState.RUNNING,
    CoordinatorState.RUNNING: CoordinatorState.DRAINING,
    CoordinatorState.DRAINING: CoordinatorState.TERMINATED,
}


class CrawlCoordinator:
    """Own one crawl session from seed to summary.

    State machine: idle -> running -> draining -> terminated. A coordinator
    runs exactly one crawl; the visited registry, frontier, and stats are built
    fresh inside `crawl()` and never shared with another session.

    When the fetcher or extractor is omitted, the coordinator creates an
    `HttpPageFetcher` / `HTMLLinkExtractor` and closes the fetcher it created
    when the crawl ends.
    """

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        extractor: LinkExtractor | None = None,
        *,
        canonicalize: Canonicalizer = normalize_url,
    ) -> None:
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self.extractor = extractor if extractor is not None else HTMLLinkExtractor()
        self.canonicalize = canonicalize

        self._state = CoordinatorState.IDLE
        self._state_lock = threading.Lock()

        self.registry: VisitedRegistry | None = None
        self.frontier: FrontierQueue | None = None
        self.stats: StatsCollector | None = None
        self.pool: WorkerPool | None = None

    @property
    def state(self) -> CoordinatorState:
        with self._state_lock:
            return self._state

    def _transition(self, target: CoordinatorState) -> None:
        with self._state_lock:
            if _TRANSITIONS.get(self._state) != target:
                raise CoordinatorStateError(
                    f"Cannot move crawl coordinator from {self._state.value} to {target.value}"
                )
            self._state = target
        LOGGER.debug("Coordinator state -> %s", target.value)

    def crawl(self, seed_url: str, config: CrawlConfig | None = None) -> CrawlSummary:
        """Crawl from `seed_url` until quiescence or the overall timeout.

        Raises `InvalidSeedURLError` before any worker starts when the seed is
        empty or cannot be canonicalized, and `CoordinatorStateError` when this
        coordinator has already run.
        """

        config = config or CrawlConfig()
        if self.state != CoordinatorState.IDLE:
            raise CoordinatorStateError("A crawl coordinator can only run one crawl")

        seed = self._validate_seed(seed_url)
        fetcher = self._fetcher if self._fetcher is not None else HttpPageFetcher(config)

        self._transition(CoordinatorState.RUNNING)
        started_at = utc_now_iso()
        started = time.monotonic()

        self.registry = VisitedRegistry()
        self.frontier = FrontierQueue()
        self.stats = StatsCollector()
        self.pool = WorkerPool(
            frontier=self.frontier,
            registry=self.registry,
            fetcher=fetcher,
            extractor=self.extractor,
            config=config,
            stats=self.stats,
            canonicalize=self.canonicalize,
        )

        if not self.registry.try_mark(seed):
            raise CoordinatorStateError("Fresh visited registry refused the seed URL")
        self.frontier.push(WorkItem(url=seed, depth=0))
        self.stats.record_enqueued()

        LOGGER.info(
            "Starting crawl: seed=%s, workers=%d, max_depth=%d, fetch_timeout=%.1fs, overall_timeout=%.1fs",
            seed,
            config.worker_count,
            config.max_depth,
            config.fetch_timeout_seconds,
            config.overall_timeout_seconds,
        )

        termination: TerminationReason | None = None
        try:
            self.pool.start()
            termination = self._wait_for_termination(started, config)
        finally:
            abandoned = self._shut_down(
                fetcher,
                config,
                cancel=termination != TerminationReason.QUIESCENT,
            )

        elapsed = time.monotonic() - started
        snapshot = self.stats.snapshot()
        summary = CrawlSummary(
            seed_url=seed,
            visited_count=snapshot["visited"],
            failed_urls=self.stats.failed_urls(),
            elapsed_seconds=elapsed,
            termination=termination,
            registered_count=len(self.registry),
            fetched_ok=snapshot["fetched_ok"],
            enqueued=snapshot["enqueued"],
            skipped_depth=snapshot["skipped_depth"],
            skipped_seen=snapshot["skipped_seen"],
            skipped_invalid=snapshot["skipped_invalid"],
            abandoned_workers=len(abandoned),
            started_at=started_at,
            finished_at=utc_now_iso(),
        )

        LOGGER.info(
            "Crawl finished (%s): visited=%d, failed=%d, registered=%d, elapsed=%.2fs",
            summary.termination.value,
            summary.visited_count,
            summary.failed_count,
            summary.registered_count,
            summary.elapsed_seconds,
        )
        return summary

    def _validate_seed(self, seed_url: str) -> str:
        if not isinstance(seed_url, str) or not seed_url.strip():
            raise InvalidSeedURLError(seed_url, "empty")
        try:
            seed = self.canonicalize(seed_url.strip())
        except ValueError as exc:
            raise InvalidSeedURLError(seed_url, str(exc)) from exc
        if not seed:
            raise InvalidSeedURLError(seed_url, "not a crawlable URL")
        return seed

    def _wait_for_termination(self, started: float, config: CrawlConfig) -> TerminationReason:
        deadline = started + config.overall_timeout_seconds
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LOGGER.info(
                    "Overall timeout of %.1fs reached with %d items outstanding (%d workers active, %d idle)",
                    config.overall_timeout_seconds,
                    self.frontier.outstanding(),
                    self.pool.active_count(),
                    self.pool.idle_count(),
                )
                return TerminationReason.OVERALL_TIMEOUT
            if self.frontier.wait_until_drained(min(config.poll_interval_seconds, remaining)):
                return TerminationReason.QUIESCENT

    def _shut_down(self, fetcher: PageFetcher, config: CrawlConfig, *, cancel: bool) -> list[str]:
        """Stop the pool and wait for the shutdown handshake.

        On quiescence workers simply stop; otherwise in-flight work is
        cancelled and an owned fetcher is closed to abandon open sockets.
        Returns the names of workers that did not acknowledge stop in time.
        """

        self._transition(CoordinatorState.DRAINING)

        if cancel:
            self.pool.cancel()
            if self._owns_fetcher:
                _close_fetcher(fetcher)
        else:
            self.pool.request_stop()

        self.frontier.close()
        abandoned = self.pool.join(config.stop_deadline_seconds + config.poll_interval_seconds)
        self.stats.freeze()

        leftovers = self.frontier.drain()
        if leftovers:
            LOGGER.info("Discarded %d queued items at shutdown", len(leftovers))
        if abandoned:
            LOGGER.error(
                "Workers did not stop within %.1fs and were abandoned: %s",
                config.stop_deadline_seconds,
                ", ".join(abandoned),
            )

        if self._owns_fetcher:
            _close_fetcher(fetcher)

        self._transition(CoordinatorState.TERMINATED)
        return abandoned


def _close_fetcher(fetcher: PageFetcher) -> None:
    close = getattr(fetcher, "close", None)
    if callable(close):
        close()


def crawl(
    seed_url: str,
    config: CrawlConfig | None = None,
    *,
    fetcher: PageFetcher | None = None,
    extractor: LinkExtractor | None = None,
    canonicalize: Canonicalizer = normalize_url,
) -> CrawlSummary:
    """Run one crawl session with a freshly constructed coordinator."""

    coordinator = CrawlCoordinator(fetcher, extractor, canonicalize=canonicalize)
    return coordinator.crawl(seed_url, config)


__all__ = ["CrawlCoordinator", "crawl"]
