from __future__ import annotations

import time

import pytest

from webcrawl.crawler import FrontierQueue, StatsCollector, VisitedRegistry, WorkerPool, WorkItem

from tests.helpers import GraphExtractor, GraphFetcher, complete_graph, fast_config, identity_url


class CheckedFrontier(FrontierQueue):
    """Frontier that records any push of a URL the registry has not claimed."""

    def __init__(self, registry: VisitedRegistry) -> None:
        super().__init__()
        self.registry = registry
        self.unregistered: list[str] = []

    def push(self, item: WorkItem) -> bool:
        if item.url not in self.registry:
            self.unregistered.append(item.url)
        return super().push(item)


def make_pool(graph, frontier=None, registry=None, **config):
    registry = registry if registry is not None else VisitedRegistry()
    frontier = frontier if frontier is not None else FrontierQueue()
    stats = StatsCollector()
    pool = WorkerPool(
        frontier=frontier,
        registry=registry,
        fetcher=GraphFetcher(graph),
        extractor=GraphExtractor(graph),
        config=fast_config(**config),
        stats=stats,
        canonicalize=identity_url,
    )
    return pool, frontier, registry, stats


def seed_and_run(pool, frontier, registry, seed):
    registry.try_mark(seed)
    frontier.push(WorkItem(url=seed, depth=0))
    pool.start()
    assert frontier.wait_until_drained(timeout=5.0)
    pool.request_stop()
    return pool.join(timeout=1.0)


def test_every_pushed_url_is_registered_first():
    graph = complete_graph(25)
    registry = VisitedRegistry()
    frontier = CheckedFrontier(registry)
    pool, _, _, stats = make_pool(graph, frontier=frontier, registry=registry, worker_count=6, max_depth=2)

    still_running = seed_and_run(pool, frontier, registry, "p0")

    assert still_running == []
    assert frontier.unregistered == []
    assert len(registry) == 25
    assert stats.snapshot()["enqueued"] == 24
    assert pool.acknowledged_count() == 6
    assert pool.active_count() == 0


def test_items_beyond_max_depth_are_discarded():
    pool, frontier, registry, stats = make_pool({"deep": ["x"]}, max_depth=1)
    registry.try_mark("deep")
    frontier.push(WorkItem(url="deep", depth=2))

    pool.start()
    assert frontier.wait_until_drained(timeout=5.0)
    pool.request_stop()
    pool.join(timeout=1.0)

    assert stats.snapshot()["skipped_depth"] == 1
    assert stats.snapshot()["visited"] == 0
    assert pool.fetcher.calls == {}


def test_pool_starts_once():
    pool, frontier, registry, _ = make_pool({"A": []})
    seed_and_run(pool, frontier, registry, "A")

    with pytest.raises(RuntimeError):
        pool.start()


def test_idle_and_active_counts():
    pool, _, _, _ = make_pool({}, worker_count=3)

    pool.start()
    deadline = time.monotonic() + 2.0
    while pool.idle_count() < 3 and time.monotonic() < deadline:
        time.sleep(0.01)

    assert pool.idle_count() == 3
    assert pool.active_count() == 0

    pool.request_stop()
    assert pool.join(timeout=1.0) == []
    assert pool.idle_count() == 0
