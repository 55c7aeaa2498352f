from __future__ import annotations

import threading
import time

import pytest

from webcrawl.crawler import FrontierQueue, WorkItem


def test_push_pop_is_fifo():
    frontier = FrontierQueue()
    for idx in range(3):
        assert frontier.push(WorkItem(url=f"u{idx}", depth=0))

    assert [frontier.pop(timeout=0.1).url for _ in range(3)] == ["u0", "u1", "u2"]
    assert frontier.try_pop() is None


def test_pop_times_out_on_empty_queue():
    frontier = FrontierQueue()

    started = time.monotonic()
    assert frontier.pop(timeout=0.05) is None
    assert time.monotonic() - started >= 0.04


def test_outstanding_counts_until_task_done():
    frontier = FrontierQueue()
    frontier.push(WorkItem(url="seed", depth=0))

    item = frontier.pop(timeout=0.1)
    assert item is not None
    assert frontier.empty()
    assert frontier.outstanding() == 1
    assert not frontier.wait_until_drained(timeout=0.01)

    frontier.push(item.child("child"))
    frontier.task_done()
    assert frontier.outstanding() == 1

    frontier.pop(timeout=0.1)
    frontier.task_done()
    assert frontier.outstanding() == 0
    assert frontier.wait_until_drained(timeout=0.01)


def test_task_done_without_push_raises():
    frontier = FrontierQueue()

    with pytest.raises(ValueError):
        frontier.task_done()


def test_wait_until_drained_wakes_on_last_task_done():
    frontier = FrontierQueue()
    frontier.push(WorkItem(url="seed", depth=0))

    def worker() -> None:
        frontier.pop(timeout=1.0)
        time.sleep(0.05)
        frontier.task_done()

    thread = threading.Thread(target=worker)
    thread.start()
    assert frontier.wait_until_drained(timeout=2.0)
    thread.join(1.0)


def test_closed_frontier_rejects_push_and_drains():
    frontier = FrontierQueue()
    frontier.push(WorkItem(url="a", depth=0))
    frontier.push(WorkItem(url="b", depth=1))

    frontier.close()
    assert frontier.closed
    assert not frontier.push(WorkItem(url="c", depth=0))

    leftovers = frontier.drain()
    assert [item.url for item in leftovers] == ["a", "b"]
    assert frontier.qsize() == 0

    snapshot = frontier.snapshot()
    assert snapshot["pushed"] == 2
    assert snapshot["popped"] == 2
    assert snapshot["rejected_closed"] == 1


def test_concurrent_producers_and_consumers_lose_nothing():
    frontier = FrontierQueue()
    producers, per_producer = 4, 50
    seen: list[str] = []
    seen_lock = threading.Lock()

    def produce(pid: int) -> None:
        for idx in range(per_producer):
            frontier.push(WorkItem(url=f"{pid}-{idx}", depth=0))

    def consume() -> None:
        while True:
            item = frontier.pop(timeout=0.2)
            if item is None:
                return
            with seen_lock:
                seen.append(item.url)
            frontier.task_done()

    threads = [threading.Thread(target=produce, args=(pid,)) for pid in range(producers)]
    threads += [threading.Thread(target=consume) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5.0)

    assert len(seen) == producers * per_producer
    assert len(set(seen)) == len(seen)
    assert frontier.outstanding() == 0
