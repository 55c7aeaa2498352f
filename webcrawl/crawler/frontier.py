"""Thread-safe FIFO frontier with outstanding-work accounting."""

from __future__ import annotations

import queue
import threading
import time

from .types import WorkItem


class FrontierQueue:
    """Frontier queue shared by producer/consumer crawl workers.

    - `push` never blocks and never fails while the queue is open.
    - `pop` blocks up to a timeout; `try_pop` never blocks.
    - Every pushed item stays *outstanding* until `task_done()` is called for
      it. Workers push discovered children before marking their own item done,
      so zero outstanding work means the queue is empty, no worker is mid-item,
      and nothing can be pushed any more.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[WorkItem] = queue.SimpleQueue()

        self._lock = threading.Lock()
        self._drained = threading.Condition(self._lock)
        self._outstanding = 0
        self._closed = False

        self._pushed_count = 0
        self._popped_count = 0
        self._rejected_closed_count = 0

    def push(self, item: WorkItem) -> bool:
        """Enqueue one item. Returns False only when the queue has been closed."""

        with self._lock:
            if self._closed:
                self._rejected_closed_count += 1
                return False
            self._outstanding += 1
            self._pushed_count += 1
            # Put under the lock so `close()` cannot interleave between the
            # closed check and the enqueue.
            self._queue.put(item)
        return True

    def pop(self, timeout: float | None = None) -> WorkItem | None:
        """Pop one item, waiting up to `timeout` seconds. `None` on timeout."""

        try:
            item = self._queue.get(block=True, timeout=timeout)
        except queue.Empty:
            return None
        self._count_pop()
        return item

    def try_pop(self) -> WorkItem | None:
        """Pop one item if immediately available."""

        try:
            item = self._queue.get(block=False)
        except queue.Empty:
            return None
        self._count_pop()
        return item

    def _count_pop(self) -> None:
        with self._lock:
            self._popped_count += 1

    def task_done(self) -> None:
        """Mark one popped item as fully processed."""

        with self._drained:
            if self._outstanding <= 0:
                raise ValueError("task_done() called more times than items were pushed")
            self._outstanding -= 1
            if self._outstanding == 0:
                self._drained.notify_all()

    def outstanding(self) -> int:
        """Items pushed but not yet marked done (queued or in progress)."""

        with self._lock:
            return self._outstanding

    def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Block until no outstanding work remains. Returns False on timeout."""

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._drained:
            while self._outstanding > 0:
                if deadline is None:
                    self._drained.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._drained.wait(remaining)
            return True

    def close(self) -> None:
        """Reject all further pushes."""

        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def drain(self) -> list[WorkItem]:
        """Remove and return every queued item without processing it."""

        leftovers: list[WorkItem] = []
        while True:
            item = self.try_pop()
            if item is None:
                return leftovers
            leftovers.append(item)

    def qsize(self) -> int:
        """Approximate number of queued (not yet popped) items."""

        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs and summaries."""

        with self._lock:
            return {
                "closed": self._closed,
                "queue_size": self._queue.qsize(),
                "outstanding": self._outstanding,
                "pushed": self._pushed_count,
                "popped": self._popped_count,
                "rejected_closed": self._rejected_closed_count,
            }


__all__ = ["FrontierQueue"]
