from __future__ import annotations

import queue
import threading
import time
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

from linkcrawl.exceptions import QueueClosedError

T = TypeVar("T")


class BoundedQueue(Generic[T]):
    """Thread-safe, capacity-bounded FIFO with a terminal closed state.

    Used for both the URL frontier and the scrape result queue. `put` blocks
    while the queue is full and `get` blocks while it is empty. Once closed,
    producers fail immediately and consumers receive the remaining items
    before getting `QueueClosedError`.

    Like `queue.Queue`, the queue counts unfinished tasks: every `put` adds
    one, `task_done` and `drain` remove them. Workers call `task_done` only
    after enqueueing the children of a URL, so zero unfinished tasks means no
    more work can appear.
    """

    def __init__(self, maxsize: int):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._maxsize = int(maxsize)
        self._items: Deque[T] = deque()
        self._closed = False
        self._unfinished = 0
        self._mutex = threading.Lock()
        self._not_empty = threading.Condition(self._mutex)
        self._not_full = threading.Condition(self._mutex)

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def unfinished_tasks(self) -> int:
        with self._mutex:
            return self._unfinished

    def qsize(self) -> int:
        """Approximate depth; may change as soon as the lock is released."""
        with self._mutex:
            return len(self._items)

    def __len__(self) -> int:
        return self.qsize()

    def put(self, item: T, timeout: Optional[float] = None) -> None:
        with self._not_full:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._closed and len(self._items) >= self._maxsize:
                if deadline is None:
                    self._not_full.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise queue.Full
                self._not_full.wait(remaining)
            if self._closed:
                raise QueueClosedError("put on closed queue")
            self._items.append(item)
            self._unfinished += 1
            self._not_empty.notify()

    def get(self, timeout: Optional[float] = None) -> T:
        with self._not_empty:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._items:
                if self._closed:
                    raise QueueClosedError("queue closed and empty")
                if deadline is None:
                    self._not_empty.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise queue.Empty
                self._not_empty.wait(remaining)
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def drain(self, max_items: int) -> List[T]:
        """Remove up to `max_items` items without blocking.

        Drained items count as finished; they leave memory for storage.
        """
        with self._mutex:
            count = min(max(max_items, 0), len(self._items))
            batch = [self._items.popleft() for _ in range(count)]
            if batch:
                self._unfinished -= len(batch)
                self._not_full.notify_all()
            return batch

    def task_done(self) -> None:
        with self._mutex:
            if self._unfinished <= 0:
                raise ValueError("task_done() called too many times")
            self._unfinished -= 1

    def close(self) -> None:
        with self._mutex:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()
