import threading
from collections import OrderedDict
from typing import Optional


class VisitedTracker:
    """
    Remembers which URLs a crawl has already scheduled.

    Shared by every worker, so all access goes through a lock. Memory is
    bounded by evicting the least-recently-seen URL once `max_size` is
    exceeded, which means an evicted URL can be scheduled again.
    """

    def __init__(self, max_size: Optional[int] = 100_000):
        """Create a visited tracker.

        If `max_size` is None or <= 0, the tracker behaves as unbounded.
        """
        self._max_size = int(max_size) if max_size is not None else None
        if self._max_size is not None and self._max_size <= 0:
            self._max_size = None

        self._lock = threading.Lock()
        # OrderedDict gives us a lightweight LRU-like set.
        self._visited: "OrderedDict[str, None]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)

    def mark(self, url: str) -> None:
        """Mark a URL as visited."""
        with self._lock:
            self._mark(url)

    def is_visited(self, url: str) -> bool:
        """Check if a URL has been visited."""
        with self._lock:
            if url in self._visited:
                self._visited.move_to_end(url)
                return True
            return False

    def check_and_mark(self, url: str) -> bool:
        """Mark `url` and return True if it had already been seen."""
        with self._lock:
            seen = url in self._visited
            self._mark(url)
            return seen

    def _mark(self, url: str) -> None:
        if url in self._visited:
            self._visited.move_to_end(url)
            return
        self._visited[url] = None
        if self._max_size is not None:
            while len(self._visited) > self._max_size:
                self._visited.popitem(last=False)
