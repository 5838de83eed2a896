import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from linkcrawl.domain import UrlRecord
from linkcrawl.exceptions import StorageError
from linkcrawl.services.url_queue import BoundedQueue

logger = logging.getLogger(__name__)


class FlushState(Enum):
    IDLE = "idle"
    FLUSHING = "flushing"
    DONE = "done"


class FlushController:
    """Periodically moves queued URLs from memory into the storage sink.

    Every `interval_seconds` the controller measures both queues. When either
    depth reaches its threshold, it drains the results (stored as visited)
    and the frontier (stored as unvisited, keeping `frontier_reserve` URLs
    for the workers) and persists them in a single `sink.persist()` call.

    While the crawler is stopping, every pass is forced and runs every
    `stop_poll_seconds`, so workers blocked on a full queue can finish.
    After `finish()` one last forced flush empties both queues.

    A StorageError ends the controller: it is kept in `error`, handed to
    `on_error`, and nothing more is flushed.
    """

    def __init__(
        self,
        frontier: BoundedQueue,
        results: BoundedQueue,
        sink,
        *,
        interval_seconds: float = 10.0,
        min_unvisited: int = 100,
        min_visited: int = 50,
        frontier_reserve: int = 0,
        stop_poll_seconds: float = 0.5,
        is_stopping: Optional[Callable[[], bool]] = None,
        on_error: Optional[Callable[[StorageError], None]] = None,
    ):
        self.frontier = frontier
        self.results = results
        self.sink = sink
        self.interval_seconds = interval_seconds
        self.min_unvisited = min_unvisited
        self.min_visited = min_visited
        self.frontier_reserve = max(0, frontier_reserve)
        self.stop_poll_seconds = stop_poll_seconds
        self._is_stopping = is_stopping or (lambda: False)
        self._on_error = on_error

        self._wake = threading.Event()
        self._finished = threading.Event()
        self.state = FlushState.IDLE
        self.error: Optional[StorageError] = None
        self.visited_persisted = 0
        self.unvisited_persisted = 0
        self.flush_count = 0

    def request_flush(self) -> None:
        """Wake the controller before the interval elapses."""
        self._wake.set()

    def finish(self) -> None:
        """Ask for the final flush; `run()` returns after it."""
        self._finished.set()
        self._wake.set()

    def run(self) -> None:
        try:
            while not self._finished.is_set():
                timeout = self.stop_poll_seconds if self._is_stopping() else self.interval_seconds
                self._wake.wait(timeout)
                self._wake.clear()
                if self._finished.is_set():
                    break
                self.flush(force=self._is_stopping())
            logger.info("Performing final flush")
            self.flush(force=True)
        except StorageError as e:
            self.error = e
            logger.error("Error while storing queued URLs: %s", e)
            if self._on_error is not None:
                self._on_error(e)
        finally:
            self.state = FlushState.DONE

    def flush(self, force: bool = False) -> int:
        """Drain both queues into the sink; return the number of rows persisted.

        Unless `force` is set, nothing happens below the thresholds and the
        frontier keeps its reserve. Empty drains never reach the sink.
        """
        if self.state is FlushState.DONE:
            return 0
        # Depths are approximate; drains take at most what was measured.
        num_unvisited = len(self.frontier)
        num_visited = len(self.results)
        if not force and num_unvisited < self._unvisited_threshold() and num_visited < self._visited_threshold():
            logger.debug("Skipping flush: %d unvisited, %d visited queued", num_unvisited, num_visited)
            return 0

        self.state = FlushState.FLUSHING
        reserve = 0 if force else self._reserve()
        visited = [r.source_url for r in self.results.drain(num_visited)]
        unvisited = self.frontier.drain(max(0, num_unvisited - reserve))
        if not visited and not unvisited:
            self.state = FlushState.IDLE
            return 0

        logger.info("Storing queued: %d unvisited URLs and %d visited URLs...", len(unvisited), len(visited))
        records: List[UrlRecord] = [UrlRecord(url=u, visited=True) for u in visited]
        records.extend(UrlRecord(url=u, visited=False) for u in unvisited)
        persisted = self.sink.persist(records)

        self.visited_persisted += len(visited)
        self.unvisited_persisted += len(unvisited)
        self.flush_count += 1
        self.state = FlushState.IDLE
        return persisted

    # A full queue always counts as over threshold, and the reserve never
    # takes more than half the frontier; otherwise blocked workers stall.
    def _unvisited_threshold(self) -> int:
        return min(self.min_unvisited, self.frontier.maxsize)

    def _visited_threshold(self) -> int:
        return min(self.min_visited, self.results.maxsize)

    def _reserve(self) -> int:
        return min(self.frontier_reserve, self.frontier.maxsize // 2)
