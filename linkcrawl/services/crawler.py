import logging
import threading
from typing import Callable, Optional

from linkcrawl.domain import CrawlerState, CrawlResult
from linkcrawl.domain.visited_tracker import VisitedTracker
from linkcrawl.exceptions import AlreadyRunningError, CrawlerStoppedError, QueueClosedError, StorageError
from linkcrawl.services.flush_controller import FlushController
from linkcrawl.services.lifecycle import CrawlerLifecycle
from linkcrawl.services.url_queue import BoundedQueue
from linkcrawl.services.url_validator import validate_url
from linkcrawl.services.worker_pool import ScrapeWorker, WorkerPool

logger = logging.getLogger(__name__)


class Crawler:
    """Breadth-first crawler: seeds in, visited and pending URLs to storage.

    A crawler runs once. `add_urls` seeds the frontier, `start` blocks until
    the frontier is exhausted or `stop` is called, and the instance is then
    STOPPED for good; build a new one for another run.
    """

    def __init__(
        self,
        scraper,
        sink,
        *,
        crawler_id: int = 0,
        num_workers: int = 10,
        delay_seconds: float = 0.0,
        frontier_capacity: int = 500,
        results_capacity: int = 500,
        flush_interval_seconds: float = 10.0,
        min_unvisited_flush: int = 100,
        min_visited_flush: int = 50,
        frontier_reserve: Optional[int] = None,
        grace_seconds: float = 30.0,
        idle_poll_seconds: float = 0.5,
        dedupe_max_urls: int = 0,
        url_validator: Callable[[str], Optional[str]] = validate_url,
    ):
        if num_workers <= 0:
            raise ValueError("num_workers must be positive")
        self.crawler_id = crawler_id
        self.scraper = scraper
        self.sink = sink
        self.num_workers = num_workers
        self.delay_seconds = delay_seconds
        self.grace_seconds = grace_seconds
        self.idle_poll_seconds = idle_poll_seconds
        self.url_validator = url_validator

        self.frontier: BoundedQueue[str] = BoundedQueue(frontier_capacity)
        self.results: BoundedQueue = BoundedQueue(results_capacity)
        self.lifecycle = CrawlerLifecycle()
        self.visited_tracker = VisitedTracker(max_size=dedupe_max_urls) if dedupe_max_urls > 0 else None

        if frontier_reserve is None:
            frontier_reserve = num_workers * 2
        self.flush_controller = FlushController(
            self.frontier,
            self.results,
            sink,
            interval_seconds=flush_interval_seconds,
            min_unvisited=min_unvisited_flush,
            min_visited=min_visited_flush,
            frontier_reserve=frontier_reserve,
            stop_poll_seconds=idle_poll_seconds,
            is_stopping=self.lifecycle.is_stopped,
            on_error=self._on_storage_error,
        )
        self.pool = WorkerPool(
            [
                ScrapeWorker(
                    i,
                    scraper,
                    self.frontier,
                    self.results,
                    self.lifecycle,
                    delay_seconds=delay_seconds,
                    idle_poll_seconds=idle_poll_seconds,
                    visited_tracker=self.visited_tracker,
                )
                for i in range(num_workers)
            ],
            name_prefix=f"crawler-{crawler_id}-fetcher",
        )
        self._stop_requested = False
        logger.debug("Created Crawler %d with %d fetchers", crawler_id, num_workers)

    @property
    def state(self) -> CrawlerState:
        return self.lifecycle.state

    def add_urls(self, *urls: str) -> int:
        """Validate and enqueue URLs; return how many were enqueued.

        Invalid URLs are logged and skipped. Blocks while the frontier is
        full. Raises CrawlerStoppedError once the crawler is stopped.
        """
        if self.lifecycle.is_stopped():
            raise CrawlerStoppedError(f"crawler {self.crawler_id} is stopped; cannot add URLs")
        added = 0
        for raw in urls:
            url = self.url_validator(raw)
            if url is None:
                logger.debug("Crawler %d: discarding invalid URL %r", self.crawler_id, raw)
                continue
            if self.lifecycle.is_stopped():
                raise CrawlerStoppedError(f"crawler {self.crawler_id} stopped while adding URLs")
            if self.visited_tracker is not None:
                self.visited_tracker.mark(url)
            logger.debug("Adding URL %s to Crawler %d", url, self.crawler_id)
            try:
                self.frontier.put(url)
            except QueueClosedError as e:
                raise CrawlerStoppedError(f"crawler {self.crawler_id} frontier is closed") from e
            added += 1
        return added

    def stop(self) -> bool:
        """Request a graceful stop. Only the first call has any effect.

        Stopping a crawler that never started closes its frontier, which
        releases callers blocked in `add_urls`.
        """
        if self.lifecycle.compare_and_set(CrawlerState.READY, CrawlerState.STOPPED):
            self._stop_requested = True
            logger.info("Crawler %d: stopped before start", self.crawler_id)
            self.frontier.close()
            self.results.close()
            return True
        if not self.lifecycle.stop():
            return False
        self._stop_requested = True
        logger.info("Crawler %d: stop requested", self.crawler_id)
        self.flush_controller.request_flush()
        return True

    def start(self) -> CrawlResult:
        """Run the crawl to completion or until stopped.

        Raises AlreadyRunningError unless the crawler is READY, and re-raises
        the StorageError that aborted the run, if any.
        """
        if not self.lifecycle.compare_and_set(CrawlerState.READY, CrawlerState.RUNNING):
            raise AlreadyRunningError(self.lifecycle.state)

        flush_thread = threading.Thread(
            target=self.flush_controller.run,
            name=f"crawler-{self.crawler_id}-flush",
            daemon=True,
        )
        flush_thread.start()
        self.pool.start()
        logger.info("Crawler %d: %d Fetchers launched. Now waiting for them to exit.", self.crawler_id, self.num_workers)

        try:
            self._wait_for_workers()
            logger.info("Crawler %d: All Fetchers finished. Continuing...", self.crawler_id)
        finally:
            self.lifecycle.stop()
            # Closed before the final flush so nothing is enqueued after it;
            # drain still works on closed queues.
            self.frontier.close()
            self.results.close()
            self.flush_controller.finish()
            flush_thread.join()

        if self.flush_controller.error is not None:
            raise self.flush_controller.error

        result = CrawlResult(
            pages_scraped=self.pool.pages_scraped,
            urls_visited=self.flush_controller.visited_persisted,
            urls_unvisited=self.flush_controller.unvisited_persisted,
            stopped=self._stop_requested,
        )
        logger.info(
            "Crawler %d: finished. %d pages scraped, %d visited and %d unvisited URLs stored",
            self.crawler_id,
            result.pages_scraped,
            result.urls_visited,
            result.urls_unvisited,
        )
        return result

    def _wait_for_workers(self) -> None:
        while not self.pool.join(timeout=self.idle_poll_seconds):
            if not self.lifecycle.is_stopped():
                continue
            if not self.pool.join(timeout=self.grace_seconds):
                logger.warning(
                    "Crawler %d: %d fetchers still busy after %.1fs grace period; draining anyway",
                    self.crawler_id,
                    self.pool.alive_count(),
                    self.grace_seconds,
                )
            return

    def _on_storage_error(self, error: StorageError) -> None:
        logger.critical("Crawler %d: storage failed, aborting crawl: %s", self.crawler_id, error)
        self.lifecycle.stop()
        # Release workers blocked on full queues; nothing else will drain them.
        self.frontier.close()
        self.results.close()
