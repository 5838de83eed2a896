import logging
import queue
import threading
import time
from typing import List, Optional, Sequence

from linkcrawl.domain import ScrapeResult
from linkcrawl.domain.visited_tracker import VisitedTracker
from linkcrawl.exceptions import FetchError, QueueClosedError
from linkcrawl.services.lifecycle import CrawlerLifecycle
from linkcrawl.services.url_queue import BoundedQueue

logger = logging.getLogger(__name__)


class ScrapeWorker:
    """One fetch loop: frontier URL in, new URLs and a ScrapeResult out.

    Workers share nothing but the two queues and the lifecycle. They stop at
    an iteration boundary once the crawler is stopped, when the frontier is
    closed, or when the frontier runs dry with no task left unfinished.
    """

    def __init__(
        self,
        worker_id: int,
        scraper,
        frontier: BoundedQueue,
        results: BoundedQueue,
        lifecycle: CrawlerLifecycle,
        *,
        delay_seconds: float = 0.0,
        idle_poll_seconds: float = 0.5,
        visited_tracker: Optional[VisitedTracker] = None,
    ):
        self.worker_id = worker_id
        self.scraper = scraper
        self.frontier = frontier
        self.results = results
        self.lifecycle = lifecycle
        self.delay_seconds = delay_seconds
        self.idle_poll_seconds = idle_poll_seconds
        self.visited_tracker = visited_tracker
        self.pages_scraped = 0
        self.fetch_errors = 0

    def run(self) -> None:
        logger.debug("Fetcher %d: started", self.worker_id)
        while True:
            if self.delay_seconds > 0:
                self.lifecycle.wait_stopped(self.delay_seconds)
            if self.lifecycle.is_stopped():
                logger.info("Fetcher %d: crawler stopped. Leaving...", self.worker_id)
                return

            try:
                url = self.frontier.get(timeout=self.idle_poll_seconds)
            except queue.Empty:
                if self.frontier.unfinished_tasks == 0:
                    logger.info("Fetcher %d: frontier exhausted. Leaving...", self.worker_id)
                    # STOPPED first, so add_urls never sees a closed frontier on a running crawler.
                    self.lifecycle.stop()
                    self.frontier.close()
                    return
                continue
            except QueueClosedError:
                logger.info("Fetcher %d: frontier closed. Leaving...", self.worker_id)
                return

            try:
                self.process(url)
            except QueueClosedError:
                logger.warning("Fetcher %d: queues closed while handing off results of %s", self.worker_id, url)
                return
            finally:
                self.frontier.task_done()

    def process(self, url: str) -> Optional[ScrapeResult]:
        """Scrape `url` and hand its links and result to the queues.

        Returns the ScrapeResult, or None when the page could not be scraped.
        """
        logger.info("Fetcher %d: Scraping Page %s", self.worker_id, url)
        try:
            result = self.scraper.scrape(url)
        except FetchError as e:
            self.fetch_errors += 1
            logger.warning("Fetcher %d: URL %s failed with %s: %s", self.worker_id, url, type(e).__name__, e)
            return None
        except Exception as e:
            self.fetch_errors += 1
            logger.error("Fetcher %d: unexpected error scraping %s: %s", self.worker_id, url, e, exc_info=True)
            return None

        self.pages_scraped += 1
        logger.info("Fetcher %d: Found %d URLs on %s", self.worker_id, len(result.discovered_links), url)

        for link in result.discovered_links:
            if self.visited_tracker is not None and self.visited_tracker.check_and_mark(link):
                logger.debug("Skipping (seen) %s", link)
                continue
            self.frontier.put(link)

        self.results.put(result)
        return result


class WorkerPool:
    """Runs a fixed set of ScrapeWorkers on their own threads."""

    def __init__(self, workers: Sequence[ScrapeWorker], *, name_prefix: str = "linkcrawl-fetcher"):
        self.workers = list(workers)
        self.name_prefix = name_prefix
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("worker pool already started")
        for worker in self.workers:
            thread = threading.Thread(
                target=worker.run,
                name=f"{self.name_prefix}-{worker.worker_id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for every worker thread; return True if all of them exited."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            if deadline is None:
                thread.join()
            else:
                thread.join(max(0.0, deadline - time.monotonic()))
        return self.alive_count() == 0

    def alive_count(self) -> int:
        return sum(1 for t in self._threads if t.is_alive())

    @property
    def pages_scraped(self) -> int:
        return sum(w.pages_scraped for w in self.workers)

    @property
    def fetch_errors(self) -> int:
        return sum(w.fetch_errors for w in self.workers)
