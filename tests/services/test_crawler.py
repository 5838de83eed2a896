import threading
import time
from unittest.mock import MagicMock

import pytest

from linkcrawl.domain import CrawlerState, ScrapeResult, UrlRecord
from linkcrawl.exceptions import AlreadyRunningError, CrawlerStoppedError, HttpFetchError, StorageError
from linkcrawl.services.crawler import Crawler


class RecordingSink:
    def __init__(self):
        self._lock = threading.Lock()
        self.records = []
        self.calls = 0

    def persist(self, records):
        with self._lock:
            self.calls += 1
            self.records.extend(records)
        return len(records)

    def urls(self, visited):
        return [r.url for r in self.records if r.visited is visited]


class GraphScraper:
    """Serves a fixed link graph; unknown URLs fail like unreachable hosts."""

    def __init__(self, graph):
        self.graph = graph
        self._lock = threading.Lock()
        self.calls = []

    def scrape(self, url):
        with self._lock:
            self.calls.append(url)
        if url not in self.graph:
            raise HttpFetchError(url, ConnectionError("unreachable"))
        return ScrapeResult(url, tuple(self.graph[url]))


class EndlessScraper:
    """Every page links to two new pages."""

    def __init__(self):
        self._lock = threading.Lock()
        self.calls = 0

    def scrape(self, url):
        with self._lock:
            self.calls += 1
        return ScrapeResult(url, (url.rstrip("/") + "/l/", url.rstrip("/") + "/r/"))


def _crawler(scraper, sink, **kwargs):
    kwargs.setdefault("num_workers", 3)
    kwargs.setdefault("idle_poll_seconds", 0.01)
    kwargs.setdefault("grace_seconds", 2.0)
    return Crawler(scraper, sink, **kwargs)


def _start_in_thread(crawler):
    outcome = {}

    def target():
        try:
            outcome["result"] = crawler.start()
        except Exception as e:
            outcome["error"] = e

    t = threading.Thread(target=target, daemon=True)
    t.start()
    return t, outcome


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_new_crawler_is_ready():
    crawler = _crawler(MagicMock(), RecordingSink())
    assert crawler.state is CrawlerState.READY


def test_add_urls_discards_invalid_urls():
    crawler = _crawler(MagicMock(), RecordingSink())

    added = crawler.add_urls("https://a.test/", "relative/path", "ftp://x.test/", "http://b.test/")

    assert added == 2
    assert crawler.frontier.drain(10) == ["https://a.test/", "http://b.test/"]


def test_add_urls_after_stop_fails_and_enqueues_nothing():
    crawler = _crawler(MagicMock(), RecordingSink())
    crawler.stop()

    with pytest.raises(CrawlerStoppedError):
        crawler.add_urls("https://a.test/")
    assert len(crawler.frontier) == 0


def test_start_after_stop_is_rejected():
    crawler = _crawler(MagicMock(), RecordingSink())
    assert crawler.stop()
    assert not crawler.stop()

    with pytest.raises(AlreadyRunningError):
        crawler.start()
    assert crawler.state is CrawlerState.STOPPED


def test_crawl_runs_until_frontier_is_exhausted():
    graph = {
        "https://a.test/": ["https://b.test/", "https://c.test/"],
        "https://b.test/": ["https://d.test/"],
        "https://c.test/": [],
        "https://d.test/": [],
    }
    sink = RecordingSink()
    crawler = _crawler(GraphScraper(graph), sink)
    crawler.add_urls("https://a.test/")

    result = crawler.start()

    assert crawler.state is CrawlerState.STOPPED
    assert result.pages_scraped == 4
    assert result.stopped is False
    assert result.urls_visited == 4
    assert sorted(sink.urls(True)) == sorted(graph)
    assert sink.urls(False) == []


def test_start_twice_is_rejected():
    sink = RecordingSink()
    crawler = _crawler(GraphScraper({"https://a.test/": []}), sink)
    crawler.add_urls("https://a.test/")
    crawler.start()

    with pytest.raises(AlreadyRunningError):
        crawler.start()


def test_crawl_with_no_seeds_finishes_without_storing():
    sink = MagicMock()
    crawler = _crawler(MagicMock(), sink)

    result = crawler.start()

    assert result.pages_scraped == 0
    sink.persist.assert_not_called()
    assert crawler.state is CrawlerState.STOPPED


def test_fetch_errors_do_not_stall_the_pool():
    graph = {
        "https://a.test/": ["https://down.test/", "https://b.test/", "https://gone.test/"],
        "https://b.test/": [],
    }
    scraper = GraphScraper(graph)
    sink = RecordingSink()
    crawler = _crawler(scraper, sink, num_workers=2)
    crawler.add_urls("https://a.test/")

    result = crawler.start()

    assert result.pages_scraped == 2
    assert sorted(sink.urls(True)) == ["https://a.test/", "https://b.test/"]
    assert sorted(scraper.calls) == sorted(["https://a.test/", "https://down.test/", "https://b.test/", "https://gone.test/"])


def test_concurrent_stop_ends_running_crawl_and_flushes_everything():
    scraper = EndlessScraper()
    sink = RecordingSink()
    crawler = _crawler(
        scraper,
        sink,
        num_workers=4,
        frontier_capacity=5,
        results_capacity=5,
        flush_interval_seconds=60,
    )
    crawler.add_urls("https://root.test/")
    t, outcome = _start_in_thread(crawler)
    assert _wait_for(lambda: scraper.calls >= 3)
    assert crawler.state is CrawlerState.RUNNING

    barrier = threading.Barrier(8)
    stops = []
    lock = threading.Lock()

    def stopper():
        barrier.wait()
        won = crawler.stop()
        with lock:
            stops.append(won)

    stoppers = [threading.Thread(target=stopper) for _ in range(8)]
    for s in stoppers:
        s.start()
    for s in stoppers:
        s.join(2)
    t.join(10)

    assert not t.is_alive()
    assert stops.count(True) == 1
    assert crawler.state is CrawlerState.STOPPED
    result = outcome["result"]
    assert result.stopped is True
    # Every scraped page reached storage as visited, nothing is left in memory.
    assert result.urls_visited == result.pages_scraped
    assert len(sink.urls(True)) == result.pages_scraped
    assert len(crawler.frontier) == 0
    assert len(crawler.results) == 0
    with pytest.raises(CrawlerStoppedError):
        crawler.add_urls("https://late.test/")


def test_storage_failure_stops_the_crawl():
    scraper = EndlessScraper()
    sink = MagicMock()
    sink.persist.side_effect = StorageError(RuntimeError("db down"), rows=1)
    crawler = _crawler(
        scraper,
        sink,
        flush_interval_seconds=0.05,
        min_unvisited_flush=1,
        min_visited_flush=1,
    )
    crawler.add_urls("https://root.test/")
    t, outcome = _start_in_thread(crawler)

    t.join(10)

    assert not t.is_alive()
    assert isinstance(outcome.get("error"), StorageError)
    assert crawler.state is CrawlerState.STOPPED
    assert crawler.pool.alive_count() == 0
    calls = scraper.calls
    time.sleep(0.1)
    assert scraper.calls == calls
    assert sink.persist.call_count == 1


def test_dedupe_tracker_breaks_link_cycles():
    graph = {
        "https://a.test/": ["https://b.test/", "https://a.test/"],
        "https://b.test/": ["https://a.test/"],
    }
    scraper = GraphScraper(graph)
    sink = RecordingSink()
    crawler = _crawler(scraper, sink, dedupe_max_urls=100)
    crawler.add_urls("https://a.test/")

    result = crawler.start()

    assert result.pages_scraped == 2
    assert sorted(scraper.calls) == ["https://a.test/", "https://b.test/"]


def test_flush_persists_pending_urls_as_unvisited():
    graph = {"https://a.test/": [f"https://a.test/{i}" for i in range(10)]}
    scraper = GraphScraper(graph)
    sink = RecordingSink()
    crawler = _crawler(scraper, sink, num_workers=1, frontier_reserve=0)
    crawler.add_urls("https://a.test/")
    # Scrape the seed without starting the pool, then flush by hand.
    crawler.pool.workers[0].process(crawler.frontier.get())
    crawler.frontier.task_done()

    crawler.flush_controller.flush(force=True)

    assert sink.records[0] == UrlRecord("https://a.test/", True)
    assert sink.urls(False) == [f"https://a.test/{i}" for i in range(10)]


def _run_until(crawler, predicate, timeout=5.0):
    """Start the crawler, wait for `predicate`, then stop it and return the outcome."""
    t, outcome = _start_in_thread(crawler)
    try:
        reached = _wait_for(predicate, timeout)
    finally:
        crawler.stop()
        t.join(10)
    assert not t.is_alive()
    return reached, outcome


def test_crawl_keeps_flushing_when_capacities_are_below_thresholds():
    scraper = EndlessScraper()
    sink = RecordingSink()
    crawler = _crawler(
        scraper,
        sink,
        num_workers=2,
        frontier_capacity=20,
        results_capacity=20,
        flush_interval_seconds=0.02,
        min_unvisited_flush=100,
        min_visited_flush=50,
    )
    crawler.add_urls("https://root.test/")

    reached, outcome = _run_until(crawler, lambda: sink.calls >= 3 and scraper.calls > 100)

    assert reached
    assert outcome["result"].stopped is True


def test_crawl_keeps_flushing_when_reserve_covers_the_frontier():
    scraper = EndlessScraper()
    sink = RecordingSink()
    # The default reserve (2 x workers) equals the frontier capacity here.
    crawler = _crawler(
        scraper,
        sink,
        num_workers=4,
        frontier_capacity=8,
        flush_interval_seconds=0.02,
    )
    crawler.add_urls("https://root.test/")

    reached, _ = _run_until(crawler, lambda: scraper.calls > 100 and len(sink.urls(False)) > 0)

    assert reached


def test_stop_releases_add_urls_blocked_before_start():
    crawler = _crawler(MagicMock(), RecordingSink(), frontier_capacity=1)
    outcome = {}

    def seed():
        try:
            outcome["added"] = crawler.add_urls("https://a.test/", "https://b.test/")
        except CrawlerStoppedError as e:
            outcome["error"] = e

    t = threading.Thread(target=seed, daemon=True)
    t.start()
    assert _wait_for(lambda: len(crawler.frontier) == 1)
    time.sleep(0.05)
    assert t.is_alive()

    assert crawler.stop()
    t.join(2)

    assert not t.is_alive()
    assert isinstance(outcome.get("error"), CrawlerStoppedError)
    assert crawler.state is CrawlerState.STOPPED


def test_queues_are_closed_before_the_final_flush():
    crawler = _crawler(GraphScraper({"https://a.test/": []}), RecordingSink())
    crawler.add_urls("https://a.test/")
    closed_at_finish = []
    original_finish = crawler.flush_controller.finish

    def finish():
        closed_at_finish.append((crawler.frontier.closed, crawler.results.closed))
        original_finish()

    crawler.flush_controller.finish = finish

    crawler.start()

    assert closed_at_finish == [(True, True)]
