"""Crawl result data model."""
from typing import NamedTuple


class CrawlResult(NamedTuple):
    """Summary returned by `Crawler.start()` once the run is over."""

    pages_scraped: int
    """Number of pages successfully fetched and parsed"""

    urls_visited: int
    """Visited URL rows persisted during the run"""

    urls_unvisited: int
    """Pending URL rows persisted during the run"""

    stopped: bool
    """True if the run ended through stop(), False if the frontier ran dry"""
