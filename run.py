#!/usr/bin/env python3
"""
Command line entry point for linkcrawl.
"""
import argparse
import logging
import signal
import sys
from typing import List, Optional

from linkcrawl.container import Container
from linkcrawl.db.engine import init_orm
from linkcrawl.exceptions import CrawlerStoppedError, StorageError
from linkcrawl.seeds import load_seed_urls

logger = logging.getLogger("linkcrawl")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # Set third-party library log levels
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Breadth-first web crawler that stores visited and pending URLs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py https://example.com/                  # Crawl from one seed
  python run.py --seeds-file seeds.yaml --workers 20  # Seeds from a YAML file
  python run.py --init-db --delay 1 https://example.com/
        """,
    )
    parser.add_argument("seeds", nargs="*", help="Seed URLs to start crawling from")
    parser.add_argument("--seeds-file", help="YAML file with a list of seed URLs")
    parser.add_argument("--workers", type=int, help="Number of concurrent fetchers (env: LINKCRAWL_WORKERS)")
    parser.add_argument("--delay", type=float, help="Seconds each fetcher waits between pages (env: CRAWL_DELAY)")
    parser.add_argument("--database-url", help="SQLAlchemy database URL (env: DATABASE_URL)")
    parser.add_argument("--flush-interval", type=float, help="Seconds between flushes to storage (env: LINKCRAWL_FLUSH_INTERVAL)")
    parser.add_argument("--frontier-capacity", type=int, help="Max queued unvisited URLs (env: LINKCRAWL_FRONTIER_CAPACITY)")
    parser.add_argument("--results-capacity", type=int, help="Max queued scrape results (env: LINKCRAWL_RESULTS_CAPACITY)")
    parser.add_argument("--dedupe-max-urls", type=int, help="Skip URLs seen recently, remembering up to N (env: LINKCRAWL_DEDUPE_MAX_URLS)")
    parser.add_argument("--init-db", action="store_true", help="Create the urls table before crawling")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


_OVERRIDES = {
    "workers": "LINKCRAWL_WORKERS",
    "delay": "CRAWL_DELAY",
    "database_url": "DATABASE_URL",
    "flush_interval": "LINKCRAWL_FLUSH_INTERVAL",
    "frontier_capacity": "LINKCRAWL_FRONTIER_CAPACITY",
    "results_capacity": "LINKCRAWL_RESULTS_CAPACITY",
    "dedupe_max_urls": "LINKCRAWL_DEDUPE_MAX_URLS",
}


def apply_overrides(container: Container, args: argparse.Namespace) -> None:
    for arg_name, key in _OVERRIDES.items():
        value = getattr(args, arg_name)
        if value is not None:
            getattr(container.config, key).from_value(value)


def main(argv: Optional[List[str]] = None, container: Optional[Container] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    container = container or Container()
    apply_overrides(container, args)

    seeds = list(args.seeds)
    if args.seeds_file:
        seeds.extend(load_seed_urls(args.seeds_file))
    if not seeds:
        logger.error("No seed URLs given")
        return 2

    if args.init_db:
        init_orm(container.db_engine())

    crawler = container.crawler()

    def signal_handler(signum, frame):
        logger.info("Received signal %s, initiating shutdown...", signum)
        crawler.stop()

    previous = {sig: signal.signal(sig, signal_handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        added = crawler.add_urls(*seeds)
        if added == 0:
            logger.error("None of the %d seed URLs is a crawlable http(s) URL", len(seeds))
            return 2
        logger.info("Crawling from %d seed URLs", added)
        result = crawler.start()
    except CrawlerStoppedError:
        logger.info("Stopped before the crawl started")
        return 0
    except StorageError as e:
        logger.critical("Crawl aborted, could not store URLs: %s", e)
        return 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    logger.info(
        "Done: %d pages scraped, %d visited and %d unvisited URLs stored%s",
        result.pages_scraped,
        result.urls_visited,
        result.urls_unvisited,
        " (stopped)" if result.stopped else "",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
