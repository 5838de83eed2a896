"""Dependency injection container for the application."""
from dependency_injector import containers, providers
import requests
from sqlalchemy.orm import sessionmaker

from linkcrawl import config as env
from linkcrawl.db.engine import make_engine
from linkcrawl.repository.urls import UrlsRepository
from linkcrawl.services.crawler import Crawler
from linkcrawl.services.http_service import HttpService
from linkcrawl.services.link_extractor import LinkExtractor
from linkcrawl.services.scraper import Scraper


# Environment variables used by the container (read via `linkcrawl.config` helpers).
#
# Notes:
# - Types are enforced by the helper used (`get_int_env`, `get_float_env`, etc.).
# - Defaults shown here are the effective defaults used when the env var is unset.
# - CLI flags in `run.py` override these through `container.config`.
#
# DATABASE_URL (str | optional)
#   SQLAlchemy connection string, e.g. postgresql+psycopg2://user:pw@host/db.
#
# USER_AGENT (str, default: "linkcrawl/0.1")
#   User-Agent header for outbound HTTP requests.
#
# HTTP_TIMEOUT (int seconds, default: 30)
#   Timeout for outbound HTTP requests; also bounds how long a stop waits on a fetch.
#
# CRAWL_DELAY (float seconds, default: 0.0)
#   Delay each fetcher waits before every iteration.
#
# LINKCRAWL_WORKERS (int, default: 10)
#   Number of concurrent fetchers.
#
# LINKCRAWL_FRONTIER_CAPACITY / LINKCRAWL_RESULTS_CAPACITY (int, default: 500)
#   Bounds of the in-memory queues; producers block when they are full.
#
# LINKCRAWL_FLUSH_INTERVAL (float seconds, default: 10.0)
#   How often queued URLs are considered for storage.
#
# LINKCRAWL_FLUSH_MIN_UNVISITED (int, default: 100)
# LINKCRAWL_FLUSH_MIN_VISITED (int, default: 50)
#   Queue depths that trigger a regular flush.
#
# LINKCRAWL_GRACE_SECONDS (float seconds, default: 30.0)
#   How long a stop waits for in-flight fetches before the final flush.
#
# LINKCRAWL_DEDUPE_MAX_URLS (int, default: 0)
#   When > 0, skip re-enqueueing URLs seen recently (LRU bounded to this many).
ENV = {
    "DATABASE_URL": env.get_optional_str_env("DATABASE_URL"),
    "USER_AGENT": env.get_str_env("USER_AGENT", "linkcrawl/0.1"),
    "HTTP_TIMEOUT": env.get_int_env("HTTP_TIMEOUT", 30),
    "CRAWL_DELAY": env.get_float_env("CRAWL_DELAY", 0.0),
    "LINKCRAWL_WORKERS": env.get_int_env("LINKCRAWL_WORKERS", 10),
    "LINKCRAWL_FRONTIER_CAPACITY": env.get_int_env("LINKCRAWL_FRONTIER_CAPACITY", 500),
    "LINKCRAWL_RESULTS_CAPACITY": env.get_int_env("LINKCRAWL_RESULTS_CAPACITY", 500),
    "LINKCRAWL_FLUSH_INTERVAL": env.get_float_env("LINKCRAWL_FLUSH_INTERVAL", 10.0),
    "LINKCRAWL_FLUSH_MIN_UNVISITED": env.get_int_env("LINKCRAWL_FLUSH_MIN_UNVISITED", 100),
    "LINKCRAWL_FLUSH_MIN_VISITED": env.get_int_env("LINKCRAWL_FLUSH_MIN_VISITED", 50),
    "LINKCRAWL_GRACE_SECONDS": env.get_float_env("LINKCRAWL_GRACE_SECONDS", 30.0),
    "LINKCRAWL_DEDUPE_MAX_URLS": env.get_int_env("LINKCRAWL_DEDUPE_MAX_URLS", 0),
}


class Container(containers.DeclarativeContainer):
    """Dependency injection container for linkcrawl."""

    # Configuration
    config = providers.Configuration(default=ENV)

    # Database engine - Singleton to reuse connection pool
    db_engine = providers.Singleton(
        make_engine,
        database_url=config.DATABASE_URL,
    )
    # Session factory bound to the engine
    session_factory = providers.Factory(
        sessionmaker,
        bind=db_engine,
        future=True,
    )

    urls_repository = providers.Singleton(
        UrlsRepository,
        session_factory=session_factory,
    )

    # Services - Singleton instances
    http_service = providers.Singleton(
        HttpService,
        user_agent=config.USER_AGENT.as_(str),
        http_client=providers.Object(requests.get),
        timeout=config.HTTP_TIMEOUT.as_(int),
    )

    link_extractor = providers.Singleton(
        LinkExtractor
    )

    scraper = providers.Singleton(
        Scraper,
        fetcher=http_service,
        link_extractor=link_extractor,
    )

    # One crawler per run
    crawler = providers.Factory(
        Crawler,
        scraper=scraper,
        sink=urls_repository,
        num_workers=config.LINKCRAWL_WORKERS.as_(int),
        delay_seconds=config.CRAWL_DELAY.as_(float),
        frontier_capacity=config.LINKCRAWL_FRONTIER_CAPACITY.as_(int),
        results_capacity=config.LINKCRAWL_RESULTS_CAPACITY.as_(int),
        flush_interval_seconds=config.LINKCRAWL_FLUSH_INTERVAL.as_(float),
        min_unvisited_flush=config.LINKCRAWL_FLUSH_MIN_UNVISITED.as_(int),
        min_visited_flush=config.LINKCRAWL_FLUSH_MIN_VISITED.as_(int),
        grace_seconds=config.LINKCRAWL_GRACE_SECONDS.as_(float),
        dedupe_max_urls=config.LINKCRAWL_DEDUPE_MAX_URLS.as_(int),
    )
