"""Domain objects for linkcrawl - explicit re-exports to satisfy linters."""
from .crawler_state import CrawlerState as CrawlerState
from .crawl_result import CrawlResult as CrawlResult
from .http_response import HttpResponse as HttpResponse
from .scrape_result import ScrapeResult as ScrapeResult
from .url_record import UrlRecord as UrlRecord

__all__ = ["CrawlerState", "CrawlResult", "HttpResponse", "ScrapeResult", "UrlRecord"]
