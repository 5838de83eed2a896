import logging
from typing import Callable, Optional

from linkcrawl.domain import ScrapeResult
from linkcrawl.services.link_extractor import LinkExtractor
from linkcrawl.services.url_validator import validate_url

logger = logging.getLogger(__name__)


class Scraper:
    """Fetches one page and keeps the crawlable links found on it.

    Fetch failures propagate as `FetchError` subclasses; the caller decides
    whether they are fatal.
    """

    def __init__(self, fetcher, link_extractor: Optional[LinkExtractor] = None, url_validator: Callable[[str], Optional[str]] = validate_url):
        self.fetcher = fetcher
        self.link_extractor = link_extractor or LinkExtractor()
        self.url_validator = url_validator

    def scrape(self, url: str) -> ScrapeResult:
        response = self.fetcher.fetch(url)
        hrefs = self.link_extractor.extract_links(response.text)

        valid = []
        for href in hrefs:
            link = self.url_validator(href)
            if link is None:
                logger.debug("Discarding link %r found on %s", href, url)
                continue
            valid.append(link)

        return ScrapeResult(source_url=url, discovered_links=tuple(valid))
