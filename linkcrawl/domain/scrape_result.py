from typing import NamedTuple, Tuple


class ScrapeResult(NamedTuple):
    """What a worker found on one page.

    `discovered_links` holds only validated absolute http(s) URLs, in
    document order, and may be empty.
    """
    source_url: str
    discovered_links: Tuple[str, ...] = ()
