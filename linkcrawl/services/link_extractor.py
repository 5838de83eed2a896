from typing import Callable, List, Optional

from bs4 import BeautifulSoup


class LinkExtractor:
    """Collects the raw `href` of every anchor in a document."""

    def __init__(
        self,
        soup_factory: Optional[Callable[[str], BeautifulSoup]] = None,
    ):
        self._soup_factory = soup_factory or (lambda html: BeautifulSoup(html, "html.parser"))

    def extract_links(self, html: str) -> List[str]:
        """Return href values in document order, without resolving or validating them."""
        if not html:
            return []
        soup = self._soup_factory(html)
        return [a.get("href") for a in soup.find_all("a", href=True)]
