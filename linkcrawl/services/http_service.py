import requests
from typing import Callable, Optional

from linkcrawl.domain.http_response import HttpResponse
from linkcrawl.exceptions import ContentTypeError, HttpFetchError, HttpStatusError

CRAWLABLE_CONTENT_TYPES = ("text/html", "text/plain")


def is_crawlable_content_type(content_type: Optional[str]) -> bool:
    """Return True when the Content-Type header names HTML or plain text."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in CRAWLABLE_CONTENT_TYPES


class HttpService:
    """
    HTTP client wrapper for fetching web pages.

    Requires http_client callable for dependency injection, so tests can pass
    a stub instead of patching `requests`.
    """

    def __init__(self, user_agent: str, http_client: Callable, timeout: int = 30):
        self.user_agent = user_agent
        self.timeout = timeout
        self.http_client = http_client

    def fetch(self, url: str) -> HttpResponse:
        """Fetch URL and return status code, body text, and Content-Type.

        Raises HttpFetchError on transport failures, HttpStatusError on a
        non-2xx status and ContentTypeError when the body is not text.
        """
        headers = {"User-Agent": self.user_agent}
        try:
            resp = self.http_client(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(url, e) from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise HttpStatusError(url, resp.status_code)

        ct = resp.headers.get("Content-Type")
        if not is_crawlable_content_type(ct):
            raise ContentTypeError(url, ct)

        return HttpResponse(resp.status_code, resp.text, ct)
