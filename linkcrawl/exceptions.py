"""Custom exceptions for linkcrawl."""


class FetchError(Exception):
    """Base class for per-URL fetch failures. Never fatal to a crawl."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(message)


class HttpFetchError(FetchError):
    """Raised when an HTTP fetch fails due to network/transport errors."""

    def __init__(self, url: str, original: Exception):
        self.original = original
        super().__init__(url, f"HTTP fetch failed for {url}: {original}")


class HttpStatusError(FetchError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(url, f"received status code {status_code} getting {url}")


class ContentTypeError(FetchError):
    """Raised when the response is neither text/html nor text/plain."""

    def __init__(self, url: str, content_type):
        self.content_type = content_type
        super().__init__(url, f"content-type {content_type!r} of {url} is not crawlable")


class StorageError(Exception):
    """Raised when a batch of URLs could not be persisted. Fatal to a crawl."""

    def __init__(self, original: Exception, rows: int = 0):
        self.original = original
        self.rows = rows
        super().__init__(f"failed to persist {rows} URL rows: {original}")


class CrawlerError(Exception):
    """Base class for misuse of the crawler lifecycle."""


class AlreadyRunningError(CrawlerError):
    def __init__(self, state):
        self.state = state
        super().__init__(f"crawler cannot start from state {state.value}")


class CrawlerStoppedError(CrawlerError):
    def __init__(self, message: str = "crawler is stopped"):
        super().__init__(message)


class QueueClosedError(Exception):
    """Raised by a closed BoundedQueue once it has nothing left to hand out."""
