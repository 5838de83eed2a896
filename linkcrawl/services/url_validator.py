import logging
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

CRAWLABLE_SCHEMES = ("http", "https")


def validate_url(raw: Optional[str]) -> Optional[str]:
    """Return `raw` stripped of surrounding whitespace if it is a crawlable URL.

    Only absolute URLs with an http or https scheme and a host are accepted;
    anything else (relative paths, fragments, mailto:, ftp:) yields None.
    """
    if not raw or not isinstance(raw, str):
        return None
    candidate = raw.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None
    try:
        parsed = urlparse(candidate)
        # Accessing hostname/port validates the netloc (e.g. bad IPv6, bad port).
        host = parsed.hostname
        _ = parsed.port
    except ValueError:
        logger.debug("Unparseable URL %r", raw)
        return None
    if parsed.scheme.lower() not in CRAWLABLE_SCHEMES or not host:
        return None
    return candidate


def is_valid_url(raw: Optional[str]) -> bool:
    return validate_url(raw) is not None
