from typing import NamedTuple


class UrlRecord(NamedTuple):
    """One row handed to the storage sink."""
    url: str
    visited: bool
