from enum import Enum


class CrawlerState(Enum):
    """Lifecycle of a single crawl run. STOPPED is terminal."""

    READY = "ready"
    RUNNING = "running"
    STOPPED = "stopped"
