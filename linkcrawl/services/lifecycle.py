from __future__ import annotations

import logging
import threading
from typing import Optional

from linkcrawl.domain import CrawlerState

logger = logging.getLogger(__name__)


class CrawlerLifecycle:
    """Guards the READY -> RUNNING -> STOPPED transitions of one crawler.

    Transitions are compare-and-set under a lock. Reads of `state` take no
    lock; enum assignment is atomic, so readers always see a valid state.
    `stopped_event` mirrors STOPPED for threads that want to wait on it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = CrawlerState.READY
        self._stopped = threading.Event()

    @property
    def state(self) -> CrawlerState:
        return self._state

    @property
    def stopped_event(self) -> threading.Event:
        return self._stopped

    def is_stopped(self) -> bool:
        return self._state is CrawlerState.STOPPED

    def compare_and_set(self, expected: CrawlerState, new: CrawlerState) -> bool:
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            if new is CrawlerState.STOPPED:
                self._stopped.set()
            logger.debug("Crawler state %s -> %s", expected.value, new.value)
            return True

    def stop(self) -> bool:
        """Move to STOPPED from any state. Returns True only for the caller that did it."""
        with self._lock:
            if self._state is CrawlerState.STOPPED:
                return False
            previous = self._state
            self._state = CrawlerState.STOPPED
            self._stopped.set()
        logger.debug("Crawler state %s -> stopped", previous.value)
        return True

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)
