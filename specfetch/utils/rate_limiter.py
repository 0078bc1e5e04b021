"""
Per-host politeness delay.

Keeps consecutive requests to the same host at least ``delay`` seconds apart,
even when several manifest entries run in parallel workers.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict
from urllib.parse import urlparse


class HostRateLimiter:
    def __init__(self, delay: float = 0.5,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            delay: minimum seconds between two requests to the same host
            clock: monotonic time source (injectable for tests)
            sleep: sleep function (injectable for tests)
        """
        self.delay = max(delay, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._next_slot: Dict[str, float] = {}
        self._lock = threading.Lock()

    def acquire(self, url: str) -> float:
        """
        Block until a request to ``url``'s host may go out.

        Returns:
            The number of seconds waited.
        """
        if self.delay <= 0:
            return 0.0
        host = urlparse(url).netloc.lower()
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot.get(host, now))
            # Reserve the slot before sleeping so other workers queue behind it
            self._next_slot[host] = slot + self.delay
        wait = slot - now
        if wait > 0:
            self._sleep(wait)
        return wait
