"""Sliding-window request admission for the Zoho Books API."""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 60.0


class RateWindow:
    """
    Admits at most ``max_requests`` transmissions per rolling window.

    ``acquire()`` blocks until a slot is free and records the admission time.
    Callers must transmit immediately after it returns.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return len(self._timestamps)

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def acquire(self) -> float:
        """
        Wait for a free slot and claim it.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        with self._lock:
            now = self._clock()
            self._prune(now)

            while len(self._timestamps) >= self.max_requests:
                wait = self._timestamps[0] + self.window_seconds - now
                if wait > 0:
                    logger.info(f"Rate limit reached, waiting {wait:.1f}s")
                    self._sleep(wait)
                    waited += wait
                now = self._clock()
                self._prune(now)

            self._timestamps.append(now)

        return waited
