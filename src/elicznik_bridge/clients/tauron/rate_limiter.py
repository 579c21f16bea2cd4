"""Blocking throttle spacing consecutive portal requests."""
from __future__ import annotations
import threading
import time
from typing import Optional


class RateLimiter:
    """
    Interval-based throttle.

    Ensures that calls to ``wait()`` return at least ``min_interval`` seconds
    apart. The pause is a plain blocking sleep. When ``min_interval`` is 0 or
    negative, no throttling is applied.

    Example:
        >>> limiter = RateLimiter(min_interval=0.12)
        >>> for day in days:
        ...     limiter.wait()  # Blocks if needed
        ...     fetch(day)
    """

    def __init__(self, min_interval: float) -> None:
        """
        Initialize the throttle.

        Args:
            min_interval: Minimum number of seconds between requests.
                Use 0 or negative to disable throttling.
        """
        self._interval = max(float(min_interval), 0.0)
        self._last_request: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def interval(self) -> float:
        """Return the minimum interval between requests in seconds."""
        return self._interval

    @property
    def is_enabled(self) -> bool:
        """Return True if throttling is active."""
        return self._interval > 0

    def wait(self) -> None:
        """Block until the next request is allowed."""
        if self._interval <= 0:
            return

        with self._lock:
            now = time.monotonic()
            if self._last_request is not None:
                delay = self._last_request + self._interval - now
                if delay > 0:
                    time.sleep(delay)
                    now = time.monotonic()
            self._last_request = now

    def reset(self) -> None:
        """Reset the throttle state, allowing an immediate request."""
        with self._lock:
            self._last_request = None


__all__ = ["RateLimiter"]
