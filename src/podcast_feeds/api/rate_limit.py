"""
Fixed-window admission control for the feed submission endpoint.

At most ``permit_limit`` requests are admitted per window. Requests over
the limit are rejected at once; nothing is queued. With automatic
replenishment off, the window is only reset by an explicit
``replenish()`` call, which succeeds once the current window has elapsed.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitLease:
    """
    Result of an acquire attempt.

    Attributes:
        acquired: True if the request was admitted
        retry_after: Seconds until the current window ends
    """

    acquired: bool
    retry_after: float = 0.0


class FixedWindowRateLimiter:
    """
    Thread-safe fixed window limiter.

    Example:
        >>> limiter = FixedWindowRateLimiter(permit_limit=5, window_seconds=2.0)
        >>> limiter.replenish()
        >>> lease = limiter.try_acquire()
        >>> lease.acquired
        True
    """

    def __init__(
        self,
        permit_limit: int = 5,
        window_seconds: float = 2.0,
        auto_replenishment: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if permit_limit < 1:
            raise ValueError("permit_limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.permit_limit = permit_limit
        self.window_seconds = window_seconds
        self.auto_replenishment = auto_replenishment
        self._clock = clock
        self._lock = threading.Lock()
        self._window_start = clock()
        self._available = permit_limit

    @property
    def available_permits(self) -> int:
        with self._lock:
            return self._available

    def _replenish_locked(self, now: float) -> bool:
        if now - self._window_start < self.window_seconds:
            return False
        self._window_start = now
        self._available = self.permit_limit
        return True

    def replenish(self) -> bool:
        """
        Start a new window if the current one has elapsed.

        Returns:
            True if permits were restored
        """
        with self._lock:
            return self._replenish_locked(self._clock())

    def try_acquire(self, permits: int = 1) -> RateLimitLease:
        """Take ``permits`` from the current window, or fail immediately."""
        with self._lock:
            now = self._clock()
            if self.auto_replenishment:
                self._replenish_locked(now)

            if permits <= self._available:
                self._available -= permits
                return RateLimitLease(acquired=True)

            retry_after = max(0.0, self.window_seconds - (now - self._window_start))
            logger.debug("Rate limit exceeded; retry after %.2fs", retry_after)
            return RateLimitLease(acquired=False, retry_after=retry_after)
