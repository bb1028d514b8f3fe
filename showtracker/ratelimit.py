"""
ratelimit — Token-bucket limiter for outbound Watchmode requests.

Usage:
    limiter = RateLimiter(rate=2.0, burst=4)
    limiter.wait()  # blocks until a token is available
"""
from __future__ import annotations
import threading
import time


class RateLimiter:
    """Token bucket (thread-safe). A rate of 0 or less disables limiting."""

    def __init__(self, rate: float = 2.0, burst: int = 4, clock=time.monotonic, sleep=time.sleep):
        self.rate = rate
        self.burst = burst
        self._tokens = float(burst)
        self._clock = clock
        self._sleep = sleep
        self._last = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.burst, self._tokens + (now - self._last) * self.rate)
        self._last = now

    def try_acquire(self) -> bool:
        """Non-blocking: consume a token if one is available."""
        if self.rate <= 0:
            return True
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def wait(self) -> None:
        """Block until a token is available, then consume one."""
        while not self.try_acquire():
            self._sleep(0.05)
