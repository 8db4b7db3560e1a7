"""
Rate limiting implementations for controlling API request rates.

Provides thread-safe rate limiters to ensure compliance with provider
quotas. All gateway calls of a process share one TokenBucket.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Optional

from .base import RateLimiter

logger = logging.getLogger(__name__)


class TokenBucket(RateLimiter):
    """
    Token bucket rate limiter.

    Holds up to `capacity` tokens and refills continuously at
    `capacity / refill_interval_s` tokens per second. Each request consumes
    one token. When the bucket is empty, requests wait until tokens become
    available, and waiting requests are served in arrival order.

    Thread-safe implementation using a condition variable and a ticket queue.
    """

    def __init__(
        self,
        capacity: int,
        refill_interval_s: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize token bucket.

        Args:
            capacity: Maximum bucket size (tokens granted per refill interval)
            refill_interval_s: Seconds needed to refill an empty bucket
            clock: Monotonic time source
        """
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if refill_interval_s <= 0:
            raise ValueError("refill_interval_s must be > 0")

        self.capacity = int(capacity)
        self.refill_interval_s = float(refill_interval_s)
        self.rate = self.capacity / self.refill_interval_s
        self.tokens = float(self.capacity)
        self._clock = clock
        self.last_refill = clock()
        self._cond = threading.Condition()
        self._waiters: deque[object] = deque()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self.last_refill
        self.last_refill = now
        self.tokens = min(float(self.capacity), self.tokens + elapsed * self.rate)

    @property
    def available(self) -> float:
        """Tokens currently available (after refilling)."""
        with self._cond:
            self._refill()
            return self.tokens

    def wait(self) -> None:
        """Block until it's safe to make a request."""
        self.acquire(1)

    def try_acquire(self, count: int = 1) -> bool:
        """
        Take `count` tokens without blocking.

        Never jumps ahead of threads already waiting in acquire().
        """
        with self._cond:
            if self._waiters:
                return False
            self._refill()
            if self.tokens >= count:
                self.tokens -= count
                return True
            return False

    def acquire(self, count: int = 1) -> None:
        """
        Acquire one or more tokens.

        Blocks until the requested number of tokens are available and every
        earlier waiter has been served.

        Args:
            count: Number of tokens to acquire
        """
        if count <= 0:
            raise ValueError("count must be > 0")
        if count > self.capacity:
            raise ValueError(f"count must be <= capacity ({self.capacity})")

        ticket = object()
        with self._cond:
            self._waiters.append(ticket)
            try:
                while True:
                    self._refill()
                    at_head = self._waiters[0] is ticket
                    if at_head and self.tokens >= count:
                        self.tokens -= count
                        logger.debug(f"Token granted, {self.tokens:.2f} left")
                        return
                    # Only the head of the queue needs a timed wakeup
                    timeout = (count - self.tokens) / self.rate if at_head else None
                    self._cond.wait(timeout)
            finally:
                self._waiters.remove(ticket)
                self._cond.notify_all()


class NoOpRateLimiter(RateLimiter):
    """
    Rate limiter that does nothing (for testing/development).

    Useful when you want to disable rate limiting without changing code.
    """

    def wait(self) -> None:
        """Do nothing."""
        pass

    def acquire(self, count: int = 1) -> None:
        """Do nothing."""
        pass


_shared_bucket: Optional[TokenBucket] = None
_shared_lock = threading.Lock()


def shared_bucket(capacity: int, refill_interval_s: float) -> TokenBucket:
    """
    Return the process-wide bucket, creating it on first use.

    Later calls return the existing bucket; differing parameters are
    ignored with a warning.
    """
    global _shared_bucket
    with _shared_lock:
        if _shared_bucket is None:
            _shared_bucket = TokenBucket(capacity, refill_interval_s)
            logger.info(
                f"Created shared token bucket: {capacity} tokens per {refill_interval_s}s"
            )
        elif (
            _shared_bucket.capacity != int(capacity)
            or _shared_bucket.refill_interval_s != float(refill_interval_s)
        ):
            logger.warning(
                "Shared token bucket already exists with "
                f"{_shared_bucket.capacity}/{_shared_bucket.refill_interval_s}s, "
                f"ignoring {capacity}/{refill_interval_s}s"
            )
        return _shared_bucket


def reset_shared_bucket() -> None:
    """Drop the process-wide bucket (shutdown / tests)."""
    global _shared_bucket
    with _shared_lock:
        _shared_bucket = None
