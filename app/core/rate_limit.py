"""
Rate Limiting

This module throttles click attribution per client network origin.

Design Decisions:
- Fixed window anchored at the first request from an origin, not a sliding
  window or token bucket. A burst straddling a window boundary can therefore
  see up to 2x the limit accepted within one window length; callers rely on
  this exact boundary behaviour
- Limits are written as slowapi-style "count/period" strings and parsed with
  the `limits` library
- One limiter instance per endpoint, so endpoints never share a counter
- In-process state only: running N instances behind a load balancer gives
  each origin N times the configured capacity
- The table is bounded. Expired records are dropped lazily when room is
  needed and by the periodic sweep in app.services.background_tasks
"""

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from limits import parse as parse_rate_limit

from app.core.setting import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    """Attempts seen from one origin in its current window."""
    count: int
    window_reset_at: float


class FixedWindowRateLimiter:
    """
    Fixed-window request counter keyed by client origin.

    All access to the record table happens under a single lock, so the
    limiter is safe to share between the event loop and worker threads.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        max_keys: int = 100_000,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        """
        Args:
            limit: Accepted requests per window (N)
            window: Window length in seconds (W)
            max_keys: Maximum number of origins tracked at once
            clock: Source of "now" when a caller does not pass one
            name: Label used in log messages
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        if max_keys < 1:
            raise ValueError("max_keys must be at least 1")

        self.limit = limit
        self.window = window
        self.max_keys = max_keys
        self.name = name
        self._clock = clock
        self._records: "OrderedDict[str, RateLimitRecord]" = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_rate_string(cls, rate: str, **kwargs) -> "FixedWindowRateLimiter":
        """
        Build a limiter from a "count/period" string such as "10/minute".
        """
        item = parse_rate_limit(rate)
        return cls(limit=item.amount, window=item.get_expiry(), **kwargs)

    def allow(self, key: str, now: Optional[float] = None) -> bool:
        """
        Count one attempt for `key` and decide whether it is admitted.

        A missing or expired record starts a new window with count 1. Inside a
        live window the attempt is admitted while count < limit. A denied
        attempt leaves the record untouched.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            record = self._records.get(key)

            if record is None or now >= record.window_reset_at:
                self._start_window(key, now)
                return True

            if record.count < self.limit:
                record.count += 1
                return True

            return False

    def retry_after(self, key: str, now: Optional[float] = None) -> int:
        """Whole seconds until `key`'s current window resets (0 if it has no live window)."""
        if now is None:
            now = self._clock()

        with self._lock:
            record = self._records.get(key)
            if record is None or now >= record.window_reset_at:
                return 0
            return max(1, math.ceil(record.window_reset_at - now))

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Drop every record whose window has expired.

        Returns:
            Number of records removed
        """
        if now is None:
            now = self._clock()

        with self._lock:
            expired = [
                key for key, record in self._records.items()
                if now >= record.window_reset_at
            ]
            for key in expired:
                del self._records[key]

        return len(expired)

    def reset(self) -> None:
        """Forget every origin."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def _start_window(self, key: str, now: float) -> None:
        # Caller holds the lock.
        if key in self._records:
            # Re-inserted at the end: the table stays ordered by window start.
            del self._records[key]
        elif len(self._records) >= self.max_keys:
            self._make_room(now)

        self._records[key] = RateLimitRecord(count=1, window_reset_at=now + self.window)

    def _make_room(self, now: float) -> None:
        # Oldest windows sit at the front, so expired records are popped first.
        while self._records:
            oldest_key, oldest = next(iter(self._records.items()))
            if now < oldest.window_reset_at and len(self._records) < self.max_keys:
                break
            self._records.popitem(last=False)
            if now < oldest.window_reset_at:
                logger.warning(
                    f"Rate limiter '{self.name}' is full ({self.max_keys} origins); "
                    f"evicted live window for {oldest_key}"
                )


click_limiter = FixedWindowRateLimiter.from_rate_string(
    settings.CLICK_RATE_LIMIT,
    max_keys=settings.RATE_LIMIT_MAX_KEYS,
    name="clicks",
)

redirect_limiter = FixedWindowRateLimiter.from_rate_string(
    settings.REDIRECT_RATE_LIMIT,
    max_keys=settings.RATE_LIMIT_MAX_KEYS,
    name="redirect",
)
