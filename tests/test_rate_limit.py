"""
Tests for the fixed-window rate limiter and its background sweep.
"""

import asyncio
import threading

import pytest

from app.core.rate_limit import FixedWindowRateLimiter
from app.services.background_tasks import sweep_rate_limiters


class TestFixedWindow:
    """Window accounting for a single key."""

    def test_admits_limit_then_denies(self):
        limiter = FixedWindowRateLimiter(limit=10, window=60)
        results = [limiter.allow("203.0.113.7", now=100.0 + i) for i in range(11)]

        assert results == [True] * 10 + [False]

    def test_window_resets_exactly_at_boundary(self):
        limiter = FixedWindowRateLimiter(limit=3, window=60)
        for _ in range(3):
            assert limiter.allow("k", now=0.0)
        assert not limiter.allow("k", now=59.999)

        # now == window_reset_at starts a new window
        assert limiter.allow("k", now=60.0)
        assert limiter.allow("k", now=60.0)
        assert limiter.allow("k", now=61.0)
        assert not limiter.allow("k", now=61.0)

    def test_window_is_anchored_at_first_request(self):
        limiter = FixedWindowRateLimiter(limit=1, window=60)
        assert limiter.allow("k", now=30.0)
        assert not limiter.allow("k", now=60.0)
        assert not limiter.allow("k", now=89.9)
        assert limiter.allow("k", now=90.0)

    def test_denied_attempts_do_not_extend_the_window(self):
        limiter = FixedWindowRateLimiter(limit=2, window=10)
        assert limiter.allow("k", now=0.0)
        assert limiter.allow("k", now=1.0)
        for t in (2.0, 5.0, 9.0):
            assert not limiter.allow("k", now=t)

        assert limiter.allow("k", now=10.0)

    def test_boundary_burst_admits_twice_the_limit(self):
        """A burst straddling the boundary gets 2N through in just over one window."""
        limiter = FixedWindowRateLimiter(limit=10, window=60)
        assert limiter.allow("k", now=0.0)
        late = [limiter.allow("k", now=59.0) for _ in range(9)]
        early = [limiter.allow("k", now=60.0) for _ in range(10)]

        assert all(late)
        assert all(early)
        assert not limiter.allow("k", now=60.5)

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(limit=1, window=60)
        assert limiter.allow("198.51.100.1", now=0.0)
        assert not limiter.allow("198.51.100.1", now=1.0)
        assert limiter.allow("198.51.100.2", now=1.0)

    def test_uses_clock_when_now_is_omitted(self):
        current = [1000.0]
        limiter = FixedWindowRateLimiter(limit=1, window=5, clock=lambda: current[0])

        assert limiter.allow("k")
        assert not limiter.allow("k")
        current[0] += 5
        assert limiter.allow("k")


class TestRetryAfter:

    def test_seconds_until_reset(self):
        limiter = FixedWindowRateLimiter(limit=1, window=60)
        limiter.allow("k", now=0.0)

        assert limiter.retry_after("k", now=0.0) == 60
        assert limiter.retry_after("k", now=59.2) == 1

    def test_zero_without_live_window(self):
        limiter = FixedWindowRateLimiter(limit=1, window=60)
        assert limiter.retry_after("unknown", now=0.0) == 0

        limiter.allow("k", now=0.0)
        assert limiter.retry_after("k", now=60.0) == 0


class TestTableBounds:

    def test_sweep_removes_only_expired_records(self):
        limiter = FixedWindowRateLimiter(limit=5, window=60)
        limiter.allow("old", now=0.0)
        limiter.allow("fresh", now=30.0)

        assert limiter.sweep(now=60.0) == 1
        assert len(limiter) == 1
        # The retained key keeps its count
        for _ in range(4):
            assert limiter.allow("fresh", now=61.0)
        assert not limiter.allow("fresh", now=61.0)

    def test_full_table_evicts_expired_records_first(self):
        limiter = FixedWindowRateLimiter(limit=1, window=10, max_keys=2)
        limiter.allow("a", now=0.0)
        limiter.allow("b", now=5.0)

        # "a" expired at 10, "b" is still live until 15
        assert limiter.allow("c", now=12.0)
        assert len(limiter) == 2
        assert not limiter.allow("b", now=12.0)

    def test_full_table_evicts_oldest_live_record(self):
        limiter = FixedWindowRateLimiter(limit=1, window=60, max_keys=2)
        limiter.allow("a", now=0.0)
        limiter.allow("b", now=1.0)
        assert limiter.allow("c", now=2.0)

        assert len(limiter) == 2
        assert not limiter.allow("b", now=3.0)
        assert not limiter.allow("c", now=3.0)

    def test_reset_forgets_everything(self):
        limiter = FixedWindowRateLimiter(limit=1, window=60)
        limiter.allow("k", now=0.0)
        limiter.reset()

        assert len(limiter) == 0
        assert limiter.allow("k", now=1.0)


class TestConfiguration:

    @pytest.mark.parametrize("rate, limit, window", [
        ("10/minute", 10, 60),
        ("5/second", 5, 1),
        ("100 per hour", 100, 3600),
    ])
    def test_from_rate_string(self, rate, limit, window):
        limiter = FixedWindowRateLimiter.from_rate_string(rate, name="test")

        assert limiter.limit == limit
        assert limiter.window == window
        assert limiter.name == "test"

    @pytest.mark.parametrize("kwargs", [
        {"limit": 0, "window": 60},
        {"limit": 1, "window": 0},
        {"limit": 1, "window": 60, "max_keys": 0},
    ])
    def test_rejects_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(**kwargs)


def test_concurrent_callers_never_exceed_limit():
    limiter = FixedWindowRateLimiter(limit=10, window=60)
    results = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(50)

    def hit():
        barrier.wait()
        allowed = limiter.allow("shared", now=1.0)
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=hit) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 10
    assert results.count(False) == 40


@pytest.mark.asyncio
async def test_background_sweep_drops_expired_records():
    current = [0.0]
    limiter = FixedWindowRateLimiter(limit=1, window=10, clock=lambda: current[0])
    limiter.allow("expired")
    current[0] = 5.0
    limiter.allow("live")
    current[0] = 10.0

    task = asyncio.create_task(sweep_rate_limiters([limiter], interval=0.01))
    for _ in range(100):
        await asyncio.sleep(0.01)
        if len(limiter) == 1:
            break
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(limiter) == 1
    assert not limiter.allow("live")
