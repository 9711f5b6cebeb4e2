"""
Background Tasks

Long-running maintenance loops started with the application.

The rate limiters already drop expired records lazily when they run out of
room. The sweep keeps memory proportional to recently active origins instead
of the configured maximum.
"""

import asyncio
import logging
from typing import Iterable

from app.core.rate_limit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


async def sweep_rate_limiters(
    limiters: Iterable[FixedWindowRateLimiter],
    interval: float,
) -> None:
    """
    Periodically drop expired rate-limit records until cancelled.

    Args:
        limiters: Limiters to sweep
        interval: Seconds between sweeps
    """
    limiters = list(limiters)

    while True:
        await asyncio.sleep(interval)
        for limiter in limiters:
            try:
                removed = limiter.sweep()
            except Exception as e:
                logger.error(f"Error sweeping rate limiter '{limiter.name}': {e}", exc_info=True)
                continue

            if removed:
                logger.info(
                    f"Swept {removed} expired records from rate limiter '{limiter.name}' "
                    f"({len(limiter)} remaining)"
                )
