"""Minimum-interval rate limiter for outbound arXiv requests."""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Serializes outbound calls to at most one per ``min_interval`` seconds.

    The last-run timestamp is read and written across a suspension point,
    so one instance must be driven by a single logical call stream. Two
    tasks sharing it can both pass the check before either records its run.
    """

    def __init__(self, min_interval: float):
        """
        Initialize rate limiter.

        Args:
            min_interval: Seconds between requests (0 disables throttling)
        """
        self.min_interval = min_interval
        self._last_request_time: Optional[float] = None

    async def wait(self) -> None:
        """Wait if needed to respect the interval, then record this run."""
        loop = asyncio.get_running_loop()
        if self._last_request_time is not None and self.min_interval > 0:
            elapsed = loop.time() - self._last_request_time
            if elapsed < self.min_interval:
                wait_time = self.min_interval - elapsed
                logger.debug(f"Rate limiting: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)

        self._last_request_time = loop.time()
