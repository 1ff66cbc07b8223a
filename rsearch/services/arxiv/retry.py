"""HTTP fetching with timeout, failure classification and bounded retry."""

import asyncio
import logging
import math
import random
import time
from datetime import datetime, timezone
from typing import Mapping, Optional

import aiohttp
from aiohttp import ClientError, ClientTimeout
from dateutil import parser as date_parser

from rsearch.exceptions import (
    ArxivAPIException,
    ArxivAPIRateLimitError,
    ArxivAPITimeoutError,
    ArxivResponseError,
    ArxivTransportError,
)
from rsearch.services.arxiv.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429})
MAX_BACKOFF_FACTOR = 16


def is_retryable_status(status: int) -> bool:
    """408, 429 and every 5xx are worth another attempt."""
    return status in RETRYABLE_STATUSES or 500 <= status < 600


def is_retryable(error: BaseException) -> bool:
    """Classify an error raised by a single attempt."""
    if isinstance(error, ArxivTransportError):
        return True
    if isinstance(error, ArxivResponseError):
        return is_retryable_status(error.status)
    return False


def parse_retry_after(
    value: Optional[str],
    now: Optional[datetime] = None,
) -> Optional[float]:
    """
    Parse a Retry-After header into seconds.

    Args:
        value: Header value, delta-seconds or an HTTP-date
        now: Reference time for HTTP-dates (defaults to current UTC time)

    Returns:
        Delay in seconds clamped to >= 0, or None when absent or unparseable
    """
    if not value or not value.strip():
        return None
    value = value.strip()

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None

    try:
        when = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def compute_backoff_delay(base_delay: float, attempt: int) -> float:
    """Exponential delay capped at 16x the base, plus up to one base of jitter."""
    exp = min(base_delay * MAX_BACKOFF_FACTOR, base_delay * (2 ** attempt))
    return exp + random.uniform(0, base_delay)


def _response_error(response: aiohttp.ClientResponse) -> ArxivResponseError:
    retry_after = parse_retry_after(response.headers.get("Retry-After"))
    error_cls = ArxivAPIRateLimitError if response.status == 429 else ArxivResponseError
    return error_cls(response.status, response.reason or "", retry_after=retry_after)


class RetryingFetcher:
    """
    Wraps a single GET with timeout, classification and bounded retry.

    Flow per attempt:
    1. Wait on the rate limiter (retries included)
    2. Send the request under a total timeout
    3. 2xx → return the body; 408/429/5xx or transport failure → back off
       and try again while budget remains; anything else → raise at once

    At most ``max_retries + 1`` attempts are made. The error from the final
    attempt is the one raised.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        timeout: float = 20.0,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        debug: bool = False,
    ):
        """
        Initialize fetcher.

        Args:
            rate_limiter: Limiter shared with every other request of the client
            timeout: Per-attempt timeout in seconds
            max_retries: Retries after the first attempt
            retry_delay: Base delay for exponential backoff, in seconds
            debug: Log one line per request and per response
        """
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.debug = debug

    async def fetch(self, url: str, headers: Optional[Mapping[str, str]] = None) -> bytes:
        """
        Fetch a URL, retrying transient failures.

        Args:
            url: Fully built request URL
            headers: Request headers

        Returns:
            Response body

        Raises:
            ArxivResponseError: Non-retryable status, or budget exhausted
            ArxivTransportError: Timeout/connection failure with budget exhausted
        """
        attempt = 0
        while True:
            await self.rate_limiter.wait()
            try:
                return await self._attempt(url, headers, attempt)
            except ArxivAPIException as e:
                if not is_retryable(e) or attempt >= self.max_retries:
                    raise

                delay = None
                if isinstance(e, ArxivResponseError):
                    delay = e.retry_after
                if delay is None:
                    delay = compute_backoff_delay(self.retry_delay, attempt)

                logger.warning(
                    f"{e}, retry {attempt + 1}/{self.max_retries} in {delay:.2f}s: {url}"
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def _attempt(
        self,
        url: str,
        headers: Optional[Mapping[str, str]],
        attempt: int,
    ) -> bytes:
        timeout = ClientTimeout(total=self.timeout)
        started = time.monotonic()

        if self.debug:
            logger.debug(f"GET {url} (attempt {attempt + 1}/{self.max_retries + 1})")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=dict(headers or {})) as response:
                    if self.debug:
                        elapsed_ms = (time.monotonic() - started) * 1000
                        logger.debug(
                            f"{response.status} {response.reason or ''} ({elapsed_ms:.0f}ms)"
                        )

                    if 200 <= response.status < 300:
                        return await response.read()

                    raise _response_error(response)

        except asyncio.TimeoutError as e:
            raise ArxivAPITimeoutError(
                f"Request timed out after {self.timeout}s: {url}"
            ) from e

        except ClientError as e:
            raise ArxivTransportError(f"Request failed: {e}") from e
