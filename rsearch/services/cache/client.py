"""
Two-tier response cache for arXiv metadata queries.

Why it's needed:
    arXiv asks clients to wait three seconds between requests, so repeating
    an identical query is expensive. Caching the raw feed text by request URL
    makes the second identical call free, within a process (memory tier) and
    across processes (disk tier).

What it does:
    - Memory tier: dict keyed by the exact request URL, owned by one client
    - Disk tier: one file per URL named by the SHA256 hex digest of the URL,
      freshness judged by file mtime against an optional TTL
    - Disk hits are promoted into memory
    - Disk failures are logged and treated as misses / no-ops

How it helps:
    - Pagination replays are free once a page has been fetched
    - Separate CLI invocations share results through the disk tier
    - Graceful fallback means cache failures never break a request

Concurrency:
    Keys are exact URLs and values are the response for that URL, so two
    processes writing the same file write the same content; the last writer
    wins and nothing is locked. Stale files are only skipped on read, never
    deleted.
"""

import asyncio
import hashlib
import logging
import time
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ResponseCache:
    """Read-through / write-through cache of response text keyed by URL."""

    def __init__(
        self,
        enabled: bool = True,
        cache_dir: Optional[str] = None,
        ttl_seconds: Optional[float] = None,
    ):
        self.enabled = enabled
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else None
        self._ttl = ttl_seconds
        self._memory: Dict[str, str] = {}

    @staticmethod
    def _generate_cache_key(url: str) -> str:
        """SHA256 of the exact URL; fixed length and safe as a file name."""
        return hashlib.sha256(url.encode("utf-8")).hexdigest()

    def _path_for(self, url: str) -> Path:
        return self.cache_dir / self._generate_cache_key(url)

    async def get(self, url: str) -> Optional[str]:
        """Look up a cached response for the URL.

        Returns None on miss, on an expired disk entry, or on disk error.
        """
        if not self.enabled:
            return None

        cached = self._memory.get(url)
        if cached is not None:
            return cached

        if self.cache_dir is None:
            return None

        loop = asyncio.get_running_loop()
        try:
            cached = await loop.run_in_executor(None, self._read_disk, url)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cache lookup failed (graceful skip): {e}")
            return None

        if cached is not None:
            logger.debug(f"Disk cache HIT for {url}")
            self._memory[url] = cached
        return cached

    async def set(self, url: str, payload: str) -> None:
        """Store a response in memory and, when configured, on disk."""
        if not self.enabled:
            return

        self._memory[url] = payload

        if self.cache_dir is None:
            return

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_disk, url, payload)
        except OSError as e:
            logger.warning(f"Cache store failed (graceful skip): {e}")

    def _read_disk(self, url: str) -> Optional[str]:
        path = self._path_for(url)
        try:
            stats = path.stat()
        except FileNotFoundError:
            return None

        if self._ttl is not None:
            age = time.time() - stats.st_mtime
            if age > self._ttl:
                logger.debug(f"Disk cache entry expired ({age:.0f}s old): {path.name}")
                return None

        return path.read_text(encoding="utf-8")

    def _write_disk(self, url: str, payload: str) -> None:
        path = self._path_for(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")

    def clear_memory(self) -> None:
        """Drop the in-process tier; disk entries are left alone."""
        self._memory.clear()
