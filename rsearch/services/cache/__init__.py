"""Response cache service module."""

from rsearch.services.cache.client import ResponseCache
from rsearch.services.cache.factory import make_response_cache

__all__ = [
    "ResponseCache",
    "make_response_cache",
]
