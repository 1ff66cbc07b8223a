"""Response cache factory"""

from typing import Optional

from rsearch.config import get_settings
from rsearch.schemas.arxiv.client_config import ArxivClientConfig
from rsearch.services.cache.client import ResponseCache


def make_response_cache(config: Optional[ArxivClientConfig] = None) -> ResponseCache:
    """
    Create a response cache for one client.

    Not cached: the in-memory tier belongs to exactly one client, so each
    call returns a fresh instance. Instances built over the same directory
    still share the disk tier.

    Args:
        config: Client configuration (resolved from settings when omitted)
    """
    config = config or get_settings().to_client_config()
    return ResponseCache(
        enabled=config.cache,
        cache_dir=config.cache_dir,
        ttl_seconds=config.cache_ttl,
    )
