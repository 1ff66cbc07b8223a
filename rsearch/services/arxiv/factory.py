"""arXiv client factory."""

import logging
from functools import lru_cache

from rsearch.config import get_settings
from rsearch.services.arxiv.client import ArxivClient

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def make_arxiv_client() -> ArxivClient:
    """
    Build the shared client from environment settings.

    The client owns a rate limiter and a memory cache, so hand it to a
    single logical call stream. Build extra ArxivClient instances for
    concurrent work.

    Raises:
        pydantic.ValidationError: If the environment holds invalid settings
    """
    config = get_settings().to_client_config()
    logger.debug(
        f"arXiv client: {config.api_base_url}, rate limit {config.rate_limit_delay}s, "
        f"cache {'on' if config.cache else 'off'}"
    )
    return ArxivClient(config=config)


def reset_arxiv_client_cache() -> None:
    """Forget the shared client; the next call rebuilds it from settings."""
    make_arxiv_client.cache_clear()
