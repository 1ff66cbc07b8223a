"""arXiv Schemas"""

from rsearch.schemas.arxiv.client_config import ArxivClientConfig
from rsearch.schemas.arxiv.paper import (
    DownloadOutcome,
    Entry,
    FeedPage,
    Link,
    SearchResult,
)
from rsearch.schemas.arxiv.search import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MAX_TOTAL_RESULTS,
    SearchRequest,
)

__all__ = [
    "ArxivClientConfig",
    "DownloadOutcome",
    "Entry",
    "FeedPage",
    "Link",
    "SearchRequest",
    "SearchResult",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "MAX_TOTAL_RESULTS",
]
