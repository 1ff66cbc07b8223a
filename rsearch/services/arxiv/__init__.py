"""arXiv API client module."""

from rsearch.services.arxiv.client import ArxivClient
from rsearch.services.arxiv.factory import make_arxiv_client, reset_arxiv_client_cache
from rsearch.services.arxiv.identifiers import normalize_arxiv_id
from rsearch.services.arxiv.license import (
    LicenseFilterResult,
    filter_by_license,
    has_license_metadata,
)

__all__ = [
    "ArxivClient",
    "LicenseFilterResult",
    "filter_by_license",
    "has_license_metadata",
    "make_arxiv_client",
    "normalize_arxiv_id",
    "reset_arxiv_client_cache",
]
