"""arXiv API client with rate limiting, retry logic, caching and pagination."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from rsearch.exceptions import ConfigurationError, InvalidArxivIdError, ValidationException
from rsearch.schemas.arxiv.client_config import ArxivClientConfig
from rsearch.schemas.arxiv.paper import DownloadOutcome, Entry, FeedPage, SearchResult
from rsearch.schemas.arxiv.search import MAX_PAGE_SIZE, MAX_TOTAL_RESULTS, SearchRequest
from rsearch.services.arxiv.download import DownloadManager
from rsearch.services.arxiv.feed import decode_feed
from rsearch.services.arxiv.identifiers import normalize_arxiv_id
from rsearch.services.arxiv.query import build_query, split_id_tokens
from rsearch.services.arxiv.rate_limiter import RateLimiter
from rsearch.services.arxiv.retry import RetryingFetcher
from rsearch.services.cache.factory import make_response_cache

if TYPE_CHECKING:
    from rsearch.services.pdf_parser.service import PDFParserService

logger = logging.getLogger(__name__)

ATOM_ACCEPT = "application/atom+xml"


def _format_validation_error(error: ValidationError) -> str:
    """``field: message`` pairs joined by ``; ``."""
    parts = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "config"
        cause = (err.get("ctx") or {}).get("error")
        parts.append(f"{field}: {cause or err['msg']}")
    return "; ".join(parts)


class ArxivClient:
    """
    arXiv API client with rate limiting, retry logic, caching and PDF download.

    Respects arXiv API guidelines:
    - 3 second delay between requests (configurable, 0 disables)
    - Jittered exponential backoff on 408/429/5xx, honoring Retry-After
    - Proper User-Agent header

    Each instance owns its own rate limiter and in-memory cache. Drive one
    instance from one logical call stream; use separate instances for
    concurrent work.
    """

    def __init__(
        self,
        config: Optional[ArxivClientConfig] = None,
        pdf_parser: Optional["PDFParserService"] = None,
        **overrides: Any,
    ):
        """
        Initialize arXiv client.

        Args:
            config: Resolved configuration (defaults when omitted)
            pdf_parser: Text extractor used by export_text
            **overrides: Individual ArxivClientConfig fields, applied on top

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        if config is None or overrides:
            values = config.model_dump() if config is not None else {}
            values.update(overrides)
            try:
                config = ArxivClientConfig(**values)
            except ValidationError as e:
                raise ConfigurationError(_format_validation_error(e)) from e

        self._config = config
        self._rate_limiter = RateLimiter(config.rate_limit_delay)
        self._fetcher = RetryingFetcher(
            self._rate_limiter,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            debug=config.debug,
        )
        self._cache = make_response_cache(config)
        self._downloads = DownloadManager(self, pdf_parser=pdf_parser)

    def get_config(self) -> ArxivClientConfig:
        """Return the (immutable) configuration snapshot."""
        return self._config

    def _resolve_paging(self, request: SearchRequest) -> Tuple[int, int, int]:
        """
        Resolve page size, max results and start offset.

        Raises:
            ValidationException: If any bound is out of range
        """
        page_size = request.page_size if request.page_size is not None else self._config.page_size
        if page_size < 1:
            raise ValidationException("pageSize must be a positive integer.")
        if page_size > MAX_PAGE_SIZE:
            raise ValidationException(f"pageSize cannot exceed {MAX_PAGE_SIZE}.")

        max_results = request.max_results if request.max_results is not None else page_size
        if max_results < 1:
            raise ValidationException("maxResults must be a positive integer.")
        if max_results > MAX_TOTAL_RESULTS:
            raise ValidationException(f"maxResults cannot exceed {MAX_TOTAL_RESULTS}.")

        start = request.start if request.start is not None else 0
        if start < 0:
            raise ValidationException("start must be a non-negative integer.")

        return page_size, max_results, start

    async def search(self, request: SearchRequest) -> SearchResult:
        """
        Search arXiv, paginating transparently when needed.

        Pagination only happens when ``max_results`` is given explicitly and
        exceeds the page size; otherwise exactly one request is sent.

        Args:
            request: Search query and/or ID list plus paging bounds

        Returns:
            SearchResult whose start_index is the offset of the first page

        Raises:
            ValidationException: Bad paging bounds or nothing to search for
            ArxivAPIException: Request failed after retries, or bad feed
        """
        page_size, max_results, start = self._resolve_paging(request)

        query = (request.search_query or "").strip()
        if request.id_list is not None and not query and not split_id_tokens(request.id_list):
            logger.debug("Empty ID list, skipping request")
            return SearchResult()

        paginate = request.max_results is not None and max_results > page_size

        entries: List[Entry] = []
        first_page: Optional[FeedPage] = None
        request_start = start
        remaining = max_results

        while remaining > 0:
            batch_size = min(page_size, remaining)
            built = build_query(
                self._config.api_base_url,
                request,
                start=request_start,
                max_results=batch_size,
            )
            page = await self._fetch_page(built.url)
            if first_page is None:
                first_page = page

            entries.extend(page.entries)
            count = len(page.entries)

            if not paginate or count == 0:
                break
            if request_start + count >= page.total_results:
                break

            remaining -= count
            request_start += count
            logger.debug(f"Fetched {len(entries)}/{page.total_results}, next start={request_start}")

        return SearchResult(
            query=query,
            total_results=first_page.total_results,
            start_index=first_page.start_index,
            items_per_page=first_page.items_per_page,
            entries=entries,
        )

    async def fetch_by_ids(self, ids: Sequence[str], **options: Any) -> SearchResult:
        """
        Fetch metadata for specific arXiv IDs.

        Args:
            ids: Identifiers in any common spelling; items may themselves be
                comma/whitespace separated lists
            **options: Other SearchRequest fields (paging, sorting)

        Returns:
            SearchResult for the given IDs (empty, without a request, for [])

        Raises:
            InvalidArxivIdError: If an identifier normalizes to nothing
        """
        tokens = split_id_tokens(ids)
        normalized = [normalize_arxiv_id(token) for token in tokens]
        if not all(normalized):
            raise InvalidArxivIdError("Invalid arXiv ID in id list.")

        return await self.search(SearchRequest(id_list=normalized, **options))

    async def download(
        self,
        ids: Sequence[str],
        output_dir: Union[str, Path],
        overwrite: bool = False,
        require_license: bool = False,
    ) -> List[DownloadOutcome]:
        """Download PDFs; one outcome per input ID. See DownloadManager.download."""
        return await self._downloads.download(
            ids, output_dir, overwrite=overwrite, require_license=require_license
        )

    async def export_text(
        self,
        ids: Sequence[str],
        output_dir: Union[str, Path],
        fmt: str = "md",
        overwrite: bool = False,
        keep_pdf: bool = False,
        require_license: bool = False,
    ) -> List[DownloadOutcome]:
        """Download PDFs and write extracted text. See DownloadManager.export_text."""
        return await self._downloads.export_text(
            ids,
            output_dir,
            fmt=fmt,
            overwrite=overwrite,
            keep_pdf=keep_pdf,
            require_license=require_license,
        )

    async def download_binary(self, arxiv_id: str) -> bytes:
        """
        Download one PDF into memory (never cached).

        Raises:
            InvalidArxivIdError: If the ID normalizes to nothing
            ArxivAPIException: Request failed after retries
        """
        normalized = normalize_arxiv_id(arxiv_id)
        if not normalized:
            raise InvalidArxivIdError("Invalid arXiv ID.")

        url = f"{self._config.pdf_base_url}{normalized}"
        return await self._fetcher.fetch(url, headers={"User-Agent": self._config.user_agent})

    async def _fetch_page(self, url: str) -> FeedPage:
        return decode_feed(await self._request_text(url))

    async def _request_text(self, url: str) -> str:
        """GET a metadata URL through the cache."""
        cached = await self._cache.get(url)
        if cached is not None:
            logger.debug(f"Cache HIT for {url}")
            return cached

        body = await self._fetcher.fetch(
            url,
            headers={"User-Agent": self._config.user_agent, "Accept": ATOM_ACCEPT},
        )
        text = body.decode("utf-8", errors="replace")
        await self._cache.set(url, text)
        return text
