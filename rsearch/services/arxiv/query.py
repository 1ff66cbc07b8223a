"""Build arXiv API query URLs."""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from rsearch.exceptions import ValidationException
from rsearch.schemas.arxiv.search import SearchRequest

# Parameters owned by the builder, in the order they are emitted.
QUERY_PARAMS = ("search_query", "id_list", "start", "max_results", "sortBy", "sortOrder")

_ID_SEPARATOR = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class BuiltQuery:
    """A fully built request.

    Attributes:
        url: Base URL plus encoded query string, used verbatim as cache key
        query: Encoded query string
        params: Ordered parameter pairs
    """

    url: str
    query: str
    params: List[Tuple[str, str]] = field(default_factory=list)


def split_id_tokens(values: Optional[Sequence[str]]) -> List[str]:
    """Split ID list items on runs of commas/whitespace, dropping blanks.

    Accepts both ``["a", "b"]`` and ``["a, b c"]``.
    """
    if not values:
        return []
    tokens: List[str] = []
    for value in values:
        tokens.extend(t for t in _ID_SEPARATOR.split(value) if t)
    return tokens


def build_query(
    base_url: str,
    request: SearchRequest,
    start: Optional[int] = None,
    max_results: Optional[int] = None,
) -> BuiltQuery:
    """
    Build the query URL for one page of a search.

    Parameters already on ``base_url`` are kept; the ones set here replace
    them. ``start``/``max_results`` override the values on the request.

    Args:
        base_url: API endpoint, possibly with its own query parameters
        request: Logical search request
        start: Offset for this page
        max_results: Page size for this page

    Returns:
        BuiltQuery with the final URL

    Raises:
        ValidationException: Bad base URL, nothing to search for, or bad bounds
    """
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationException(f"Invalid base URL: {base_url}")

    own = {}

    search_query = (request.search_query or "").strip()
    if search_query:
        own["search_query"] = search_query

    id_tokens = split_id_tokens(request.id_list)
    if id_tokens:
        own["id_list"] = ",".join(id_tokens)

    if not own:
        raise ValidationException("Provide a search query or at least one arXiv id.")

    start = request.start if start is None else start
    if start is not None:
        if start < 0:
            raise ValidationException("start must be a non-negative integer.")
        own["start"] = str(start)

    max_results = request.max_results if max_results is None else max_results
    if max_results is not None:
        if max_results < 1:
            raise ValidationException("maxResults must be a positive integer.")
        own["max_results"] = str(max_results)

    if request.sort_by:
        own["sortBy"] = request.sort_by
    if request.sort_order:
        own["sortOrder"] = request.sort_order

    # Inherited parameters first, minus any we are about to set.
    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in own
    ]
    params.extend((key, own[key]) for key in QUERY_PARAMS if key in own)

    query = urlencode(params)
    url = urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))
    return BuiltQuery(url=url, query=query, params=params)
