"""Search request schema and arXiv API ceilings."""

from typing import List, Literal, Optional

from pydantic import BaseModel

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 2000
MAX_TOTAL_RESULTS = 30000

SortBy = Literal["relevance", "lastUpdatedDate", "submittedDate"]
SortOrder = Literal["ascending", "descending"]


class SearchRequest(BaseModel):
    """Logical search request, before it is split into pages.

    Paging bounds are checked by the client, not here, so that every
    rejection surfaces as the same ValidationException family.
    """

    search_query: Optional[str] = None
    id_list: Optional[List[str]] = None
    start: Optional[int] = None
    max_results: Optional[int] = None
    page_size: Optional[int] = None
    sort_by: Optional[SortBy] = None
    sort_order: Optional[SortOrder] = None
