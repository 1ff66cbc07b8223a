"""Pydantic schemas for arXiv papers."""

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Link(BaseModel):
    """A link attached to an arXiv entry."""

    model_config = ConfigDict(frozen=True)

    href: str
    rel: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None


class Entry(BaseModel):
    """Paper record decoded from the arXiv Atom feed.

    ``pdf_url`` and ``license_url`` are derived from ``links`` once, when
    the feed is decoded, and never recomputed.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    summary: str = ""
    published: str = ""
    updated: str = ""
    authors: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    primary_category: Optional[str] = None
    links: Tuple[Link, ...] = ()
    doi: Optional[str] = None
    comment: Optional[str] = None
    journal_ref: Optional[str] = None
    abs_url: str = ""
    pdf_url: Optional[str] = None
    license: Optional[str] = None
    license_url: Optional[str] = None


class FeedPage(BaseModel):
    """One decoded page of the feed, with its opensearch bookkeeping."""

    total_results: int = 0
    start_index: int = 0
    items_per_page: int = 0
    entries: List[Entry] = Field(default_factory=list)


class SearchResult(BaseModel):
    """Result of a (possibly paginated) search.

    ``start_index`` is the offset reported for the first page fetched,
    whatever number of pages were needed afterwards.
    """

    query: str = ""
    total_results: int = 0
    start_index: int = 0
    items_per_page: int = 0
    entries: List[Entry] = Field(default_factory=list)


DownloadStatus = Literal["downloaded", "skipped", "failed"]


class DownloadOutcome(BaseModel):
    """Outcome for one requested identifier in a download batch."""

    id: str
    path: str
    status: DownloadStatus
    error: Optional[str] = None
