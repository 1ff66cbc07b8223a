"""
Decode arXiv Atom responses into typed records.

feedparser does the XML work. Namespaced elements land on the entry as
``<prefix>_<name>`` keys, so ``<arxiv:comment>`` is ``entry["arxiv_comment"]``
and ``<opensearch:totalResults>`` is ``feed["opensearch_totalresults"]``.
"""

import logging
import re
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import feedparser

from rsearch.exceptions import ArxivParseError
from rsearch.schemas.arxiv.paper import Entry, FeedPage, Link

logger = logging.getLogger(__name__)

_ABS_ID = re.compile(r"arxiv\.org/abs/([^?#]+)", re.IGNORECASE)
_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def _clean(value: Any) -> Optional[str]:
    """Collapse whitespace; None for missing or blank values."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def extract_id(entry_id: str) -> str:
    """Canonical arXiv ID from an Atom ``<id>`` (usually an abs URL)."""
    match = _ABS_ID.search(entry_id)
    if match:
        return match.group(1).rstrip("/")
    return re.sub(r"[?#].*$", "", entry_id).rstrip("/")


def extract_abs_url(entry_id: str) -> str:
    if _HTTP_URL.match(entry_id):
        return entry_id
    return f"https://arxiv.org/abs/{entry_id}"


def pick_pdf_url(links: Tuple[Link, ...]) -> Optional[str]:
    """PDF link: titled "pdf", else typed application/pdf, else a /pdf/ href."""
    for predicate in (
        lambda link: link.title == "pdf",
        lambda link: link.type == "application/pdf",
        lambda link: "/pdf/" in link.href,
    ):
        for link in links:
            if predicate(link):
                return link.href
    return None


def pick_license_url(links: Tuple[Link, ...]) -> Optional[str]:
    for link in links:
        if link.rel == "license":
            return link.href
    return None


def pick_license_fields(raw: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Interpret a license element value.

    Returns:
        (license, license_url); the URL is only set when a value looks like
        an http(s) URL
    """
    values = raw if isinstance(raw, list) else [raw]
    for value in values:
        if not value:
            continue

        if isinstance(value, str):
            text = value.strip()
            if not text:
                continue
            return text, text if _HTTP_URL.match(text) else None

        if isinstance(value, dict):
            href = str(value.get("href") or "").strip()
            text = str(value.get("value") or value.get("text") or "").strip()
            license_text = text or href or None
            license_url = next((c for c in (href, text) if c and _HTTP_URL.match(c)), None)
            if license_text or license_url:
                return license_text, license_url

    return None, None


def _non_negative_int(value: Any, fallback: int) -> int:
    try:
        parsed = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return fallback
    return parsed if parsed >= 0 else fallback


def _parse_links(raw_links: List[Dict[str, Any]]) -> Tuple[Link, ...]:
    links = []
    for raw in raw_links:
        href = _clean(raw.get("href"))
        if not href:
            continue
        links.append(
            Link(
                href=href,
                rel=_clean(raw.get("rel")),
                type=_clean(raw.get("type")),
                title=_clean(raw.get("title")),
            )
        )
    return tuple(links)


def parse_entry(entry: Dict[str, Any]) -> Optional[Entry]:
    """
    Convert one feedparser entry to an Entry.

    Args:
        entry: feedparser entry dict

    Returns:
        Entry, or None when the entry carries no usable id
    """
    entry_id = _clean(entry.get("id")) or ""
    arxiv_id = _clean(extract_id(entry_id))
    if not arxiv_id:
        return None

    links = _parse_links(entry.get("links", []))

    authors = tuple(
        name for name in (_clean(a.get("name")) for a in entry.get("authors", [])) if name
    )
    categories = tuple(
        term for term in (_clean(t.get("term")) for t in entry.get("tags", [])) if term
    )
    primary = entry.get("arxiv_primary_category") or {}
    primary_category = _clean(primary.get("term")) if isinstance(primary, dict) else None

    license_text, license_from_value = pick_license_fields(
        entry.get("arxiv_license") or entry.get("license")
    )

    return Entry(
        id=arxiv_id,
        title=_clean(entry.get("title")) or "",
        summary=_clean(entry.get("summary")) or "",
        published=_clean(entry.get("published")) or "",
        updated=_clean(entry.get("updated")) or "",
        authors=authors,
        categories=categories,
        primary_category=primary_category,
        links=links,
        doi=_clean(entry.get("arxiv_doi")),
        comment=_clean(entry.get("arxiv_comment")),
        journal_ref=_clean(entry.get("arxiv_journal_ref")),
        abs_url=extract_abs_url(entry_id),
        pdf_url=pick_pdf_url(links),
        license=license_text,
        license_url=pick_license_url(links) or license_from_value,
    )


def decode_feed(text: str) -> FeedPage:
    """
    Parse an Atom response body.

    Args:
        text: Raw response body

    Returns:
        FeedPage with opensearch bookkeeping and entries

    Raises:
        ArxivParseError: If the body is not an arXiv Atom feed
    """
    # A stream, so feedparser never treats the body as a URL or file name
    parsed = feedparser.parse(BytesIO(text.encode("utf-8")))
    header = parsed.get("feed", {})

    if parsed.bozo and parsed.get("bozo_exception"):
        logger.warning(f"Feed parsing warning: {parsed.bozo_exception}")

    if not parsed.entries and "opensearch_totalresults" not in header:
        reason = parsed.get("bozo_exception") or "no feed elements found"
        raise ArxivParseError(f"Response is not an Atom feed: {reason}")

    entries = []
    for raw in parsed.entries:
        entry = parse_entry(raw)
        if entry is None:
            logger.debug("Skipping feed entry without an id")
            continue
        entries.append(entry)

    return FeedPage(
        total_results=_non_negative_int(header.get("opensearch_totalresults"), 0),
        start_index=_non_negative_int(header.get("opensearch_startindex"), 0),
        items_per_page=_non_negative_int(header.get("opensearch_itemsperpage"), len(entries)),
        entries=entries,
    )
