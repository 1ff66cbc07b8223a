"""
PDF download and text export for batches of arXiv IDs.

Why it's needed:
    A batch download must never be all-or-nothing. One bad identifier, one
    404 or one unwritable path should cost exactly one item, and the caller
    should get back one outcome per requested ID, in the order given.

What it does:
    - Normalizes each ID and derives a filesystem-safe, contained path
    - Skips files already present unless overwrite is requested
    - Fetches PDF bytes through the client's retrying fetcher (never cached)
    - Optionally gates on license metadata, fetched in one batched call
    - Optionally extracts text and writes Markdown or JSON instead of PDF

Items are processed sequentially so the client's rate limiter keeps its
one-request-at-a-time guarantee for the whole batch.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from rsearch.exceptions import ValidationException
from rsearch.schemas.arxiv.paper import DownloadOutcome, Entry
from rsearch.services.arxiv.identifiers import (
    base_arxiv_id,
    normalize_arxiv_id,
    resolve_output_path,
    safe_stem,
)
from rsearch.services.arxiv.license import has_license_metadata

if TYPE_CHECKING:
    from rsearch.services.arxiv.client import ArxivClient
    from rsearch.services.pdf_parser.service import PDFParserService

logger = logging.getLogger(__name__)

INVALID_ID_ERROR = "Invalid arXiv ID"
LICENSE_MISSING_ERROR = "License metadata missing"
METADATA_MISSING_ERROR = "Metadata not found"

TEXT_FORMATS = ("md", "json")


def render_markdown(entry: Entry, text: str) -> str:
    """Render an entry and its extracted text as a Markdown document."""
    license_line = ""
    if entry.license_url or entry.license:
        license_line = f"**License:** {entry.license_url or entry.license}"

    lines = [
        f"# {entry.title or 'Untitled'}",
        "",
        f"**arXiv ID:** {entry.id}",
        f"**Authors:** {', '.join(entry.authors)}" if entry.authors else "",
        f"**Published:** {entry.published}" if entry.published else "",
        f"**Updated:** {entry.updated}" if entry.updated else "",
        f"**Primary category:** {entry.primary_category}" if entry.primary_category else "",
        f"**Categories:** {', '.join(entry.categories)}" if entry.categories else "",
        f"**Abstract URL:** {entry.abs_url}" if entry.abs_url else "",
        f"**PDF URL:** {entry.pdf_url}" if entry.pdf_url else "",
        license_line,
        "",
        "## Abstract",
        entry.summary,
        "",
        "## Full Text",
        text.strip(),
    ]
    return "\n".join(line for line in lines if line != "")


def render_json(entry: Entry, text: str) -> str:
    return json.dumps({"metadata": entry.model_dump(mode="json"), "text": text}, indent=2)


def _write_atomic(path: Path, data: bytes) -> None:
    """Write to a temp sibling then rename over the destination."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f"{path.name}.tmp")
    try:
        temp_path.write_bytes(data)
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def _placeholder_path(output_dir: Union[str, Path], arxiv_id: str, suffix: str) -> str:
    """Absolute path for outcomes that fail before the real path is resolved."""
    return str(Path(output_dir).expanduser().resolve() / f"{safe_stem(arxiv_id)}{suffix}")


class DownloadManager:
    """Runs download and text-export batches on behalf of an ArxivClient."""

    def __init__(
        self,
        client: "ArxivClient",
        pdf_parser: Optional["PDFParserService"] = None,
    ):
        """
        Initialize download manager.

        Args:
            client: Client used for metadata lookups and PDF bytes
            pdf_parser: Text extractor; built from settings on first export
        """
        self.client = client
        self._pdf_parser = pdf_parser

    @property
    def pdf_parser(self) -> "PDFParserService":
        if self._pdf_parser is None:
            from rsearch.services.pdf_parser.factory import make_pdf_parser_service

            self._pdf_parser = make_pdf_parser_service()
        return self._pdf_parser

    async def _entries_by_base_id(self, ids: Sequence[str]) -> Dict[str, Entry]:
        """One metadata call for all IDs, keyed by version-less ID (first wins)."""
        if not ids:
            return {}
        result = await self.client.fetch_by_ids(list(ids), max_results=len(ids))
        entries: Dict[str, Entry] = {}
        for entry in result.entries:
            entries.setdefault(base_arxiv_id(entry.id), entry)
        return entries

    @staticmethod
    def _normalize_all(ids: Sequence[str]) -> List[Tuple[str, str]]:
        return [(raw, normalize_arxiv_id(raw)) for raw in ids]

    async def download(
        self,
        ids: Sequence[str],
        output_dir: Union[str, Path],
        overwrite: bool = False,
        require_license: bool = False,
    ) -> List[DownloadOutcome]:
        """
        Download PDFs for a batch of IDs.

        Args:
            ids: Identifiers in any common spelling
            output_dir: Destination directory (created as needed)
            overwrite: Re-download files that already exist
            require_license: Fail items whose metadata has no license

        Returns:
            One DownloadOutcome per input ID, in input order

        Raises:
            ArxivAPIException: Only from the batched license lookup
        """
        normalized = self._normalize_all(ids)

        entries: Dict[str, Entry] = {}
        if require_license:
            entries = await self._entries_by_base_id([norm for _, norm in normalized if norm])

        outcomes = []
        for raw, arxiv_id in normalized:
            if not arxiv_id:
                logger.warning(f"Skipping invalid arXiv ID: {raw!r}")
                outcomes.append(
                    DownloadOutcome(
                        id=raw,
                        path=_placeholder_path(output_dir, "", ".pdf"),
                        status="failed",
                        error=INVALID_ID_ERROR,
                    )
                )
                continue

            if require_license:
                entry = entries.get(base_arxiv_id(arxiv_id))
                if entry is None or not has_license_metadata(entry):
                    logger.warning(f"{arxiv_id}: {LICENSE_MISSING_ERROR}")
                    outcomes.append(
                        DownloadOutcome(
                            id=arxiv_id,
                            path=_placeholder_path(output_dir, arxiv_id, ".pdf"),
                            status="failed",
                            error=LICENSE_MISSING_ERROR,
                        )
                    )
                    continue

            outcomes.append(await self._download_one(arxiv_id, output_dir, overwrite))

        downloaded = sum(1 for o in outcomes if o.status == "downloaded")
        logger.info(f"Downloaded {downloaded}/{len(outcomes)} PDF(s) to {output_dir}")
        return outcomes

    async def _download_one(
        self,
        arxiv_id: str,
        output_dir: Union[str, Path],
        overwrite: bool,
    ) -> DownloadOutcome:
        path_str = _placeholder_path(output_dir, arxiv_id, ".pdf")
        try:
            path = resolve_output_path(output_dir, arxiv_id, ".pdf")
            path_str = str(path)

            if path.exists() and not overwrite:
                logger.debug(f"PDF exists, skipping: {path}")
                return DownloadOutcome(id=arxiv_id, path=path_str, status="skipped")

            data = await self.client.download_binary(arxiv_id)
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, _write_atomic, path, data)

            logger.info(f"Downloaded {arxiv_id} -> {path}")
            return DownloadOutcome(id=arxiv_id, path=path_str, status="downloaded")

        except Exception as e:
            logger.warning(f"Download failed for {arxiv_id}: {e}")
            return DownloadOutcome(id=arxiv_id, path=path_str, status="failed", error=str(e))

    async def export_text(
        self,
        ids: Sequence[str],
        output_dir: Union[str, Path],
        fmt: str = "md",
        overwrite: bool = False,
        keep_pdf: bool = False,
        require_license: bool = False,
    ) -> List[DownloadOutcome]:
        """
        Download PDFs, extract their text and write ``<stem>.md`` or ``<stem>.json``.

        Args:
            ids: Identifiers in any common spelling
            output_dir: Destination directory (created as needed)
            fmt: "md" or "json"
            overwrite: Rewrite outputs that already exist
            keep_pdf: Also keep ``<stem>.pdf`` next to the text output
            require_license: Fail items whose metadata has no license

        Returns:
            One DownloadOutcome per input ID, in input order

        Raises:
            ValidationException: Unknown format
            ArxivAPIException: Only from the batched metadata lookup
        """
        if fmt not in TEXT_FORMATS:
            raise ValidationException(f"Unsupported text format: {fmt}")
        suffix = f".{fmt}"

        normalized = self._normalize_all(ids)
        entries = await self._entries_by_base_id([norm for _, norm in normalized if norm])

        outcomes = []
        for raw, arxiv_id in normalized:
            if not arxiv_id:
                outcomes.append(
                    DownloadOutcome(
                        id=raw,
                        path=_placeholder_path(output_dir, "", suffix),
                        status="failed",
                        error=INVALID_ID_ERROR,
                    )
                )
                continue

            entry = entries.get(base_arxiv_id(arxiv_id))
            error = None
            if require_license and (entry is None or not has_license_metadata(entry)):
                error = LICENSE_MISSING_ERROR
            elif entry is None:
                error = METADATA_MISSING_ERROR
            if error:
                logger.warning(f"{arxiv_id}: {error}")
                outcomes.append(
                    DownloadOutcome(
                        id=arxiv_id,
                        path=_placeholder_path(output_dir, arxiv_id, suffix),
                        status="failed",
                        error=error,
                    )
                )
                continue

            outcomes.append(
                await self._export_one(entry, arxiv_id, output_dir, fmt, overwrite, keep_pdf)
            )

        exported = sum(1 for o in outcomes if o.status == "downloaded")
        logger.info(f"Exported {exported}/{len(outcomes)} paper(s) as {fmt} to {output_dir}")
        return outcomes

    async def _export_one(
        self,
        entry: Entry,
        arxiv_id: str,
        output_dir: Union[str, Path],
        fmt: str,
        overwrite: bool,
        keep_pdf: bool,
    ) -> DownloadOutcome:
        suffix = f".{fmt}"
        path_str = _placeholder_path(output_dir, arxiv_id, suffix)
        try:
            path = resolve_output_path(output_dir, arxiv_id, suffix)
            path_str = str(path)

            if path.exists() and not overwrite:
                return DownloadOutcome(id=arxiv_id, path=path_str, status="skipped")

            pdf_bytes = await self.client.download_binary(entry.id)
            text = await self.pdf_parser.extract_text(
                pdf_bytes, name=f"{safe_stem(arxiv_id)}.pdf"
            )
            payload = render_markdown(entry, text) if fmt == "md" else render_json(entry, text)

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, _write_atomic, path, payload.encode("utf-8"))

            if keep_pdf:
                pdf_path = resolve_output_path(output_dir, arxiv_id, ".pdf")
                if overwrite or not pdf_path.exists():
                    await loop.run_in_executor(None, _write_atomic, pdf_path, pdf_bytes)

            logger.info(f"Exported {arxiv_id} -> {path}")
            return DownloadOutcome(id=arxiv_id, path=path_str, status="downloaded")

        except Exception as e:
            logger.warning(f"Text export failed for {arxiv_id}: {e}")
            return DownloadOutcome(id=arxiv_id, path=path_str, status="failed", error=str(e))
