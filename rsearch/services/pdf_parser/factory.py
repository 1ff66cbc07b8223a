"""PDF parser service factory"""

import logging
from functools import lru_cache

from rsearch.config import get_settings
from rsearch.services.pdf_parser.service import PDFParserService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def make_pdf_parser_service() -> PDFParserService:
    """
    Create and cache the text extraction service.

    Building the service is cheap; Docling is only imported on the first
    extraction, so a client that never exports text never needs it.

    Returns:
        PDFParserService instance (singleton)
    """
    parser_settings = get_settings().pdf_parser
    logger.debug(
        f"PDF parser: max {parser_settings.max_file_size_mb}MB, timeout {parser_settings.timeout}s"
    )
    return PDFParserService(
        max_file_size_mb=parser_settings.max_file_size_mb,
        timeout=parser_settings.timeout,
    )


def reset_pdf_parser_cache() -> None:
    """Drop the cached service so the next call re-reads settings."""
    make_pdf_parser_service.cache_clear()
