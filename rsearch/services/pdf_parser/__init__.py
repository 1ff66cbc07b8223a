"""PDF parser service module."""

from rsearch.services.pdf_parser.factory import make_pdf_parser_service, reset_pdf_parser_cache
from rsearch.services.pdf_parser.service import PDFParserService

__all__ = [
    "PDFParserService",
    "make_pdf_parser_service",
    "reset_pdf_parser_cache",
]
