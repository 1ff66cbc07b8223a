"""PDF text extraction service using Docling."""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO

from rsearch.exceptions import PDFParsingException

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class PDFParserService:
    """
    Plain-text extraction from downloaded PDF bytes.

    Features:
    - Docling converter created lazily, OCR disabled
    - Size and magic-byte checks before any parsing
    - Parsing runs in a thread pool under a timeout
    """

    def __init__(self, max_file_size_mb: int = 50, timeout: int = 120):
        """
        Initialize PDF parser service.

        Args:
            max_file_size_mb: Maximum payload size in MB
            timeout: Extraction timeout in seconds
        """
        self.max_file_size_mb = max_file_size_mb
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=2)
        self._converter = None

    def _get_converter(self):
        """Lazy initialization of Docling converter."""
        if self._converter is None:
            try:
                from docling.datamodel.base_models import InputFormat
                from docling.datamodel.pipeline_options import PdfPipelineOptions
                from docling.document_converter import DocumentConverter, PdfFormatOption
            except ImportError as e:
                logger.error("Docling not installed. Run: pip install 'rsearch[pdf]'")
                raise PDFParsingException("Docling not installed") from e

            pipeline_options = PdfPipelineOptions(do_ocr=False)
            self._converter = DocumentConverter(
                format_options={
                    InputFormat.PDF: PdfFormatOption(pipeline_options=pipeline_options)
                }
            )
            logger.info("Docling converter initialized")
        return self._converter

    def _validate_payload(self, pdf_bytes: bytes) -> None:
        """
        Validate PDF bytes before parsing.

        Raises:
            PDFParsingException: If validation fails
        """
        if not pdf_bytes:
            raise PDFParsingException("Empty PDF payload")

        size_mb = len(pdf_bytes) / (1024 * 1024)
        if size_mb > self.max_file_size_mb:
            raise PDFParsingException(
                f"File too large: {size_mb:.1f}MB > {self.max_file_size_mb}MB"
            )

        if not pdf_bytes.startswith(PDF_MAGIC):
            raise PDFParsingException("Invalid PDF payload (missing %PDF- header)")

    def _extract_sync(self, pdf_bytes: bytes, name: str) -> str:
        """Synchronous extraction (runs in thread pool)."""
        converter = self._get_converter()
        from docling.datamodel.base_models import DocumentStream

        try:
            result = converter.convert(DocumentStream(name=name, stream=BytesIO(pdf_bytes)))
            return result.document.export_to_text()
        except Exception as e:
            logger.error(f"Docling parsing failed: {e}")
            raise PDFParsingException(f"Parsing failed: {e}") from e

    async def extract_text(self, pdf_bytes: bytes, name: str = "paper.pdf") -> str:
        """
        Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF payload
            name: Document name reported to Docling

        Returns:
            Extracted text

        Raises:
            PDFParsingException: Invalid payload, missing Docling, failure or timeout
        """
        self._validate_payload(pdf_bytes)

        started = time.monotonic()
        loop = asyncio.get_running_loop()
        try:
            text = await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._extract_sync, pdf_bytes, name),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Parsing timeout ({self.timeout}s): {name}")
            raise PDFParsingException(f"Parsing timed out after {self.timeout}s") from e

        logger.info(f"Parsed {name}: {len(text)} chars, {time.monotonic() - started:.1f}s")
        return text
