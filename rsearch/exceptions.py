"""
rsearch Custom Exception Hierarchy.

Why it's needed:
    The client has to tell apart three very different kinds of failure:
    the caller asked for something impossible (bad paging bounds, no query),
    the network let us down (timeout, reset connection), or arXiv answered
    with an error status. Only the last two are ever retried, and of those
    only some statuses. Custom exceptions make that classification a matter
    of `isinstance`, never of string matching.

How it helps:
    - Validation errors are raised synchronously, before any request is sent
    - The retry loop asks `is_retryable()` instead of parsing messages
    - Transport errors are wrapped so they never look like response errors
    - The CLI maps each branch of the tree to its own exit code

Hierarchy:
    Exception
    ├── ValidationException (ValueError) ─ rejected before any network I/O
    │   ├── ConfigurationError           ─ invalid client settings
    │   └── InvalidArxivIdError          ─ identifier normalizes to nothing
    ├── ArxivAPIException                ─ outbound request failed
    │   ├── ArxivTransportError          ─ connection refused/reset → retry
    │   │   └── ArxivAPITimeoutError     ─ deadline elapsed → retry
    │   ├── ArxivResponseError           ─ non-2xx status
    │   │   └── ArxivAPIRateLimitError   ─ HTTP 429 → honor Retry-After
    │   └── ArxivParseError              ─ body is not an Atom feed
    └── PDFParsingException              ─ text extraction failed
"""

from typing import Optional

# =============================================================
# Validation Exceptions
# =============================================================
# Raised synchronously by the client facade, the query builder and the
# config snapshot. Never retried.


class ValidationException(ValueError):
    """Base exception for requests rejected before any network call."""


class ConfigurationError(ValidationException):
    """Raised when client settings are invalid at construction time.

    Examples: a non-http(s) base URL, a zero timeout, a negative retry
    budget. Values are never clamped silently.
    """


class InvalidArxivIdError(ValidationException):
    """Raised when an identifier is empty after normalization."""


# =============================================================
# ArXiv API Exceptions
# =============================================================
# Each failure mode has a different recovery strategy:
#   - Transport / timeout → retry with jittered exponential backoff
#   - 408, 429, 5xx       → retry, honoring Retry-After when present
#   - Other statuses      → fail on first occurrence
#   - Parse error         → surface to the caller


class ArxivAPIException(Exception):
    """Base exception for all arXiv API interactions."""


class ArxivTransportError(ArxivAPIException):
    """Raised when the request never produced an HTTP response.

    Wraps the underlying aiohttp/asyncio error as ``__cause__``.
    """


class ArxivAPITimeoutError(ArxivTransportError):
    """Raised when an attempt exceeds the configured timeout."""


class ArxivResponseError(ArxivAPIException):
    """Raised when arXiv answers with a non-2xx status.

    The message is ``"<status> <reason>"``, e.g. ``"400 Bad Request"``.
    """

    def __init__(
        self,
        status: int,
        reason: str = "",
        retry_after: Optional[float] = None,
    ):
        self.status = status
        self.reason = reason
        self.retry_after = retry_after
        super().__init__(f"{status} {reason}".strip())


class ArxivAPIRateLimitError(ArxivResponseError):
    """Raised when arXiv returns HTTP 429 (Too Many Requests)."""


class ArxivParseError(ArxivAPIException):
    """Raised when the response body cannot be decoded as an Atom feed.

    Happens when arXiv returns an HTML error page with a 200 status.
    """


# =============================================================
# PDF Parsing Exceptions
# =============================================================


class PDFParsingException(Exception):
    """Raised when text cannot be extracted from a downloaded PDF.

    Common causes: corrupted payload, not a PDF at all, docling missing,
    extraction timeout.
    """
