"""arXiv identifier normalization and download path construction."""

import re
from pathlib import Path
from typing import Union

PLACEHOLDER_STEM = "paper"

_WHITESPACE = re.compile(r"\s+")
_SCHEME_PREFIX = re.compile(r"^(?:arxiv:)+", re.IGNORECASE)
_URL_PREFIX = re.compile(r"^https?://(?:www\.)?arxiv\.org/(?:abs|pdf)/", re.IGNORECASE)
_QUERY_OR_FRAGMENT = re.compile(r"[?#].*$")
_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)
_VERSION_SUFFIX = re.compile(r"v\d+$")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def normalize_arxiv_id(value: str) -> str:
    """
    Reduce any common spelling of an arXiv identifier to the bare ID.

    Handles ``arXiv:`` prefixes, abs/pdf URLs, query strings, fragments,
    ``.pdf`` suffixes, stray slashes and whitespace. The result is
    idempotent: normalizing a normalized ID returns it unchanged. An empty
    result means the input was not an identifier at all.

    Examples:
        >>> normalize_arxiv_id("https://arxiv.org/abs/5678.1234v2#section")
        '5678.1234v2'
        >>> normalize_arxiv_id("/1234.5678.pdf?download=1")
        '1234.5678'
    """
    result = _WHITESPACE.sub("", value or "")
    while True:
        stripped = _SCHEME_PREFIX.sub("", result)
        stripped = _URL_PREFIX.sub("", stripped)
        stripped = _QUERY_OR_FRAGMENT.sub("", stripped)
        stripped = _PDF_SUFFIX.sub("", stripped.strip("/"))
        stripped = stripped.rstrip("/")
        # One pass can uncover another prefix or suffix (abs/arXiv:..., .pdf.pdf)
        if stripped == result:
            return result
        result = stripped


def base_arxiv_id(arxiv_id: str) -> str:
    """Drop the version suffix: ``2101.00001v3`` → ``2101.00001``."""
    return _VERSION_SUFFIX.sub("", arxiv_id)


def safe_stem(arxiv_id: str) -> str:
    """Filesystem-safe file stem for an ID (``hep-th/9901001`` → ``hep-th_9901001``)."""
    stem = _UNSAFE_CHARS.sub("_", arxiv_id)
    return stem or PLACEHOLDER_STEM


def resolve_output_path(output_dir: Union[str, Path], arxiv_id: str, suffix: str = ".pdf") -> Path:
    """
    Resolve the destination file for an ID inside ``output_dir``.

    Args:
        output_dir: Target directory (need not exist yet)
        arxiv_id: Normalized identifier
        suffix: File extension including the dot

    Returns:
        Absolute path, guaranteed to be inside output_dir

    Raises:
        ValueError: If the resolved path would leave output_dir
    """
    root = Path(output_dir).expanduser().resolve()
    path = (root / f"{safe_stem(arxiv_id)}{suffix}").resolve()
    if not path.is_relative_to(root) or path == root:
        raise ValueError(f"Refusing to write outside {root}: {path}")
    return path
