"""rsearch: arXiv search, metadata and PDF download client."""

__version__ = "0.1.0"
