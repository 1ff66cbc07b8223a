"""Services layer: arXiv client, response cache, PDF text extraction."""
