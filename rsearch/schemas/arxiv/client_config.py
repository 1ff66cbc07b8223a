"""Immutable, validated configuration snapshot owned by one ArxivClient."""

from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rsearch import __version__
from rsearch.schemas.arxiv.search import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


def _require_http_url(name: str, value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https"):
        raise ValueError(f"{name} must use http or https.")
    if not parts.netloc:
        raise ValueError(f"Invalid {name}: {value}")
    return value


class ArxivClientConfig(BaseModel):
    """
    Resolved client configuration.

    All intervals are in seconds. Validated once, at construction; a
    malformed URL or a non-positive setting fails here instead of being
    clamped to something that works.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_base_url: str = "https://export.arxiv.org/api/query"
    pdf_base_url: str = "https://arxiv.org/pdf/"
    user_agent: str = f"rsearch/{__version__}"
    timeout: float = Field(default=20.0, gt=0)
    rate_limit_delay: float = Field(default=3.0, ge=0)  # 0 disables throttling
    cache: bool = True
    cache_dir: Optional[str] = None
    cache_ttl: Optional[float] = Field(default=None, gt=0)  # None: never expires
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=MAX_PAGE_SIZE)
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=0.5, ge=0)
    debug: bool = False

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        return _require_http_url("api_base_url", v.strip())

    @field_validator("pdf_base_url")
    @classmethod
    def validate_pdf_base_url(cls, v: str) -> str:
        """Require http(s) and guarantee a trailing slash."""
        v = _require_http_url("pdf_base_url", v.strip())
        return v if v.endswith("/") else f"{v}/"

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("user_agent must not be empty.")
        return v.strip()
