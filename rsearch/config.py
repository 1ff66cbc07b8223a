"""
Centralized configuration using Pydantic Settings.

Why it's needed:
    The arXiv client has a dozen knobs (endpoints, timeout, politeness
    interval, retry budget, cache location) and they must be settable from
    the environment for scripted runs, from a .env file during development,
    and from CLI flags for one-off invocations. Pydantic Settings reads the
    first two and gives us one typed object to apply the third on top of.

What it does:
    - Each concern gets its own Settings class with env_prefix (e.g. ARXIV__)
    - The root Settings class composes them into one object
    - Environment variables override defaults: ARXIV__RATE_LIMIT_DELAY=5
      overrides the default 3.0 seconds
    - to_client_config() resolves the settings into the immutable
      ArxivClientConfig snapshot the client owns

Architecture:
    Settings is cached and accessed via get_settings(). Factories
    (make_arxiv_client, make_response_cache, make_pdf_parser_service) read
    it; the CLI builds its own client from settings plus flag overrides.
"""

from functools import lru_cache
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rsearch import __version__
from rsearch.schemas.arxiv.client_config import ArxivClientConfig


class ArxivSettings(BaseSettings):
    """arXiv API settings."""

    model_config = SettingsConfigDict(env_prefix="ARXIV__")

    base_url: str = "https://export.arxiv.org/api/query"
    pdf_base_url: str = "https://arxiv.org/pdf/"
    user_agent: str = f"rsearch/{__version__}"
    contact: Optional[str] = None  # appended to User-Agent as mailto:
    timeout: float = 20.0
    rate_limit_delay: float = 3.0  # arXiv asks for 3s between requests
    max_retries: int = 3
    retry_delay: float = 0.5  # Base delay (exponential backoff)
    page_size: int = 100
    debug: bool = False


class CacheSettings(BaseSettings):
    """Response cache settings.

    The in-memory tier is always on when enabled; the disk tier only when
    dir is set. ttl is in seconds, unset means entries never expire.
    """

    model_config = SettingsConfigDict(env_prefix="CACHE__")

    enabled: bool = True
    dir: Optional[str] = None
    ttl: Optional[float] = None


class DownloadSettings(BaseSettings):
    """PDF download settings."""

    model_config = SettingsConfigDict(env_prefix="DOWNLOAD__")

    dir: Optional[str] = None


class PDFParserSettings(BaseSettings):
    """PDF text extraction settings."""

    model_config = SettingsConfigDict(env_prefix="PDF_PARSER__")

    max_file_size_mb: int = 50
    timeout: int = 120


class AppSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="APP__")

    log_level: str = "INFO"


class Settings(BaseSettings):
    """Root settings class composing all sub-settings into one object.

    Access pattern: settings.arxiv.base_url, settings.cache.dir, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    arxiv: ArxivSettings = Field(default_factory=ArxivSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    pdf_parser: PDFParserSettings = Field(default_factory=PDFParserSettings)
    app: AppSettings = Field(default_factory=AppSettings)

    def to_client_config(self, **overrides: Any) -> ArxivClientConfig:
        """Resolve settings (plus explicit overrides) into a client config.

        Overrides whose value is None are ignored, so CLI flags that were not
        given fall through to the environment.

        Raises:
            pydantic.ValidationError: If the resolved values are invalid
        """
        user_agent = self.arxiv.user_agent
        if self.arxiv.contact:
            user_agent = f"{user_agent} (mailto:{self.arxiv.contact})"

        values: dict[str, Any] = {
            "api_base_url": self.arxiv.base_url,
            "pdf_base_url": self.arxiv.pdf_base_url,
            "user_agent": user_agent,
            "timeout": self.arxiv.timeout,
            "rate_limit_delay": self.arxiv.rate_limit_delay,
            "cache": self.cache.enabled,
            "cache_dir": self.cache.dir,
            "cache_ttl": self.cache.ttl,
            "page_size": self.arxiv.page_size,
            "max_retries": self.arxiv.max_retries,
            "retry_delay": self.arxiv.retry_delay,
            "debug": self.arxiv.debug,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ArxivClientConfig(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
