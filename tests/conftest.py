"""Shared pytest fixtures."""

# Clear settings cache before any imports to prevent stale values
from rsearch.config import get_settings

get_settings.cache_clear()

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from rsearch.services.arxiv.client import ArxivClient
from tests.helpers import FakeArxiv


@pytest_asyncio.fixture
async def fake_arxiv():
    """Local aiohttp server standing in for export.arxiv.org."""
    fake = FakeArxiv()
    app = web.Application()
    app.router.add_route("GET", "/{tail:.*}", fake.handler)

    server = TestServer(app)
    await server.start_server()
    fake.api_url = str(server.make_url("/api/query"))
    fake.pdf_url = str(server.make_url("/pdf/"))

    yield fake

    await server.close()


@pytest.fixture
def make_client(fake_arxiv):
    """Build clients pointed at the fake server, fast and uncached by default."""

    def _make(**overrides) -> ArxivClient:
        values = {
            "api_base_url": fake_arxiv.api_url,
            "pdf_base_url": fake_arxiv.pdf_url,
            "rate_limit_delay": 0,
            "retry_delay": 0,
            "cache": False,
        }
        values.update(overrides)
        return ArxivClient(**values)

    return _make
