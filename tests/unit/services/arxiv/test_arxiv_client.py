"""Tests for ArxivClient: configuration, pagination, caching and ID lookups."""

import pytest

from rsearch.exceptions import (
    ArxivParseError,
    ArxivResponseError,
    ConfigurationError,
    InvalidArxivIdError,
    ValidationException,
)
from rsearch.schemas.arxiv.client_config import ArxivClientConfig
from rsearch.schemas.arxiv.search import SearchRequest
from rsearch.services.arxiv.client import ArxivClient
from tests.helpers import PDF_BYTES, ScriptedResponse, atom_entry, atom_feed


def _entries(*ids):
    return [atom_entry(arxiv_id) for arxiv_id in ids]


class TestClientConfiguration:
    """Tests for construction-time validation."""

    def test_defaults(self):
        config = ArxivClient().get_config()

        assert config.api_base_url == "https://export.arxiv.org/api/query"
        assert config.pdf_base_url == "https://arxiv.org/pdf/"
        assert config.rate_limit_delay == 3.0
        assert config.page_size == 100
        assert config.max_retries == 3
        assert config.user_agent.startswith("rsearch/")

    def test_pdf_base_url_gets_trailing_slash(self):
        client = ArxivClient(pdf_base_url="https://mirror.example.org/pdf")
        assert client.get_config().pdf_base_url == "https://mirror.example.org/pdf/"

    def test_overrides_apply_on_top_of_config(self):
        base = ArxivClientConfig(timeout=5.0)
        client = ArxivClient(config=base, max_retries=0)

        assert client.get_config().timeout == 5.0
        assert client.get_config().max_retries == 0

    def test_non_http_url_rejected(self):
        with pytest.raises(ConfigurationError, match="api_base_url must use http or https."):
            ArxivClient(api_base_url="ftp://export.arxiv.org/api/query")

    @pytest.mark.parametrize(
        "field, value",
        [
            ("timeout", 0),
            ("rate_limit_delay", -1),
            ("max_retries", -1),
            ("retry_delay", -0.5),
            ("page_size", 0),
            ("page_size", 2001),
            ("cache_ttl", 0),
            ("user_agent", "   "),
        ],
    )
    def test_invalid_values_fail_fast(self, field, value):
        with pytest.raises(ConfigurationError, match=field):
            ArxivClient(**{field: value})

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError, match="page_sise"):
            ArxivClient(page_sise=10)

    def test_config_is_immutable(self):
        config = ArxivClient().get_config()
        with pytest.raises(Exception):
            config.timeout = 1.0


class TestPaginationValidation:
    """Paging bounds are rejected before any request is sent."""

    @pytest.mark.parametrize(
        "request_kwargs, message",
        [
            ({"page_size": 2001}, "pageSize cannot exceed 2000."),
            ({"page_size": 0}, "pageSize must be a positive integer."),
            ({"max_results": 0}, "maxResults must be a positive integer."),
            ({"max_results": 30001}, "maxResults cannot exceed 30000."),
            ({"start": -1}, "start must be a non-negative integer."),
        ],
    )
    @pytest.mark.asyncio
    async def test_rejected(self, fake_arxiv, make_client, request_kwargs, message):
        client = make_client()

        with pytest.raises(ValidationException, match=message):
            await client.search(SearchRequest(search_query="all:x", **request_kwargs))

        assert fake_arxiv.requests == []

    @pytest.mark.asyncio
    async def test_missing_query_and_ids(self, fake_arxiv, make_client):
        with pytest.raises(ValidationException, match="Provide a search query"):
            await make_client().search(SearchRequest())

        assert fake_arxiv.requests == []


class TestPagination:
    """Tests for the pagination loop."""

    @pytest.mark.asyncio
    async def test_stops_when_total_reached(self, fake_arxiv, make_client):
        """total=3, page_size=2, max_results=10 → exactly two requests."""
        fake_arxiv.queue_feed(
            atom_feed(_entries("2101.00001v1", "2101.00002v1"), total=3, start=0, per_page=2),
            atom_feed(_entries("2101.00003v1"), total=3, start=2, per_page=2),
        )

        result = await make_client().search(
            SearchRequest(search_query="all:x", max_results=10, page_size=2)
        )

        assert len(fake_arxiv.requests) == 2
        assert [r.query["start"] for r in fake_arxiv.requests] == ["0", "2"]
        assert [r.query["max_results"] for r in fake_arxiv.requests] == ["2", "2"]
        assert [e.id for e in result.entries] == ["2101.00001v1", "2101.00002v1", "2101.00003v1"]
        assert result.total_results == 3
        assert result.items_per_page == 2

    @pytest.mark.asyncio
    async def test_start_index_from_first_page(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(
            atom_feed(_entries("a1", "a2"), total=100, start=5, per_page=2),
            atom_feed(_entries("a3", "a4"), total=100, start=7, per_page=2),
        )

        result = await make_client().search(
            SearchRequest(search_query="all:x", start=5, max_results=4, page_size=2)
        )

        assert result.start_index == 5
        assert len(result.entries) == 4
        assert [r.query["start"] for r in fake_arxiv.requests] == ["5", "7"]

    @pytest.mark.asyncio
    async def test_last_page_shrinks_to_remaining(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(
            atom_feed(_entries("a1", "a2"), total=100, per_page=2),
            atom_feed(_entries("a3"), total=100, start=2, per_page=1),
        )

        await make_client().search(SearchRequest(search_query="all:x", max_results=3, page_size=2))

        assert [r.query["max_results"] for r in fake_arxiv.requests] == ["2", "1"]

    @pytest.mark.asyncio
    async def test_single_request_without_explicit_max_results(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("a1", "a2"), total=500, per_page=2))

        result = await make_client(page_size=2).search(SearchRequest(search_query="all:x"))

        assert len(fake_arxiv.requests) == 1
        assert fake_arxiv.requests[0].query["max_results"] == "2"
        assert result.total_results == 500

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(
            atom_feed(_entries("a1", "a2"), total=50, per_page=2),
            atom_feed([], total=50, start=2, per_page=0),
        )

        result = await make_client().search(
            SearchRequest(search_query="all:x", max_results=10, page_size=2)
        )

        assert len(fake_arxiv.requests) == 2
        assert len(result.entries) == 2

    @pytest.mark.asyncio
    async def test_query_echoed_and_sort_forwarded(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("a1")))

        result = await make_client().search(
            SearchRequest(search_query=" cat:cs.AI ", sort_by="submittedDate", sort_order="ascending")
        )

        assert result.query == "cat:cs.AI"
        query = fake_arxiv.requests[0].query
        assert query["search_query"] == "cat:cs.AI"
        assert query["sortBy"] == "submittedDate"
        assert query["sortOrder"] == "ascending"

    @pytest.mark.asyncio
    async def test_base_url_parameters_preserved(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("a1")))
        client = make_client(api_base_url=f"{fake_arxiv.api_url}?token=abc&start=99")

        await client.search(SearchRequest(search_query="all:x"))

        query = fake_arxiv.requests[0].query
        assert query["token"] == "abc"
        assert query["start"] == "0"

    @pytest.mark.asyncio
    async def test_metadata_headers(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("a1")))

        await make_client(user_agent="rsearch-test/1.0").search(SearchRequest(search_query="all:x"))

        headers = fake_arxiv.requests[0].headers
        assert headers["User-Agent"] == "rsearch-test/1.0"
        assert headers["Accept"] == "application/atom+xml"

    @pytest.mark.asyncio
    async def test_html_body_raises_parse_error(self, fake_arxiv, make_client):
        fake_arxiv.queue(ScriptedResponse(body="<html><body>Oops</body></html>"))

        with pytest.raises(ArxivParseError):
            await make_client().search(SearchRequest(search_query="all:x"))

    @pytest.mark.asyncio
    async def test_exhausted_retries_propagate(self, fake_arxiv, make_client):
        fake_arxiv.queue(*[ScriptedResponse(status=503) for _ in range(3)])

        with pytest.raises(ArxivResponseError) as exc_info:
            await make_client(max_retries=2).search(SearchRequest(search_query="all:x"))

        assert exc_info.value.status == 503
        assert len(fake_arxiv.requests) == 3


class TestCaching:
    """Tests for response caching through the client."""

    @pytest.mark.asyncio
    async def test_memory_cache_skips_second_request(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("a1")))
        client = make_client(cache=True)
        request = SearchRequest(search_query="all:x")

        first = await client.search(request)
        second = await client.search(request)

        assert len(fake_arxiv.requests) == 1
        assert first == second

    @pytest.mark.asyncio
    async def test_disk_cache_shared_across_clients(self, fake_arxiv, make_client, tmp_path):
        """Identical searches from two clients cost one network call."""
        fake_arxiv.queue_feed(atom_feed(_entries("a1", "a2")))
        request = SearchRequest(search_query="all:x", max_results=2)

        first = await make_client(cache=True, cache_dir=str(tmp_path)).search(request)
        second = await make_client(cache=True, cache_dir=str(tmp_path)).search(request)

        assert len(fake_arxiv.requests) == 1
        assert [e.id for e in second.entries] == [e.id for e in first.entries]

    @pytest.mark.asyncio
    async def test_cache_disabled(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("a1")), atom_feed(_entries("a1")))
        client = make_client(cache=False)

        await client.search(SearchRequest(search_query="all:x"))
        await client.search(SearchRequest(search_query="all:x"))

        assert len(fake_arxiv.requests) == 2

    @pytest.mark.asyncio
    async def test_failed_responses_not_cached(self, fake_arxiv, make_client):
        fake_arxiv.queue(ScriptedResponse(status=404), ScriptedResponse(body=atom_feed(_entries("a1"))))
        client = make_client(cache=True, max_retries=0)

        with pytest.raises(ArxivResponseError):
            await client.search(SearchRequest(search_query="all:x"))
        result = await client.search(SearchRequest(search_query="all:x"))

        assert len(result.entries) == 1
        assert len(fake_arxiv.requests) == 2


class TestFetchByIds:
    """Tests for fetch_by_ids."""

    @pytest.mark.asyncio
    async def test_ids_normalized(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("2101.00001v1", "2101.00002v3")))

        result = await make_client().fetch_by_ids(
            ["arXiv:2101.00001v1", "https://arxiv.org/abs/2101.00002v3 2101.00003.pdf"]
        )

        assert fake_arxiv.requests[0].query["id_list"] == "2101.00001v1,2101.00002v3,2101.00003"
        assert "search_query" not in fake_arxiv.requests[0].query
        assert len(result.entries) == 2
        assert result.query == ""

    @pytest.mark.asyncio
    async def test_empty_list_short_circuits(self, fake_arxiv, make_client):
        result = await make_client().fetch_by_ids([])

        assert result.entries == []
        assert result.total_results == 0
        assert fake_arxiv.requests == []

    @pytest.mark.asyncio
    async def test_empty_list_still_validates_paging(self, fake_arxiv, make_client):
        with pytest.raises(ValidationException, match="maxResults cannot exceed 30000."):
            await make_client().fetch_by_ids([], max_results=40000)

    @pytest.mark.asyncio
    async def test_invalid_id_rejected(self, fake_arxiv, make_client):
        with pytest.raises(InvalidArxivIdError, match="Invalid arXiv ID in id list."):
            await make_client().fetch_by_ids(["2101.00001", "arxiv:"])

        assert fake_arxiv.requests == []

    @pytest.mark.asyncio
    async def test_options_forwarded(self, fake_arxiv, make_client):
        fake_arxiv.queue_feed(atom_feed(_entries("2101.00001v1")))

        await make_client().fetch_by_ids(["2101.00001"], sort_by="lastUpdatedDate", max_results=5)

        query = fake_arxiv.requests[0].query
        assert query["sortBy"] == "lastUpdatedDate"
        assert query["max_results"] == "5"


class TestDownloadBinary:
    """Tests for download_binary."""

    @pytest.mark.asyncio
    async def test_fetches_pdf_by_normalized_id(self, fake_arxiv, make_client):
        fake_arxiv.queue_pdf()

        data = await make_client(cache=True).download_binary("https://arxiv.org/abs/2101.00001v1")

        assert data == PDF_BYTES
        request = fake_arxiv.requests[0]
        assert request.path == "/pdf/2101.00001v1"
        assert "Accept" not in request.headers or request.headers["Accept"] != "application/atom+xml"

    @pytest.mark.asyncio
    async def test_binary_never_cached(self, fake_arxiv, make_client, tmp_path):
        fake_arxiv.queue_pdf()
        fake_arxiv.queue_pdf()
        client = make_client(cache=True, cache_dir=str(tmp_path))

        await client.download_binary("2101.00001")
        await client.download_binary("2101.00001")

        assert len(fake_arxiv.requests) == 2
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_invalid_id(self, fake_arxiv, make_client):
        with pytest.raises(InvalidArxivIdError, match="Invalid arXiv ID."):
            await make_client().download_binary(" arxiv: ")

        assert fake_arxiv.requests == []
