"""Command-line interface for rsearch.

Results are printed to stdout as JSON. Exit codes:
    0  success
    1  request failure, or at least one download failed
    2  invalid arguments or configuration
    3  the only failures are papers without license metadata
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from rsearch import __version__
from rsearch.config import Settings, get_settings
from rsearch.exceptions import ArxivAPIException, ValidationException
from rsearch.schemas.arxiv.paper import DownloadOutcome, SearchResult
from rsearch.schemas.arxiv.search import SearchRequest
from rsearch.services.arxiv.client import ArxivClient
from rsearch.services.arxiv.download import LICENSE_MISSING_ERROR
from rsearch.services.arxiv.license import filter_by_license

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_LICENSE = 3


class UsageError(Exception):
    """Invalid combination of command-line arguments."""


def _add_client_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("client options")
    group.add_argument("--api-base-url", help="arXiv API endpoint")
    group.add_argument("--pdf-base-url", help="PDF endpoint prefix")
    group.add_argument("--user-agent", help="User-Agent header")
    group.add_argument("--contact", help="Contact e-mail appended to the User-Agent")
    group.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    group.add_argument("--rate-limit", type=float, help="Seconds between requests (0 disables)")
    group.add_argument("--max-retries", type=int, help="Retries after the first attempt")
    group.add_argument("--retry-base-delay", type=float, help="Base backoff delay in seconds")
    group.add_argument("--cache-dir", help="Directory for the on-disk response cache")
    group.add_argument("--cache-ttl", type=float, help="Disk cache TTL in seconds")
    group.add_argument("--no-cache", action="store_true", help="Disable response caching")
    group.add_argument("--debug", "--verbose", action="store_true", help="Log requests and responses")


def _add_paging_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-results", type=int, help="Total number of results wanted")
    parser.add_argument("--start", type=int, help="Offset of the first result")
    parser.add_argument("--page-size", type=int, help="Results per request (max 2000)")
    parser.add_argument(
        "--sort-by", choices=["relevance", "lastUpdatedDate", "submittedDate"], help="Sort field"
    )
    parser.add_argument("--sort-order", choices=["ascending", "descending"], help="Sort direction")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(prog="rsearch", description="arXiv search and download client")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    search_parser = subparsers.add_parser("search", help="Search arXiv")
    search_parser.add_argument("query", nargs="+", help="arXiv query, e.g. cat:cs.AI AND ti:graph")
    _add_paging_options(search_parser)
    search_parser.add_argument(
        "--require-license", action="store_true", help="Drop entries without license metadata"
    )
    _add_client_options(search_parser)

    fetch_parser = subparsers.add_parser("fetch", help="Fetch metadata for arXiv IDs")
    fetch_parser.add_argument("ids", nargs="+", help="arXiv IDs, URLs or arXiv: references")
    _add_paging_options(fetch_parser)
    fetch_parser.add_argument(
        "--require-license", action="store_true", help="Drop entries without license metadata"
    )
    _add_client_options(fetch_parser)

    download_parser = subparsers.add_parser("download", help="Download PDFs or extracted text")
    download_parser.add_argument("ids", nargs="*", help="arXiv IDs, URLs or arXiv: references")
    download_parser.add_argument("--query", help="Download the results of this search instead")
    _add_paging_options(download_parser)
    download_parser.add_argument("--out-dir", help="Output directory (default: DOWNLOAD__DIR or .)")
    download_parser.add_argument(
        "--format", choices=["pdf", "md", "json"], default="pdf", help="Output format"
    )
    download_parser.add_argument(
        "--keep-pdf", action="store_true", help="Keep the PDF next to md/json output"
    )
    download_parser.add_argument("--overwrite", action="store_true", help="Replace existing files")
    download_parser.add_argument(
        "--require-license", action="store_true", help="Skip papers without license metadata"
    )
    _add_client_options(download_parser)

    urls_parser = subparsers.add_parser("urls", help="Abstract and PDF URLs for a query or IDs")
    urls_parser.add_argument("query", nargs="*", help="arXiv query (ignored when --ids is given)")
    urls_parser.add_argument("--ids", nargs="+", help="arXiv IDs (space- or comma-separated)")
    _add_paging_options(urls_parser)
    urls_parser.add_argument(
        "--require-license", action="store_true", help="Drop entries without license metadata"
    )
    _add_client_options(urls_parser)

    config_parser = subparsers.add_parser("config", help="Show the effective client configuration")
    _add_client_options(config_parser)

    return parser


def build_client(args: argparse.Namespace, settings: Settings) -> ArxivClient:
    """
    Build a client from settings plus command-line overrides.

    Raises:
        pydantic.ValidationError: If the resolved configuration is invalid
    """
    identity = {
        key: value
        for key, value in (("user_agent", args.user_agent), ("contact", args.contact))
        if value
    }
    if identity:
        settings = settings.model_copy(
            update={"arxiv": settings.arxiv.model_copy(update=identity)}
        )

    config = settings.to_client_config(
        api_base_url=args.api_base_url,
        pdf_base_url=args.pdf_base_url,
        timeout=args.timeout,
        rate_limit_delay=args.rate_limit,
        max_retries=args.max_retries,
        retry_delay=args.retry_base_delay,
        cache=False if args.no_cache else None,
        cache_dir=args.cache_dir,
        cache_ttl=args.cache_ttl,
        page_size=getattr(args, "page_size", None),
        debug=True if args.debug else None,
    )
    return ArxivClient(config=config)


def _paging(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "start": args.start,
        "max_results": args.max_results,
        "page_size": args.page_size,
        "sort_by": args.sort_by,
        "sort_order": args.sort_order,
    }


def _result_payload(result: SearchResult, require_license: bool) -> tuple[Dict[str, Any], int]:
    payload = result.model_dump(mode="json")
    if not require_license:
        return payload, EXIT_OK

    filtered = filter_by_license(result.entries)
    payload["entries"] = [entry.model_dump(mode="json") for entry in filtered.allowed]
    payload["missing_license_ids"] = filtered.missing_ids
    return payload, EXIT_LICENSE if filtered.missing_ids else EXIT_OK


async def _urls_payload(args: argparse.Namespace, client: ArxivClient) -> tuple[Dict[str, Any], int]:
    """Search or fetch, then keep only the id / abstract URL / PDF URL of each entry."""
    ids = list(args.ids or [])
    query = "" if ids else " ".join(args.query).strip()
    if not ids and not query:
        raise UsageError("Provide a search query or IDs via --ids.")

    if ids:
        result = await client.fetch_by_ids(ids, **_paging(args))
    else:
        result = await client.search(SearchRequest(search_query=query, **_paging(args)))

    entries = result.entries
    payload: Dict[str, Any] = {"query": query}
    if ids:
        payload["ids"] = ids
    code = EXIT_OK
    if args.require_license:
        filtered = filter_by_license(entries)
        entries = filtered.allowed
        payload["missing_license_ids"] = filtered.missing_ids
        code = EXIT_LICENSE if filtered.missing_ids else EXIT_OK

    payload["urls"] = [
        {"id": entry.id, "abs_url": entry.abs_url, "pdf_url": entry.pdf_url} for entry in entries
    ]
    return payload, code


def _download_exit_code(outcomes: List[DownloadOutcome]) -> int:
    failed = [o for o in outcomes if o.status == "failed"]
    if any(o.error != LICENSE_MISSING_ERROR for o in failed):
        return EXIT_FAILURE
    if failed:
        return EXIT_LICENSE
    return EXIT_OK


async def _run(args: argparse.Namespace, client: ArxivClient, settings: Settings) -> int:
    if args.command == "search":
        request = SearchRequest(search_query=" ".join(args.query), **_paging(args))
        result = await client.search(request)
        payload, code = _result_payload(result, args.require_license)

    elif args.command == "fetch":
        result = await client.fetch_by_ids(args.ids, **_paging(args))
        payload, code = _result_payload(result, args.require_license)

    elif args.command == "urls":
        payload, code = await _urls_payload(args, client)

    elif args.command == "config":
        payload = {"config": client.get_config().model_dump(mode="json")}
        code = EXIT_OK

    else:
        ids = list(args.ids)
        if args.query:
            result = await client.search(SearchRequest(search_query=args.query, **_paging(args)))
            ids.extend(entry.id for entry in result.entries)
        if not ids:
            raise UsageError("Provide arXiv IDs or a --query to download.")

        out_dir = args.out_dir or settings.download.dir or "."
        if args.format == "pdf":
            outcomes = await client.download(
                ids, out_dir, overwrite=args.overwrite, require_license=args.require_license
            )
        else:
            outcomes = await client.export_text(
                ids,
                out_dir,
                fmt=args.format,
                overwrite=args.overwrite,
                keep_pdf=args.keep_pdf,
                require_license=args.require_license,
            )
        payload = {"results": [o.model_dump(mode="json") for o in outcomes]}
        code = _download_exit_code(outcomes)

    print(json.dumps(payload, indent=2))
    return code


def _emit_error(message: str, code: int) -> int:
    print(json.dumps({"error": message, "exit_code": code}), file=sys.stderr)
    return code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_USAGE

    settings = get_settings()
    debug = args.debug or settings.arxiv.debug
    logging.basicConfig(
        level=logging.DEBUG if debug else settings.app.log_level.upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    if debug:
        # basicConfig leaves an already configured root logger alone
        logging.getLogger("rsearch").setLevel(logging.DEBUG)

    try:
        client = build_client(args, settings)
        return asyncio.run(_run(args, client, settings))

    except (ValidationError, ValidationException, UsageError) as e:
        logger.debug(f"Rejected arguments: {e}")
        return _emit_error(str(e), EXIT_USAGE)

    except ArxivAPIException as e:
        logger.error(f"Request failed: {e}")
        return _emit_error(str(e), EXIT_FAILURE)


if __name__ == "__main__":
    sys.exit(main())
