"""
Command-line interface for the stealth search service.

Usage:
    python -m stealth_search.cli search "example query" --limit 5
    python -m stealth_search.cli extract https://example.com --full --no-images
    python -m stealth_search.cli serve --port 3000
"""

import argparse
import asyncio
import sys

import msgspec
import uvicorn

from stealth_search.config.env import load_service_config
from stealth_search.core.context import ServiceContext
from stealth_search.core.errors import ScraperError
from stealth_search.core.models import ExtractRequest, SearchRequest, ServiceConfig
from stealth_search.pipelines.orchestrator import EngineOrchestrator
from stealth_search.service.app import create_app
from stealth_search.utils.logging import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stealth search CLI")
    parser.add_argument(
        "--no-headless",
        action="store_false",
        dest="headless",
        default=None,
        help="Run the browser in headful mode",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Run a multi-engine search")
    search.add_argument("query", help="Search terms")
    search.add_argument("--limit", type=int, default=10, help="Maximum results (default: 10)")

    extract = commands.add_parser("extract", help="Extract a page as Markdown")
    extract.add_argument("url", help="Document URL")
    extract.add_argument("--full", action="store_true", help="Extract the full page")
    extract.add_argument(
        "--no-images",
        action="store_false",
        dest="images",
        help="Drop images from the Markdown",
    )

    serve = commands.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3000)

    return parser


def _print_json(payload: object) -> None:
    sys.stdout.write(msgspec.json.format(msgspec.json.encode(payload)).decode() + "\n")


async def run_once(args: argparse.Namespace, config: ServiceConfig) -> int:
    """Run one search or extraction and print the JSON result."""
    context = ServiceContext.create(config)
    orchestrator = EngineOrchestrator(context)

    try:
        if args.command == "search":
            payload = await orchestrator.search(
                SearchRequest(query=args.query, result_limit=args.limit)
            )
        else:
            payload = await orchestrator.extract(
                ExtractRequest(url=args.url, full_page=args.full, include_images=args.images)
            )
    except ScraperError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    finally:
        await context.aclose()

    _print_json(payload)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    config = load_service_config()
    if args.headless is not None:
        config = msgspec.structs.replace(config, headless=args.headless)

    if args.command == "serve":
        app = create_app(ServiceContext.create(config))
        uvicorn.run(app, host=args.host, port=args.port)
        return

    sys.exit(asyncio.run(run_once(args, config)))


if __name__ == "__main__":
    main()
