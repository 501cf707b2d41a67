"""CongressIQ command-line entry point.

Offline path: Congress.gov listing -> enrichment -> bulk index.
Online path: HTTP server answering search / bill / translate requests.

Usage:
    python -m congressiq.main --ingest                    # Index every bill
    python -m congressiq.main --ingest --congress 119     # One congress only
    python -m congressiq.main --ingest --no-enrich        # Listing data only
    python -m congressiq.main --ingest --with-text        # Also summaries + text
    python -m congressiq.main --serve --port 8080         # Run the HTTP API
    python -m congressiq.main --health-check              # Probe dependencies
    python -m congressiq.main --dry-run                   # Show ingestion plan
"""

import argparse
import asyncio
import logging
import sys

from congressiq.config import ConfigurationError, Settings, load_config, load_settings
from congressiq.errors import UpstreamError
from congressiq.indexing.bulk_indexer import DEFAULT_INDEX, BulkIndexer, create_es_client
from congressiq.indexing.ingest import (
    IngestionOptions,
    IngestionSummary,
    run_ingestion,
    save_summary,
)
from congressiq.scrapers.congress_gov import CongressGovClient

logger = logging.getLogger(__name__)


async def run_bulk_index(settings: Settings, config: dict,
                         options: IngestionOptions) -> IngestionSummary:
    """Run one full ingestion pass and persist its summary."""
    client = CongressGovClient(settings, config)
    index_name = config.get("search", {}).get("index_name", DEFAULT_INDEX)
    es = create_es_client(settings)
    indexer = BulkIndexer(es, index_name)
    try:
        await indexer.ensure_index()
        async with client.create_session() as session:
            summary = await run_ingestion(client, session, indexer, options)
    finally:
        await es.close()
    save_summary(summary)
    return summary


def dry_run(settings: Settings, config: dict, options: IngestionOptions) -> None:
    """Show what an ingestion would do without making any calls."""
    resilience = config.get("resilience", {})
    print("\n=== DRY RUN ===")
    print("Pipeline: Listing -> Enrich -> Normalize -> Bulk index")
    print(f"Upstream: {settings.congress_api_base_url}")
    print(f"Index:    {settings.elasticsearch_url} / "
          f"{config.get('search', {}).get('index_name', DEFAULT_INDEX)}")
    print(f"Congress: {options.congress or 'all'}")
    print(f"Page size: {options.page_size} (safety cap {options.max_pages} pages)")
    print(f"Enrichment: {'detail' if options.enrich else 'off'}"
          f"{' + summaries/text' if options.enrich and options.with_text else ''}"
          f" (delay {options.enrich_delay}s between bills)")
    print(f"Rate-limit retries: {resilience.get('max_retries', 'default')}")
    print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CongressIQ: congressional bill ingestion and search"
    )
    parser.add_argument("--ingest", action="store_true", help="Bulk index bills from Congress.gov")
    parser.add_argument("--congress", type=int, help="Restrict ingestion to one congress (e.g., 119)")
    parser.add_argument("--page-size", type=int, help="Bills per upstream page / bulk batch")
    parser.add_argument("--max-pages", type=int, help="Safety cap on pages fetched")
    parser.add_argument("--enrich", dest="enrich", action="store_true", default=True,
                        help="Fetch per-bill detail before indexing (default)")
    parser.add_argument("--no-enrich", dest="enrich", action="store_false",
                        help="Index listing data only")
    parser.add_argument("--with-text", action="store_true",
                        help="Also fetch summaries and bill text during enrichment")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address for --serve")
    parser.add_argument("--port", type=int, default=8080, help="Port for --serve")
    parser.add_argument("--health-check", action="store_true", help="Probe upstream API and index")
    parser.add_argument("--dry-run", action="store_true", help="Show the ingestion plan")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings()
        config = load_config()
    except ConfigurationError as e:
        logger.critical("Configuration error: %s", e)
        sys.exit(2)

    if args.health_check:
        from congressiq.health import HealthChecker, format_report
        results = asyncio.run(HealthChecker(settings).check_all())
        print(format_report(results))
        return

    if args.serve:
        from aiohttp import web
        from congressiq.web import build_app
        web.run_app(build_app(settings, config), host=args.host, port=args.port)
        return

    try:
        options = IngestionOptions.from_config(
            config,
            congress=args.congress,
            page_size=args.page_size,
            max_pages=args.max_pages,
            enrich=args.enrich,
            with_text=args.with_text,
        )
    except ValueError as e:
        parser.error(str(e))

    if args.dry_run:
        dry_run(settings, config, options)
        return

    if not args.ingest:
        parser.print_help()
        return

    try:
        summary = asyncio.run(run_bulk_index(settings, config, options))
    except UpstreamError as e:
        logger.error("Bulk indexing aborted: %s", e)
        sys.exit(1)

    print("\nBulk indexing complete.")
    print(f"  Pages fetched:   {summary.pages}")
    print(f"  Bills processed: {summary.processed} (reported total {summary.total_reported})")
    print(f"  Indexed:         {summary.indexed}")
    print(f"  Failed:          {summary.failed}")
    print(f"  Stop reason:     {summary.stop_reason}")


if __name__ == "__main__":
    main()
