"""Bulk index bills for one or more congresses into Elasticsearch.

Backfill script: runs one ingestion pass per requested congress (or a single
pass over the unfiltered listing) and writes a combined summary.

Usage:
    python scripts/bulk_index_bills.py                          # Whole listing
    python scripts/bulk_index_bills.py --congress 118 119       # Two congresses
    python scripts/bulk_index_bills.py --congress 119 --with-text
    python scripts/bulk_index_bills.py --output path.json       # Custom summary path
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root is on sys.path for congressiq imports
_SCRIPT_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _SCRIPT_DIR.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from congressiq.config import ConfigurationError, load_config, load_settings
from congressiq.errors import UpstreamError
from congressiq.indexing.bulk_indexer import DEFAULT_INDEX, BulkIndexer, create_es_client
from congressiq.indexing.ingest import IngestionOptions, run_ingestion
from congressiq.paths import OUTPUTS_DIR
from congressiq.scrapers.congress_gov import CongressGovClient

logger = logging.getLogger("congressiq.bulk_index_bills")

DEFAULT_OUTPUT = OUTPUTS_DIR / "bulk_index_report.json"


async def backfill(settings, config: dict, congresses: list[int | None],
                   enrich: bool, with_text: bool) -> list[dict]:
    """Run one ingestion per congress, sharing a session and ES client."""
    client = CongressGovClient(settings, config)
    es = create_es_client(settings)
    indexer = BulkIndexer(es, config.get("search", {}).get("index_name", DEFAULT_INDEX))
    reports: list[dict] = []
    try:
        await indexer.ensure_index()
        async with client.create_session() as session:
            for congress in congresses:
                options = IngestionOptions.from_config(
                    config, congress=congress, enrich=enrich, with_text=with_text,
                )
                logger.info("Backfilling congress %s", congress or "all")
                try:
                    summary = await run_ingestion(client, session, indexer, options)
                except UpstreamError as e:
                    logger.error("Congress %s aborted: %s", congress or "all", e)
                    reports.append({"congress": congress, "error": str(e)})
                    continue
                reports.append({"congress": congress, **summary.to_dict()})
    finally:
        await es.close()
    return reports


def write_report(reports: list[dict], output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "runs": reports,
        "total_indexed": sum(r.get("indexed", 0) for r in reports),
        "total_failed": sum(r.get("failed", 0) for r in reports),
    }
    tmp_path = output.with_suffix(".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, output)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def main() -> None:
    parser = argparse.ArgumentParser(description="Backfill the bills index from Congress.gov")
    parser.add_argument("--congress", type=int, nargs="+", help="Congress numbers to backfill")
    parser.add_argument("--no-enrich", action="store_true", help="Index listing data only")
    parser.add_argument("--with-text", action="store_true", help="Fetch summaries and bill text")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="Report path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings()
        config = load_config()
    except ConfigurationError as e:
        logger.critical("Configuration error: %s", e)
        sys.exit(2)

    congresses: list[int | None] = list(args.congress) if args.congress else [None]
    reports = asyncio.run(backfill(
        settings, config, congresses,
        enrich=not args.no_enrich, with_text=args.with_text,
    ))
    write_report(reports, args.output)
    logger.info("Wrote backfill report to %s", args.output)

    if any("error" in r for r in reports):
        sys.exit(1)


if __name__ == "__main__":
    main()
