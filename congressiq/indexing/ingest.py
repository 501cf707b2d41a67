"""Pagination driver for bulk ingestion.

Fetch a page -> enrich each bill (sequentially, with an inter-bill delay to
stay under the upstream rate limit) -> submit the page as one bulk batch ->
advance the offset. Stops on the first of:
    - an empty page
    - processed count reaching the upstream's reported total
    - a reported total of zero (or none at all)
    - the max_pages safety cap (the reported total can be stale)

A failed page fetch aborts the run; a failed per-bill enrichment does not.
Only one ingestion run is assumed active at a time.
"""

import asyncio
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from congressiq.analysis.normalizer import FULL_TEXT_MAX_CHARS, enrich_bill, normalize_bill
from congressiq.paths import LAST_INGEST_PATH

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
ENRICH_DELAY = 0.3  # seconds between per-bill detail fetches
MAX_PAGES = 500


@dataclass
class IngestionOptions:
    page_size: int = PAGE_SIZE
    congress: int | None = None
    enrich: bool = True
    with_text: bool = False
    enrich_delay: float = ENRICH_DELAY
    max_pages: int = MAX_PAGES
    full_text_max_chars: int = FULL_TEXT_MAX_CHARS

    def __post_init__(self):
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.max_pages <= 0:
            raise ValueError(f"max_pages must be positive, got {self.max_pages}")

    @classmethod
    def from_config(cls, config: dict | None = None, **overrides) -> "IngestionOptions":
        """Options from the "ingestion" config section; None overrides are ignored."""
        section = (config or {}).get("ingestion", {})
        values = {
            "page_size": section.get("page_size", PAGE_SIZE),
            "enrich_delay": section.get("enrich_delay", ENRICH_DELAY),
            "max_pages": section.get("max_pages", MAX_PAGES),
            "full_text_max_chars": section.get("full_text_max_chars", FULL_TEXT_MAX_CHARS),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class IngestionSummary:
    pages: int = 0
    processed: int = 0
    indexed: int = 0
    failed: int = 0
    skipped: int = 0
    total_reported: int = 0
    stop_reason: str = ""
    failed_ids: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    finished_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


async def _normalize_page(client, session, raw_bills: list[dict], options: IngestionOptions,
                          summary: IngestionSummary, sleep) -> list:
    bills = []
    for i, raw in enumerate(raw_bills):
        try:
            if options.enrich:
                if i > 0 and options.enrich_delay > 0:
                    await sleep(options.enrich_delay)
                bill = await enrich_bill(
                    client, session, raw,
                    with_text=options.with_text,
                    full_text_max_chars=options.full_text_max_chars,
                )
            else:
                bill = normalize_bill(raw, full_text_max_chars=options.full_text_max_chars)
        except ValueError as e:
            summary.skipped += 1
            logger.warning("Skipping malformed bill record: %s", e)
            continue
        bills.append(bill)
    return bills


async def run_ingestion(client, session, indexer, options: IngestionOptions | None = None,
                        sleep=None) -> IngestionSummary:
    """Page through the upstream listing and bulk-index every bill.

    Args:
        client: CongressGovClient.
        session: aiohttp session created by ``client.create_session()``.
        indexer: BulkIndexer.
        options: Paging/enrichment options.
        sleep: Awaitable sleep for the inter-bill delay (default asyncio.sleep).

    Raises:
        UpstreamError: A page fetch failed; the run stops at that page.
    """
    options = options or IngestionOptions()
    sleep = sleep or asyncio.sleep
    summary = IngestionSummary()
    offset = 0

    logger.info(
        "Starting bulk indexing (congress=%s, page_size=%d, enrich=%s)",
        options.congress or "all", options.page_size, options.enrich,
    )

    while True:
        if summary.pages >= options.max_pages:
            summary.stop_reason = "page_cap"
            logger.warning(
                "Safety cap of %d pages reached (%d/%d processed), stopping",
                options.max_pages, summary.processed, summary.total_reported,
            )
            break

        page = await client.list_bills(
            session, limit=options.page_size, offset=offset, congress=options.congress,
        )
        summary.pages += 1
        summary.total_reported = page.total_count

        if not page.bills:
            summary.stop_reason = "empty_page"
            break

        bills = await _normalize_page(client, session, page.bills, options, summary, sleep)
        result = await indexer.index_bills(bills)

        summary.processed += len(page.bills)
        summary.indexed += result.indexed
        summary.failed += result.failed
        summary.failed_ids.extend(err.doc_id for err in result.errors)
        logger.info("Indexed %d/%d bills...", summary.processed, page.total_count)

        offset += options.page_size

        if page.total_count <= 0:
            summary.stop_reason = "no_total"
            break
        if summary.processed >= page.total_count:
            summary.stop_reason = "total_reached"
            break

    summary.finished_at = datetime.now(timezone.utc).isoformat()
    logger.info(
        "Bulk indexing complete: %d indexed, %d failed, %d skipped over %d pages (%s)",
        summary.indexed, summary.failed, summary.skipped, summary.pages, summary.stop_reason,
    )
    return summary


def save_summary(summary: IngestionSummary, path: Path | None = None) -> Path:
    """Write the run summary with an atomic tmp-file replace."""
    target = path or LAST_INGEST_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(summary.to_dict(), f, indent=2)
        os.replace(str(tmp_path), str(target))
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
    logger.info("Ingestion summary written to %s", target)
    return target
