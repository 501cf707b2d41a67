"""Bulk writes of normalized bills into Elasticsearch.

Each bill becomes one ``index`` action keyed by its composite id, so
re-ingesting a bill overwrites its document instead of duplicating it (last
writer wins). A batch is one ``bulk`` call followed by an immediate refresh.
Per-document failures are collected and returned, never raised.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from elasticsearch import AsyncElasticsearch

from congressiq.errors import IndexWriteError
from congressiq.schemas.models import Bill

logger = logging.getLogger(__name__)

DEFAULT_INDEX = "bills"

_TEXT_WITH_KEYWORD = {"type": "text", "fields": {"keyword": {"type": "keyword", "ignore_above": 256}}}
_DATE = {"type": "date", "ignore_malformed": True}

BILLS_MAPPING = {
    "properties": {
        "id": {"type": "keyword"},
        "type": {"type": "keyword"},
        "number": {"type": "keyword"},
        "congress": {"type": "integer"},
        "shortTitle": {"type": "keyword"},
        "title": _TEXT_WITH_KEYWORD,
        "summary": {"type": "text"},
        "aiSummary": {"type": "text"},
        "fullText": {"type": "text"},
        "sectors": _TEXT_WITH_KEYWORD,
        "subjects": _TEXT_WITH_KEYWORD,
        "policyArea": {"type": "keyword"},
        "sponsor": {
            "properties": {
                "name": _TEXT_WITH_KEYWORD,
                "party": {"type": "keyword"},
                "state": {"type": "keyword"},
                "bioguideId": {"type": "keyword"},
            },
        },
        "status": {"type": "keyword"},
        "impactLevel": {"type": "keyword"},
        "probability": {"type": "integer"},
        "originChamber": {"type": "keyword"},
        "introducedDate": _DATE,
        "updateDate": _DATE,
        "latestAction": {
            "properties": {
                "actionDate": _DATE,
                "text": {"type": "text"},
            },
        },
        "textVersions": {"type": "object", "enabled": False},
    },
}


@dataclass
class IndexResult:
    """Outcome of one bulk batch."""

    indexed: int = 0
    errors: list[IndexWriteError] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)


def _body(response) -> dict:
    return getattr(response, "body", response)


class BulkIndexer:
    """Writes batches of bills into one Elasticsearch index.

    Args:
        es: An ``elasticsearch.AsyncElasticsearch`` (or compatible) client.
        index_name: Target index.
    """

    def __init__(self, es, index_name: str = DEFAULT_INDEX):
        self.es = es
        self.index_name = index_name

    async def ensure_index(self) -> bool:
        """Create the index with its mapping if absent. Returns True if created."""
        if await self.es.indices.exists(index=self.index_name):
            return False
        await self.es.indices.create(index=self.index_name, mappings=BILLS_MAPPING)
        logger.info("Created index '%s'", self.index_name)
        return True

    def build_operations(self, bills: list[Bill]) -> list[dict]:
        operations: list[dict] = []
        for bill in bills:
            operations.append({"index": {"_index": self.index_name, "_id": bill.id}})
            operations.append(bill.to_document())
        return operations

    async def index_bills(self, bills: Iterable[Bill]) -> IndexResult:
        """Upsert a batch of bills and refresh the index.

        Transport-level failures of the bulk call itself propagate; failures
        of individual documents are returned in ``IndexResult.errors``.
        """
        batch = list(bills)
        if not batch:
            return IndexResult()

        response = _body(await self.es.bulk(operations=self.build_operations(batch), refresh=True))

        errors: list[IndexWriteError] = []
        if response.get("errors"):
            for item in response.get("items", []):
                action = next(iter(item.values()), {}) if isinstance(item, dict) else {}
                status = int(action.get("status") or 0)
                if "error" in action or status >= 300:
                    error = action.get("error") or {}
                    reason = error.get("reason") if isinstance(error, dict) else str(error)
                    errors.append(IndexWriteError(str(action.get("_id", "")), status, reason or ""))

        for err in errors:
            logger.error("Bulk indexing error: %s", err)

        result = IndexResult(indexed=len(batch) - len(errors), errors=errors)
        logger.debug(
            "Bulk batch to '%s': %d indexed, %d failed",
            self.index_name, result.indexed, result.failed,
        )
        return result


def create_es_client(settings) -> AsyncElasticsearch:
    """AsyncElasticsearch client for the configured endpoint and API key."""
    return AsyncElasticsearch(
        settings.elasticsearch_url,
        api_key=settings.elasticsearch_api_key,
        verify_certs=settings.elasticsearch_verify_certs,
    )
