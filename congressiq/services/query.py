"""Search and single-bill lookup for the HTTP surface.

Two modes per search request:
    - Indexed search: a non-empty free-text query runs a fuzzy multi-field
      match against the Elasticsearch index.
    - Pass-through: no query, so the Congress.gov listing is called directly
      and each entry is normalized (no detail enrichment, for latency).

Both return the same ``SearchResponse`` shape.
"""

import logging

from congressiq.analysis.normalizer import (
    FULL_TEXT_MAX_CHARS,
    fetch_sub_resources,
    normalize_bill,
)
from congressiq.errors import UpstreamError
from congressiq.indexing.bulk_indexer import DEFAULT_INDEX
from congressiq.schemas.models import (
    Bill,
    BillDetailView,
    BillSummaryView,
    LatestAction,
    Pagination,
    SearchParams,
    SearchResponse,
    bill_id,
)

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ["title^2", "summary", "sponsor.name", "aiSummary", "sectors"]


def _text(value) -> str:
    """Textual field from a stored document; anything non-string becomes ""."""
    return value if isinstance(value, str) else ""


def _int(value, default=0):
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return default


def _sponsor_display(value) -> str:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and _text(value.get("name")):
        return f"{_text(value.get('name'))} ({_text(value.get('party'))}-{_text(value.get('state'))})"
    return "Unknown"


def bill_to_summary_view(bill: Bill) -> BillSummaryView:
    return BillSummaryView(
        id=bill.id,
        title=bill.title,
        short_title=bill.short_title,
        summary=bill.summary,
        ai_summary=bill.ai_summary,
        status=bill.status.value,
        introduced_date=bill.introduced_date,
        sponsor=bill.sponsor.display() if bill.sponsor else "Unknown",
        impact_level=bill.impact_level.value,
        sectors=list(bill.sectors),
        probability=bill.probability,
        url=bill.url,
        congress=bill.congress,
        type=bill.type,
        number=bill.number,
        latest_action=bill.latest_action,
        cosponsors_count=bill.cosponsors.count,
    )


def bill_to_detail_view(bill: Bill) -> BillDetailView:
    return BillDetailView(
        id=bill.id,
        title=bill.title,
        short_title=bill.short_title,
        summary=bill.summary,
        full_text=bill.full_text,
        ai_summary=bill.ai_summary,
        status=bill.status.value,
        introduced_date=bill.introduced_date,
        sponsor=bill.sponsor,
        cosponsors=bill.cosponsors,
        impact_level=bill.impact_level.value,
        sectors=list(bill.sectors),
        probability=bill.probability,
        url=bill.url,
        congress=bill.congress,
        type=bill.type,
        number=bill.number,
        origin_chamber=bill.origin_chamber,
        latest_action=bill.latest_action,
        subjects=list(bill.subjects),
        text_versions=list(bill.text_versions),
    )


def hit_to_view(hit: dict) -> BillSummaryView:
    """Map a stored index document to the view model.

    Documents may predate the current schema, so every field is coerced
    instead of trusted.
    """
    src = hit.get("_source") or {}
    raw_number = src.get("number")
    number = str(raw_number) if isinstance(raw_number, (str, int)) and not isinstance(raw_number, bool) else ""
    bill_type = _text(src.get("type"))

    latest = src.get("latestAction")
    latest_action = None
    if isinstance(latest, dict):
        latest_action = LatestAction(
            action_date=_text(latest.get("actionDate")),
            text=_text(latest.get("text")),
        )

    cosponsors = src.get("cosponsors")
    if isinstance(cosponsors, dict):
        cosponsors_count = _int(cosponsors.get("count"))
    else:
        cosponsors_count = _int(src.get("cosponsorsCount"))

    sectors = src.get("sectors")
    congress = src.get("congress")

    return BillSummaryView(
        id=_text(src.get("id")) or _text(hit.get("_id")),
        title=_text(src.get("title")),
        short_title=_text(src.get("shortTitle")),
        summary=_text(src.get("summary")),
        ai_summary=_text(src.get("aiSummary")),
        status=_text(src.get("status")),
        introduced_date=_text(src.get("introducedDate")),
        sponsor=_sponsor_display(src.get("sponsor")),
        impact_level=_text(src.get("impactLevel")),
        sectors=[s for s in sectors if isinstance(s, str)] if isinstance(sectors, list) else [],
        probability=_int(src.get("probability")),
        url=_text(src.get("url")),
        congress=_int(congress, None),
        type=bill_type,
        number=number,
        latest_action=latest_action,
        cosponsors_count=cosponsors_count,
    )


def _congress_of(raw: dict) -> int | None:
    return _int(raw.get("congress"), None)


class QueryService:
    """Answers search and lookup requests.

    Args:
        client: CongressGovClient.
        session: aiohttp session created by ``client.create_session()``.
        es: ``elasticsearch.AsyncElasticsearch`` (or compatible) client.
        index_name: Index holding the bill documents.
    """

    def __init__(self, client, session, es, index_name: str = DEFAULT_INDEX,
                 full_text_max_chars: int = FULL_TEXT_MAX_CHARS):
        self.client = client
        self.session = session
        self.es = es
        self.index_name = index_name
        self.full_text_max_chars = full_text_max_chars

    async def search(self, params: SearchParams) -> SearchResponse:
        if params.q:
            return await self._search_index(params)
        return await self._search_upstream(params)

    def _build_query(self, params: SearchParams) -> dict:
        match = {
            "multi_match": {
                "query": params.q,
                "fields": SEARCH_FIELDS,
                "fuzziness": "AUTO",
            },
        }
        filters = []
        if params.congress is not None:
            filters.append({"term": {"congress": params.congress}})
        if params.bill_type:
            filters.append({"term": {"type": params.bill_type}})
        if not filters:
            return match
        return {"bool": {"must": [match], "filter": filters}}

    async def _search_index(self, params: SearchParams) -> SearchResponse:
        kwargs = {
            "index": self.index_name,
            "query": self._build_query(params),
            "from_": params.offset,
            "size": params.limit,
        }
        if params.sort == "introducedDate":
            kwargs["sort"] = [{"introducedDate": {"order": "desc", "unmapped_type": "date"}}]

        response = await self.es.search(**kwargs)
        response = getattr(response, "body", response)
        hits = response.get("hits") or {}
        total = hits.get("total")
        total = _int(total.get("value")) if isinstance(total, dict) else _int(total)

        bills = [hit_to_view(hit) for hit in hits.get("hits") or []]
        logger.info("Index search '%s': %d hits (%d total)", params.q, len(bills), total)
        return SearchResponse(
            bills=bills,
            pagination=Pagination(count=total, limit=params.limit, offset=params.offset),
            query=params.q,
            total=total,
        )

    async def _search_upstream(self, params: SearchParams) -> SearchResponse:
        # the listing is always ordered by updateDate desc; sort applies to indexed search only
        page = await self.client.list_bills(
            self.session,
            limit=params.limit,
            offset=params.offset,
            congress=params.congress,
            bill_type=params.bill_type,
            chamber=params.chamber,
        )

        raw_bills = page.bills
        if params.congress is not None:
            # upstream congress filtering is not trusted
            raw_bills = [b for b in raw_bills if _congress_of(b) == params.congress]

        views = []
        for raw in raw_bills:
            try:
                views.append(bill_to_summary_view(normalize_bill(raw)))
            except ValueError as e:
                logger.warning("Dropping malformed listing entry: %s", e)

        return SearchResponse(
            bills=views,
            pagination=Pagination(count=page.total_count, limit=params.limit, offset=params.offset),
            query=params.q,
            total=page.total_count,
        )

    async def get_bill(self, congress: int, bill_type: str, number: str) -> BillDetailView | None:
        """Fully enriched single bill, or None when upstream has no such bill.

        The detail fetch is required; summaries and text are best effort.
        """
        try:
            detail = await self.client.get_bill_detail(self.session, congress, bill_type, number)
        except UpstreamError as e:
            if e.status == 404:
                return None
            raise
        if not detail:
            return None

        doc_id = bill_id(bill_type, number, congress)
        summaries, text_versions, full_text = await fetch_sub_resources(
            self.client, self.session, congress, bill_type, number, doc_id,
        )
        bill = normalize_bill(
            {"type": bill_type, "number": number, "congress": congress},
            detail, summaries, text_versions, full_text,
            full_text_max_chars=self.full_text_max_chars,
            detailed_ai_summary=True,
        )
        return bill_to_detail_view(bill)
