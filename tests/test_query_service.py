"""Tests for QueryService: indexed search, pass-through listing, bill lookup."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from congressiq.analysis.normalizer import normalize_bill
from congressiq.errors import UpstreamError
from congressiq.schemas.models import BillDetailView, SearchParams, SearchResponse
from congressiq.scrapers.congress_gov import BillPage
from congressiq.services.query import QueryService, hit_to_view


def _raw(number: str, congress: int = 119, title: str = "Rural Hospital Funding Act") -> dict:
    return {
        "type": "S",
        "number": number,
        "congress": congress,
        "title": title,
        "originChamber": "Senate",
        "latestAction": {"actionDate": "2025-04-01", "text": "Read twice and referred to the Committee on Finance."},
    }


def _service(es_response: dict | None = None, page: BillPage | None = None) -> QueryService:
    client = MagicMock()
    client.list_bills = AsyncMock(return_value=page or BillPage())
    es = MagicMock()
    es.search = AsyncMock(return_value=es_response or {"hits": {"total": {"value": 0}, "hits": []}})
    return QueryService(client, MagicMock(), es, "bills")


class TestIndexedSearch:
    """Non-empty q goes to Elasticsearch."""

    def test_query_shape(self):
        service = _service()
        asyncio.run(service.search(SearchParams(q="  clean energy ", limit=10, offset=30)))

        kwargs = service.es.search.await_args.kwargs
        assert kwargs["index"] == "bills"
        assert kwargs["from_"] == 30
        assert kwargs["size"] == 10
        match = kwargs["query"]["multi_match"]
        assert match["query"] == "clean energy"
        assert match["fuzziness"] == "AUTO"
        assert set(match["fields"]) == {"title^2", "summary", "sponsor.name", "aiSummary", "sectors"}
        assert "sort" not in kwargs
        service.client.list_bills.assert_not_awaited()

    def test_sort_by_introduced_date(self):
        service = _service()
        asyncio.run(service.search(SearchParams(q="tax", sort="introducedDate")))
        sort = service.es.search.await_args.kwargs["sort"]
        assert sort[0]["introducedDate"]["order"] == "desc"

    def test_filters_wrap_match_in_bool(self):
        service = _service()
        asyncio.run(service.search(SearchParams(q="tax", congress=119, bill_type="hr")))
        query = service.es.search.await_args.kwargs["query"]
        assert "multi_match" in query["bool"]["must"][0]
        assert {"term": {"congress": 119}} in query["bool"]["filter"]
        assert {"term": {"type": "hr"}} in query["bool"]["filter"]

    def test_hits_mapped_to_views(self):
        doc = normalize_bill(_raw("12")).to_document()
        response = {"hits": {"total": {"value": 41}, "hits": [{"_id": doc["id"], "_source": doc}]}}
        service = _service(es_response=response)
        result = asyncio.run(service.search(SearchParams(q="hospital", limit=1)))

        assert isinstance(result, SearchResponse)
        assert result.total == 41
        assert result.pagination.count == 41
        assert result.pagination.limit == 1
        assert result.query == "hospital"
        view = result.bills[0]
        assert view.id == "s12-119"
        assert view.short_title == "S. 12"
        assert view.status == "Committee Review"
        assert view.sponsor == "Unknown"
        assert "Healthcare" in view.sectors

    def test_legacy_total_as_integer(self):
        service = _service(es_response={"hits": {"total": 3, "hits": []}})
        result = asyncio.run(service.search(SearchParams(q="x")))
        assert result.total == 3


class TestHitCoercion:
    """Stored documents with unexpected types never break the response."""

    def test_non_string_text_fields_become_empty(self):
        view = hit_to_view({"_id": "hr7-119", "_source": {
            "title": 123,
            "summary": None,
            "aiSummary": {"nested": True},
            "status": ["Introduced"],
            "number": 7,
            "type": "hr",
            "congress": "119",
            "sectors": "Energy",
            "probability": "likely",
            "sponsor": None,
        }})
        assert view.id == "hr7-119"
        assert view.title == ""
        assert view.summary == ""
        assert view.ai_summary == ""
        assert view.status == ""
        assert view.number == "7"
        assert view.congress == 119
        assert view.sectors == []
        assert view.probability == 0
        assert view.sponsor == "Unknown"

    def test_sponsor_object_displayed(self):
        view = hit_to_view({"_source": {
            "id": "s1-119",
            "sponsor": {"name": "Sen. Doe, John [R-TX]", "party": "R", "state": "TX"},
            "cosponsors": {"count": 12},
        }})
        assert view.sponsor == "Sen. Doe, John [R-TX] (R-TX)"
        assert view.cosponsors_count == 12

    def test_empty_hit(self):
        view = hit_to_view({})
        assert view.id == ""
        assert view.congress is None


class TestPassThroughSearch:
    """Empty q lists bills straight from Congress.gov."""

    def test_lists_and_normalizes(self):
        page = BillPage(bills=[_raw("1"), _raw("2")], total_count=9000)
        service = _service(page=page)
        result = asyncio.run(service.search(SearchParams(limit=2, offset=4)))

        assert [b.id for b in result.bills] == ["s1-119", "s2-119"]
        assert result.total == 9000
        assert result.pagination.offset == 4
        service.es.search.assert_not_awaited()
        kwargs = service.client.list_bills.await_args.kwargs
        assert kwargs["limit"] == 2
        assert kwargs["offset"] == 4

    def test_congress_refiltered_client_side(self):
        page = BillPage(bills=[_raw("1", 119), _raw("2", 118), _raw("3", "119")], total_count=3)
        service = _service(page=page)
        result = asyncio.run(service.search(SearchParams(congress=119)))
        assert [b.number for b in result.bills] == ["1", "3"]
        assert all(b.congress == 119 for b in result.bills)

    def test_chamber_and_type_forwarded(self):
        service = _service()
        asyncio.run(service.search(SearchParams(chamber="Senate", bill_type="S")))
        kwargs = service.client.list_bills.await_args.kwargs
        assert kwargs["chamber"] == "senate"
        assert kwargs["bill_type"] == "s"

    def test_sort_not_forwarded_to_listing(self):
        service = _service()
        asyncio.run(service.search(SearchParams(sort="introducedDate")))
        assert "sort" not in service.client.list_bills.await_args.kwargs

    def test_malformed_entry_dropped(self):
        bad = _raw("2")
        del bad["type"]
        service = _service(page=BillPage(bills=[_raw("1"), bad], total_count=2))
        result = asyncio.run(service.search(SearchParams()))
        assert [b.number for b in result.bills] == ["1"]

    def test_upstream_failure_propagates(self):
        service = _service()
        service.client.list_bills = AsyncMock(side_effect=UpstreamError(500, "boom"))
        with pytest.raises(UpstreamError):
            asyncio.run(service.search(SearchParams()))


class TestGetBill:
    """Single fully enriched bill."""

    def _client(self, detail=None, detail_error=None) -> MagicMock:
        client = MagicMock()
        if detail_error is not None:
            client.get_bill_detail = AsyncMock(side_effect=detail_error)
        else:
            client.get_bill_detail = AsyncMock(return_value=detail)
        client.get_bill_summaries = AsyncMock(return_value=[
            {"updateDate": "2025-05-01", "text": "Requires hospitals to report."},
        ])
        client.get_bill_text = AsyncMock(return_value=[{
            "date": "2025-04-01",
            "formats": [{"type": "Formatted XML", "url": "https://www.congress.gov/s12is.xml"}],
        }])
        client.fetch_text_content = AsyncMock(return_value="z" * 20)
        return client

    def test_enriched_detail_view(self):
        detail = {
            "title": "Rural Hospital Funding Act",
            "originChamber": "Senate",
            "introducedDate": "2025-03-03",
            "sponsors": [{"fullName": "Sen. Doe, John [R-TX]", "party": "R", "state": "TX",
                          "bioguideId": "D000001"}],
            "cosponsors": {"count": 55, "countIncludingWithdrawnCosponsors": 55},
            "latestAction": {"actionDate": "2025-04-01", "text": "Referred to the Committee on Finance."},
        }
        client = self._client(detail=detail)
        service = QueryService(client, MagicMock(), MagicMock(), "bills", full_text_max_chars=5)
        view = asyncio.run(service.get_bill(119, "s", "12"))

        assert isinstance(view, BillDetailView)
        assert view.id == "s12-119"
        assert view.summary == "Requires hospitals to report."
        assert view.full_text == "zzzzz"
        assert view.sponsor.bioguide_id == "D000001"
        # committee 35 + cosponsor 20 + senate majority 15
        assert view.probability == 70
        assert view.ai_summary.startswith("**Business Impact Analysis:**")
        assert view.related_bills == []
        assert view.actions == []

    def test_not_found_status_is_none(self):
        client = self._client(detail_error=UpstreamError(404, "Not Found"))
        service = QueryService(client, MagicMock(), MagicMock())
        assert asyncio.run(service.get_bill(119, "hr", "99999")) is None
        client.get_bill_summaries.assert_not_awaited()

    def test_empty_detail_is_none(self):
        service = QueryService(self._client(detail=None), MagicMock(), MagicMock())
        assert asyncio.run(service.get_bill(119, "hr", "1")) is None

    def test_other_detail_errors_propagate(self):
        client = self._client(detail_error=UpstreamError(500, "Internal Server Error"))
        service = QueryService(client, MagicMock(), MagicMock())
        with pytest.raises(UpstreamError):
            asyncio.run(service.get_bill(119, "hr", "1"))

    def test_summary_failure_is_soft(self):
        client = self._client(detail={"title": "T"})
        client.get_bill_summaries = AsyncMock(side_effect=UpstreamError(503, "down"))
        service = QueryService(client, MagicMock(), MagicMock())
        view = asyncio.run(service.get_bill(119, "hr", "1"))
        assert view.summary == "T"
        assert view.full_text == "z" * 20

    def test_undecodable_text_content_is_soft(self):
        client = self._client(detail={"title": "T"})
        client.fetch_text_content = AsyncMock(
            side_effect=UnicodeDecodeError("utf-8", b"\xff", 9, 10, "invalid start byte"),
        )
        service = QueryService(client, MagicMock(), MagicMock())
        view = asyncio.run(service.get_bill(119, "hr", "1"))
        assert view.summary == "Requires hospitals to report."
        assert view.full_text == ""
