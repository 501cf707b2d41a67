"""Tests for the Congress.gov client and its 429 retry policy.

HTTP is faked with an in-process session whose ``get`` returns async context
managers over canned responses; backoff sleeps are an injected AsyncMock, so
no test waits in real time.
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import aiohttp
import pytest

from congressiq.config import Settings
from congressiq.errors import RateLimitExceeded, UpstreamError
from congressiq.scrapers.base import BaseClient
from congressiq.scrapers.congress_gov import BillPage, CongressGovClient

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status: int = 200, body=None, headers: dict | None = None,
                 reason: str = "", text: str = ""):
        self.status = status
        self._body = body if body is not None else {}
        self.headers = headers or {}
        self.reason = reason
        self._text = text

    async def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def text(self, errors: str = "strict"):
        if isinstance(self._text, bytes):
            return self._text.decode("utf-8", errors)
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Returns queued responses in order; records every requested URL."""

    def __init__(self, responses: list):
        self._responses = list(responses)
        self.urls: list[str] = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def _settings() -> Settings:
    return Settings(
        congress_api_base_url="https://api.congress.gov/v3",
        congress_api_key="test-key",
        elasticsearch_url="http://localhost:9200",
        elasticsearch_api_key="es-key",
    )


def _client(max_retries: int = 3, backoff_base: float = 1.0, backoff_max: float = 60.0):
    sleep = AsyncMock()
    config = {"resilience": {
        "max_retries": max_retries,
        "backoff_base": backoff_base,
        "backoff_max": backoff_max,
    }}
    return CongressGovClient(_settings(), config, sleep=sleep), sleep


def _query(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


# ===========================================================================
# Retry policy
# ===========================================================================


class TestRateLimitRetry:
    """HTTP 429 handling in BaseClient._request_with_retry."""

    def test_success_without_retry(self):
        client, sleep = _client()
        session = FakeSession([FakeResponse(200, {"bills": []})])
        result = asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert result == {"bills": []}
        sleep.assert_not_awaited()

    def test_retries_429_then_succeeds(self):
        client, sleep = _client(max_retries=3)
        session = FakeSession([
            FakeResponse(429),
            FakeResponse(429),
            FakeResponse(200, {"ok": True}),
        ])
        result = asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert result == {"ok": True}
        assert len(session.urls) == 3
        assert sleep.await_count == 2

    def test_delay_doubles_per_attempt(self):
        client, sleep = _client(max_retries=4, backoff_base=1.0)
        session = FakeSession([FakeResponse(429)] * 4 + [FakeResponse(200, {})])
        asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        delays = [call.args[0] for call in sleep.await_args_list]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_gives_up_after_max_retries(self):
        """N > max_retries consecutive 429s raise RateLimitExceeded."""
        client, sleep = _client(max_retries=3)
        session = FakeSession([FakeResponse(429)] * 10)
        with pytest.raises(RateLimitExceeded) as exc_info:
            asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert exc_info.value.status == 429
        assert exc_info.value.attempts == 4
        # one initial attempt plus max_retries retries, no more
        assert len(session.urls) == 4
        assert sleep.await_count == 3

    def test_rate_limit_exceeded_is_upstream_error(self):
        client, _ = _client(max_retries=0)
        session = FakeSession([FakeResponse(429)])
        with pytest.raises(UpstreamError):
            asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))

    def test_retry_after_header_extends_delay(self):
        client, sleep = _client(max_retries=2, backoff_base=1.0)
        session = FakeSession([
            FakeResponse(429, headers={"Retry-After": "7"}),
            FakeResponse(200, {}),
        ])
        asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        sleep.assert_awaited_once_with(7.0)

    def test_delay_capped_at_backoff_max(self):
        client, _ = _client(backoff_base=10.0, backoff_max=30.0)
        assert client.backoff_delay(0) == 10.0
        assert client.backoff_delay(1) == 20.0
        assert client.backoff_delay(2) == 30.0
        assert client.backoff_delay(0, retry_after="120") == 30.0

    def test_unparseable_retry_after_ignored(self):
        client, _ = _client(backoff_base=2.0)
        assert client.backoff_delay(1, retry_after="Wed, 21 Oct 2026 07:28:00 GMT") == 4.0

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 500, 503])
    def test_other_errors_not_retried(self, status):
        client, sleep = _client()
        session = FakeSession([FakeResponse(status, reason="Nope")])
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert exc_info.value.status == status
        assert str(exc_info.value) == f"Congress API error: {status} Nope"
        assert len(session.urls) == 1
        sleep.assert_not_awaited()

    def test_transport_error_becomes_status_zero(self):
        client, sleep = _client()
        session = FakeSession([aiohttp.ClientConnectionError("reset by peer")])
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert exc_info.value.status == 0
        sleep.assert_not_awaited()

    def test_timeout_becomes_status_zero(self):
        client, _ = _client()
        session = FakeSession([asyncio.TimeoutError()])
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert exc_info.value.status == 0

    def test_malformed_json_becomes_upstream_error(self):
        client, sleep = _client()
        bad_body = json.JSONDecodeError("Expecting value", "<html>", 0)
        session = FakeSession([FakeResponse(200, bad_body)])
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client._request_with_retry(session, "GET", "https://x/bill"))
        assert exc_info.value.status == 200
        assert "invalid response body" in str(exc_info.value)
        sleep.assert_not_awaited()

    def test_unsupported_method(self):
        client, _ = _client()
        with pytest.raises(ValueError):
            asyncio.run(client._request_with_retry(FakeSession([]), "BREW", "https://x"))

    def test_defaults_without_config(self):
        client = BaseClient("test")
        assert client.max_retries == 5
        assert client.backoff_base == 1.0


# ===========================================================================
# Congress.gov endpoints
# ===========================================================================


class TestListBills:
    """URL construction and page parsing for the listing endpoint."""

    def test_default_listing(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {
            "bills": [{"type": "HR", "number": "1", "congress": 119}],
            "pagination": {"count": 12345},
        })])
        page = asyncio.run(client.list_bills(session, limit=20, offset=40))

        assert isinstance(page, BillPage)
        assert page.total_count == 12345
        assert len(page.bills) == 1
        url = session.urls[0]
        assert urlparse(url).path == "/v3/bill"
        query = _query(url)
        assert query["limit"] == "20"
        assert query["offset"] == "40"
        assert query["format"] == "json"
        assert query["sort"] == "updateDate desc"

    def test_congress_and_type_narrow_path(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"bills": [], "pagination": {"count": 0}})])
        asyncio.run(client.list_bills(session, congress=119, bill_type="HR"))
        assert urlparse(session.urls[0]).path == "/v3/bill/119/hr"

    def test_type_without_congress_is_query_param(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"bills": []})])
        asyncio.run(client.list_bills(session, bill_type="s", chamber="senate"))
        query = _query(session.urls[0])
        assert query["billType"] == "s"
        assert query["chamber"] == "senate"

    def test_missing_pagination_total_is_zero(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"bills": [{"type": "s"}]})])
        page = asyncio.run(client.list_bills(session))
        assert page.total_count == 0

    @pytest.mark.parametrize("kwargs", [
        {"limit": -1},
        {"offset": -5},
        {"limit": "20"},
        {"offset": True},
        {"congress": -119},
    ])
    def test_rejects_invalid_paging(self, kwargs):
        client, _ = _client()
        session = FakeSession([])
        with pytest.raises(ValueError):
            asyncio.run(client.list_bills(session, **kwargs))
        assert session.urls == []

    def test_api_key_header_set(self):
        client, _ = _client()
        assert client._headers["X-Api-Key"] == "test-key"
        assert client._headers["User-Agent"].startswith("CongressIQ/")


class TestBillSubResources:
    """Detail, summaries, text and text content."""

    def test_detail_returns_bill_object(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"bill": {"number": "1234", "type": "HR"}})])
        detail = asyncio.run(client.get_bill_detail(session, 119, "HR", "1234"))
        assert detail == {"number": "1234", "type": "HR"}
        assert urlparse(session.urls[0]).path == "/v3/bill/119/hr/1234"

    def test_detail_without_bill_is_none(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {})])
        assert asyncio.run(client.get_bill_detail(session, 119, "hr", 1)) is None

    def test_detail_rejects_non_numeric_number(self):
        client, _ = _client()
        with pytest.raises(ValueError):
            asyncio.run(client.get_bill_detail(FakeSession([]), 119, "hr", "12a"))

    def test_detail_404_raises(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(404, reason="Not Found")])
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client.get_bill_detail(session, 119, "hr", "99999"))
        assert exc_info.value.status == 404

    def test_summaries(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"summaries": [{"text": "a"}, {"text": "b"}]})])
        summaries = asyncio.run(client.get_bill_summaries(session, 119, "s", "5"))
        assert [s["text"] for s in summaries] == ["a", "b"]
        assert urlparse(session.urls[0]).path == "/v3/bill/119/s/5/summaries"

    def test_text_versions(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"textVersions": [{"type": "Introduced"}]})])
        versions = asyncio.run(client.get_bill_text(session, 119, "s", "5"))
        assert versions == [{"type": "Introduced"}]
        assert urlparse(session.urls[0]).path == "/v3/bill/119/s/5/text"

    def test_text_versions_missing(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, {"textVersions": None})])
        assert asyncio.run(client.get_bill_text(session, 119, "s", "5")) == []

    def test_fetch_text_content_returns_body_text(self):
        client, _ = _client()
        session = FakeSession([FakeResponse(200, text="<bill>SECTION 1.</bill>")])
        text = asyncio.run(client.fetch_text_content(session, "https://www.congress.gov/x.xml"))
        assert text == "<bill>SECTION 1.</bill>"
        assert session.urls == ["https://www.congress.gov/x.xml"]

    def test_fetch_text_content_tolerates_binary_body(self):
        client, _ = _client()
        pdf = b"%PDF-1.4\n\xff\xfe\x00binary stream"
        session = FakeSession([FakeResponse(200, text=pdf)])
        text = asyncio.run(client.fetch_text_content(session, "https://www.congress.gov/x.pdf"))
        assert text.startswith("%PDF-1.4\n")
        assert "\ufffd" in text
