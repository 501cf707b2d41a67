"""Congress.gov API v3 client.

Typed access to the two kinds of upstream resources the pipeline consumes:
paginated bill listings and per-bill sub-resources (detail, summaries, text).
The client holds no state between calls beyond its immutable configuration;
callers own the aiohttp session.
"""

import logging
from dataclasses import dataclass, field
from urllib.parse import urlencode

import aiohttp

from congressiq.config import Settings
from congressiq.scrapers.base import BaseClient

logger = logging.getLogger(__name__)

DEFAULT_SORT = "updateDate desc"


@dataclass
class BillPage:
    """One page of the bill listing.

    Attributes:
        bills: Raw listing entries in upstream order.
        total_count: Upstream's reported total (``pagination.count``), 0 when absent.
    """

    bills: list[dict] = field(default_factory=list)
    total_count: int = 0


def _check_non_negative(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


class CongressGovClient(BaseClient):
    """Client for the Congress.gov bill endpoints."""

    def __init__(self, settings: Settings, config: dict | None = None, sleep=None):
        super().__init__("congress_gov", config=config, sleep=sleep)
        self.base_url = settings.congress_api_base_url.rstrip("/")
        self._headers["X-Api-Key"] = settings.congress_api_key

    def _url(self, path: str, params: dict | None = None) -> str:
        query = {"format": "json"}
        query.update({k: v for k, v in (params or {}).items() if v is not None})
        return f"{self.base_url}{path}?{urlencode(query)}"

    def _bill_path(self, congress: int, bill_type: str, bill_number: str | int) -> str:
        if not str(bill_number).isdigit():
            raise ValueError(f"Invalid bill_number: {bill_number!r} (must be numeric)")
        _check_non_negative("congress", congress)
        return f"/bill/{congress}/{bill_type.lower()}/{bill_number}"

    async def list_bills(
        self,
        session: aiohttp.ClientSession,
        limit: int = 20,
        offset: int = 0,
        congress: int | None = None,
        bill_type: str | None = None,
        chamber: str | None = None,
        sort: str = DEFAULT_SORT,
    ) -> BillPage:
        """Fetch one page of bills, most recently updated first.

        ``congress`` (and ``bill_type`` when a congress is given) narrow the
        listing through the path; without a congress the type is passed as a
        query parameter.
        """
        _check_non_negative("limit", limit)
        _check_non_negative("offset", offset)

        path = "/bill"
        params: dict = {"limit": limit, "offset": offset, "sort": sort}
        if congress is not None:
            _check_non_negative("congress", congress)
            path = f"{path}/{congress}"
            if bill_type:
                path = f"{path}/{bill_type.lower()}"
        elif bill_type:
            params["billType"] = bill_type.lower()
        if chamber:
            params["chamber"] = chamber

        data = await self._request_with_retry(session, "GET", self._url(path, params))
        bills = data.get("bills") or []
        pagination = data.get("pagination") or {}
        total = pagination.get("count") or 0
        logger.debug(
            "Congress.gov: listed %d bills at offset %d (total %s)",
            len(bills), offset, total,
        )
        return BillPage(bills=list(bills), total_count=int(total))

    async def get_bill_detail(
        self, session: aiohttp.ClientSession,
        congress: int, bill_type: str, bill_number: str | int,
    ) -> dict | None:
        """Fetch the bill detail record (sponsors, cosponsor counts, dates).

        Returns None when the response carries no ``bill`` object.
        """
        path = self._bill_path(congress, bill_type, bill_number)
        data = await self._request_with_retry(session, "GET", self._url(path))
        return data.get("bill") or None

    async def get_bill_summaries(
        self, session: aiohttp.ClientSession,
        congress: int, bill_type: str, bill_number: str | int,
    ) -> list[dict]:
        """Fetch CRS summaries for a bill (possibly several versions)."""
        path = self._bill_path(congress, bill_type, bill_number) + "/summaries"
        data = await self._request_with_retry(session, "GET", self._url(path))
        return list(data.get("summaries") or [])

    async def get_bill_text(
        self, session: aiohttp.ClientSession,
        congress: int, bill_type: str, bill_number: str | int,
    ) -> list[dict]:
        """Fetch the list of text versions and their format URLs."""
        path = self._bill_path(congress, bill_type, bill_number) + "/text"
        data = await self._request_with_retry(session, "GET", self._url(path))
        return list(data.get("textVersions") or [])

    async def fetch_text_content(self, session: aiohttp.ClientSession, url: str) -> str:
        """Download the body of a text-format URL as a string."""
        return await self._request_with_retry(session, "GET", url, as_text=True)
