"""Pydantic v2 schema models for CongressIQ.

- Bill: canonical normalized bill (index document)
- BillSummaryView / BillDetailView: shapes returned to the frontend
- SearchParams / SearchResponse / Pagination: search request and response
- TranslateRequest: context for the plain-English translation call
"""

from congressiq.schemas.models import (
    BILL_TYPE_CODES,
    Bill,
    BillDetailView,
    BillStatus,
    BillSummaryView,
    CosponsorCounts,
    ImpactLevel,
    LatestAction,
    Pagination,
    SearchParams,
    SearchResponse,
    Sponsor,
    TranslateRequest,
    bill_id,
    short_title,
)

__all__ = [
    "BILL_TYPE_CODES",
    "Bill",
    "BillDetailView",
    "BillStatus",
    "BillSummaryView",
    "CosponsorCounts",
    "ImpactLevel",
    "LatestAction",
    "Pagination",
    "SearchParams",
    "SearchResponse",
    "Sponsor",
    "TranslateRequest",
    "bill_id",
    "short_title",
]
