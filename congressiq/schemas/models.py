"""Pydantic v2 models for CongressIQ bill data.

The canonical ``Bill`` is built by the normalizer from raw Congress.gov JSON;
the view models are what the HTTP surface returns. All models serialize to
camelCase (the frontend contract) while keeping snake_case attribute names
in Python.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Valid upstream bill type codes (lower-cased)
BILL_TYPE_CODES = frozenset({
    "hr",       # House Bill
    "s",        # Senate Bill
    "hjres",    # House Joint Resolution
    "sjres",    # Senate Joint Resolution
    "hconres",  # House Concurrent Resolution
    "sconres",  # Senate Concurrent Resolution
    "hres",     # House Simple Resolution
    "sres",     # Senate Simple Resolution
})

CHAMBERS = frozenset({"house", "senate"})

SEARCH_SORTS = frozenset({"latestAction", "introducedDate", "updateDate"})


def bill_id(bill_type: str, number: str | int, congress: int) -> str:
    """Stable document key for a bill: ``"{type}{number}-{congress}"``."""
    return f"{str(bill_type).lower()}{number}-{congress}"


def short_title(bill_type: str, number: str | int) -> str:
    """Display label such as ``"HR. 1234"``."""
    return f"{str(bill_type).upper()}. {number}"


class BillStatus(str, enum.Enum):
    """Legislative stage derived from the latest action text."""

    ENACTED = "Enacted"
    PASSED_SENATE = "Passed Senate"
    PASSED_HOUSE = "Passed House"
    COMMITTEE_REVIEW = "Committee Review"
    INTRODUCED = "Introduced"
    IN_PROGRESS = "In Progress"


class ImpactLevel(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class CamelModel(BaseModel):
    """Base for models serialized to the frontend in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Building blocks ──

class LatestAction(CamelModel):
    """Most recent legislative action on a bill."""

    action_date: str = Field(
        default="",
        description="Date of action in YYYY-MM-DD format",
        examples=["2025-03-15"],
    )
    text: str = Field(
        default="",
        description="Free-text description of the action",
        examples=["Referred to the House Committee on Energy and Commerce."],
    )


class Sponsor(CamelModel):
    """Primary sponsor of a bill."""

    name: str = Field(default="", examples=["Rep. Smith, Jane [D-CA-12]"])
    party: str = Field(default="", examples=["D", "R", "I"])
    state: str = Field(default="", examples=["CA"])
    bioguide_id: str = Field(default="", examples=["S001234"])

    def display(self) -> str:
        return f"{self.name} ({self.party}-{self.state})"


class CosponsorCounts(CamelModel):
    count: int = Field(default=0, ge=0, description="Current cosponsors")
    count_including_withdrawn: int = Field(
        default=0,
        ge=0,
        description="Cosponsors including those who later withdrew",
    )


# ── Canonical bill ──

class Bill(CamelModel):
    """Canonical bill record, rebuilt from upstream data on every ingestion.

    Identity is ``{type, number, congress}``; ``id`` serializes it into the
    document key used by the search index.
    """

    type: str = Field(..., description="Bill type code", examples=["hr", "s"])
    number: str = Field(..., description="Bill number within its type", examples=["1234"])
    congress: int = Field(..., ge=1, description="Congress number", examples=[119])
    title: str = Field(default="")
    introduced_date: str = Field(default="", description="YYYY-MM-DD, empty when unknown")
    origin_chamber: str = Field(default="", examples=["House", "Senate"])
    url: str = Field(default="")
    update_date: str = Field(default="")
    latest_action: Optional[LatestAction] = None
    sponsor: Optional[Sponsor] = None
    cosponsors: CosponsorCounts = Field(default_factory=CosponsorCounts)
    subjects: list[str] = Field(default_factory=list)
    policy_area: str = Field(default="")

    status: BillStatus = BillStatus.INTRODUCED
    sectors: list[str] = Field(default_factory=lambda: ["General"], min_length=1)
    impact_level: ImpactLevel = ImpactLevel.LOW
    probability: int = Field(default=15, ge=0, le=100)

    summary: str = Field(default="", description="Best available human-readable synopsis")
    full_text: str = Field(default="", description="Raw bill text, size-capped")
    ai_summary: str = Field(default="", description="Derived narrative")
    text_versions: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("bill type must not be empty")
        return v

    @field_validator("number", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("bill number must not be empty")
        return v

    @computed_field
    @property
    def id(self) -> str:
        return bill_id(self.type, self.number, self.congress)

    @computed_field
    @property
    def short_title(self) -> str:
        return short_title(self.type, self.number)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready body for the search index."""
        return self.model_dump(mode="json", by_alias=True)


# ── View models (HTTP surface) ──

class BillSummaryView(CamelModel):
    """One row of a search result."""

    id: str
    title: str = ""
    short_title: str = ""
    summary: str = ""
    ai_summary: str = ""
    status: str = ""
    introduced_date: str = ""
    sponsor: str = "Unknown"
    impact_level: str = ""
    sectors: list[str] = Field(default_factory=list)
    probability: int = 0
    url: str = ""
    congress: Optional[int] = None
    type: str = ""
    number: str = ""
    latest_action: Optional[LatestAction] = None
    cosponsors_count: int = 0


class BillDetailView(CamelModel):
    """Single fully enriched bill."""

    id: str
    title: str = ""
    short_title: str = ""
    summary: str = ""
    full_text: str = ""
    ai_summary: str = ""
    status: str = ""
    introduced_date: str = ""
    sponsor: Optional[Sponsor] = None
    cosponsors: CosponsorCounts = Field(default_factory=CosponsorCounts)
    impact_level: str = ""
    sectors: list[str] = Field(default_factory=list)
    probability: int = 0
    url: str = ""
    congress: int
    type: str
    number: str
    origin_chamber: str = ""
    latest_action: Optional[LatestAction] = None
    subjects: list[str] = Field(default_factory=list)
    text_versions: list[dict[str, Any]] = Field(default_factory=list)
    related_bills: list[dict[str, Any]] = Field(default_factory=list)
    amendments: list[dict[str, Any]] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)


class Pagination(CamelModel):
    count: int = 0
    limit: int = 0
    offset: int = 0


class SearchResponse(CamelModel):
    bills: list[BillSummaryView] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
    query: str = ""
    total: int = 0


class SearchParams(CamelModel):
    """Validated search request parameters."""

    q: str = ""
    limit: int = Field(default=20, ge=0, le=250)
    offset: int = Field(default=0, ge=0)
    congress: Optional[int] = Field(default=None, ge=1)
    chamber: Optional[str] = None
    bill_type: Optional[str] = None
    sort: str = "updateDate"

    @field_validator("q")
    @classmethod
    def strip_query(cls, v: str) -> str:
        return v.strip()

    @field_validator("chamber")
    @classmethod
    def validate_chamber(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.lower()
        if v not in CHAMBERS:
            raise ValueError(f"Invalid chamber '{v}'. Must be one of: {sorted(CHAMBERS)}")
        return v

    @field_validator("bill_type")
    @classmethod
    def validate_bill_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.lower()
        if v not in BILL_TYPE_CODES:
            raise ValueError(
                f"Invalid bill type '{v}'. Must be one of: {sorted(BILL_TYPE_CODES)}"
            )
        return v

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, v: str) -> str:
        if v not in SEARCH_SORTS:
            raise ValueError(f"Invalid sort '{v}'. Must be one of: {sorted(SEARCH_SORTS)}")
        return v


class TranslateRequest(CamelModel):
    """Context handed to the text-generation collaborator."""

    summary: str = ""
    full_text: str = ""
    title: str = ""
    sponsor: str = ""
    actions: list[str] = Field(default_factory=list)

    @field_validator("summary", "full_text", "title", "sponsor", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("actions", mode="before")
    @classmethod
    def actions_list(cls, v: Any) -> Any:
        if v is None or not isinstance(v, list):
            return []
        return [str(a) for a in v]
