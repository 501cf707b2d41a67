"""Merge raw Congress.gov records into canonical ``Bill`` models.

A bare listing entry is the only required input. Detail, summaries and text
are optional side channels: when a fetch for one of them fails the failure is
logged as ``EnrichmentDegraded`` and the bill is built from whatever data
is available.
"""

import asyncio
import logging
from datetime import datetime, timezone

from dateutil import parser as dateparser

from congressiq.analysis.classifier import (
    build_ai_summary,
    build_detailed_ai_summary,
    derive_status,
    estimate_impact_level,
    estimate_probability,
    extract_sectors,
)
from congressiq.errors import EnrichmentDegraded, UpstreamError
from congressiq.schemas.models import (
    Bill,
    CosponsorCounts,
    LatestAction,
    Sponsor,
    bill_id,
)

logger = logging.getLogger(__name__)

FULL_TEXT_MAX_CHARS = 10_000

# Most structured first
TEXT_FORMAT_PREFERENCE = ("Formatted XML", "Formatted Text")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _parse_date(value) -> datetime:
    """Parse an upstream date; missing or unparseable dates sort oldest."""
    if not value:
        return _EPOCH
    try:
        parsed = dateparser.parse(str(value))
    except (ValueError, OverflowError):
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def select_latest_summary(summaries: list[dict] | None) -> dict | None:
    """Pick the most recently updated summary entry."""
    candidates = [s for s in (summaries or []) if isinstance(s, dict)]
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda s: _parse_date(s.get("updateDate") or s.get("actionDate")),
    )


def select_text_format(text_versions: list[dict] | None) -> dict | None:
    """Pick the preferred format of the most recent text version.

    Formatted XML beats Formatted Text beats whatever format is listed first.
    """
    versions = [v for v in (text_versions or []) if isinstance(v, dict)]
    if not versions:
        return None
    latest = max(versions, key=lambda v: _parse_date(v.get("date")))
    formats = [f for f in (latest.get("formats") or []) if isinstance(f, dict)]
    if not formats:
        return None
    for preferred in TEXT_FORMAT_PREFERENCE:
        for fmt in formats:
            if fmt.get("type") == preferred:
                return fmt
    return formats[0]


def truncate_text(text: str | None, limit: int = FULL_TEXT_MAX_CHARS) -> str:
    return (text or "")[:max(limit, 0)]


def _sponsor(merged: dict) -> Sponsor | None:
    sponsors = merged.get("sponsors")
    if not isinstance(sponsors, list) or not sponsors:
        return None
    first = _as_dict(sponsors[0])
    return Sponsor(
        name=first.get("fullName") or "",
        party=first.get("party") or "",
        state=first.get("state") or "",
        bioguide_id=first.get("bioguideId") or "",
    )


def _cosponsors(merged: dict) -> CosponsorCounts:
    raw = merged.get("cosponsors")
    if isinstance(raw, list):
        return CosponsorCounts(count=len(raw), count_including_withdrawn=len(raw))
    raw = _as_dict(raw)
    return CosponsorCounts(
        count=int(raw.get("count") or 0),
        count_including_withdrawn=int(raw.get("countIncludingWithdrawnCosponsors") or 0),
    )


def _subject_names(merged: dict) -> list[str]:
    subjects = _as_dict(merged.get("subjects"))
    return [
        s["name"] for s in subjects.get("legislativeSubjects") or []
        if isinstance(s, dict) and s.get("name")
    ]


def _latest_action(merged: dict) -> LatestAction | None:
    raw = merged.get("latestAction")
    if not isinstance(raw, dict):
        return None
    return LatestAction(action_date=raw.get("actionDate") or "", text=raw.get("text") or "")


def normalize_bill(
    raw: dict,
    detail: dict | None = None,
    summaries: list[dict] | None = None,
    text_versions: list[dict] | None = None,
    full_text: str = "",
    *,
    full_text_max_chars: int = FULL_TEXT_MAX_CHARS,
    detailed_ai_summary: bool = False,
) -> Bill:
    """Build a canonical Bill from a listing entry plus optional sub-resources.

    Detail fields override listing fields. Derived fields (status, sectors,
    impact level, probability, AI summary) are recomputed from the merged
    record.

    Raises:
        ValueError: The record lacks a usable type/number/congress identity.
    """
    merged = {**_as_dict(raw), **_as_dict(detail)}
    for key in ("type", "number", "congress"):
        if merged.get(key) in (None, ""):
            raise ValueError(f"Bill record missing '{key}': {raw!r}"[:200])

    title = merged.get("title") or ""
    subjects = _subject_names(merged)
    cosponsors = _cosponsors(merged)
    latest_action = _latest_action(merged)
    origin_chamber = merged.get("originChamber") or ""

    status = derive_status(latest_action.text if latest_action else None)
    sectors = extract_sectors(title, subjects)
    if detailed_ai_summary:
        ai_summary = build_detailed_ai_summary(sectors, cosponsors.count)
    else:
        ai_summary = build_ai_summary(sectors, cosponsors.count)

    latest_summary = select_latest_summary(summaries)
    summary = (latest_summary or {}).get("text") or title

    if text_versions is None:
        text_versions = merged.get("textVersions") if isinstance(merged.get("textVersions"), list) else []

    return Bill(
        type=merged["type"],
        number=merged["number"],
        congress=int(merged["congress"]),
        title=title,
        introduced_date=merged.get("introducedDate") or "",
        origin_chamber=origin_chamber,
        url=merged.get("url") or "",
        update_date=merged.get("updateDate") or "",
        latest_action=latest_action,
        sponsor=_sponsor(merged),
        cosponsors=cosponsors,
        subjects=subjects,
        policy_area=_as_dict(merged.get("policyArea")).get("name") or "",
        status=status,
        sectors=sectors,
        impact_level=estimate_impact_level(title, subjects, cosponsors.count),
        probability=estimate_probability(status, cosponsors.count, origin_chamber),
        summary=summary,
        full_text=truncate_text(full_text, full_text_max_chars),
        ai_summary=ai_summary,
        text_versions=text_versions,
    )


def _degraded(doc_id: str, resource: str, cause: BaseException) -> EnrichmentDegraded:
    degraded = EnrichmentDegraded(doc_id, resource, cause)
    logger.warning("Enrichment degraded: %s", degraded)
    return degraded


def _unwrap(result, doc_id: str, resource: str, fallback):
    """Absorb an upstream failure from asyncio.gather; re-raise anything else."""
    if isinstance(result, UpstreamError):
        _degraded(doc_id, resource, result)
        return fallback
    if isinstance(result, BaseException):
        raise result
    return result


async def fetch_sub_resources(client, session, congress: int, bill_type: str, number: str,
                              doc_id: str) -> tuple[list[dict], list[dict], str]:
    """Fetch summaries and text concurrently, then the preferred text body.

    Returns (summaries, text_versions, full_text); failed parts come back empty.
    """
    summaries_res, text_res = await asyncio.gather(
        client.get_bill_summaries(session, congress, bill_type, number),
        client.get_bill_text(session, congress, bill_type, number),
        return_exceptions=True,
    )
    summaries = _unwrap(summaries_res, doc_id, "summaries", [])
    text_versions = _unwrap(text_res, doc_id, "text", [])

    full_text = ""
    fmt = select_text_format(text_versions)
    if fmt and fmt.get("url"):
        try:
            full_text = await client.fetch_text_content(session, fmt["url"])
        except (UpstreamError, ValueError) as e:
            _degraded(doc_id, "text content", e)
    return summaries, text_versions, full_text


async def enrich_bill(
    client,
    session,
    raw: dict,
    *,
    with_text: bool = False,
    full_text_max_chars: int = FULL_TEXT_MAX_CHARS,
) -> Bill:
    """Enrich one listing entry with its detail (and optionally summaries/text).

    Sub-resource failures never abort the record.
    """
    congress = raw.get("congress")
    bill_type = str(raw.get("type") or "").lower()
    number = str(raw.get("number") or "")
    doc_id = bill_id(bill_type, number, congress)

    detail = None
    try:
        detail = await client.get_bill_detail(session, congress, bill_type, number)
    except (UpstreamError, ValueError) as e:
        _degraded(doc_id, "detail", e)

    summaries: list[dict] | None = None
    text_versions: list[dict] | None = None
    full_text = ""
    if with_text:
        try:
            summaries, text_versions, full_text = await fetch_sub_resources(
                client, session, congress, bill_type, number, doc_id,
            )
        except ValueError as e:
            _degraded(doc_id, "summaries/text", e)

    return normalize_bill(
        raw, detail, summaries, text_versions, full_text,
        full_text_max_chars=full_text_max_chars,
    )
