"""Heuristic bill classification.

Pure functions with no I/O: status from the latest action text, sectors and
impact level from keyword membership over title + subjects, and passage
probability from status, cosponsor count and origin chamber.
"""

from congressiq.schemas.models import BillStatus, ImpactLevel

GENERAL_SECTOR = "General"

SECTOR_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Technology": ("science", "technology", "internet", "telecommunications",
                   "cybersecurity", "artificial intelligence", "data"),
    "Healthcare": ("health", "medical", "medicare", "medicaid", "hospital",
                   "pharmaceutical", "drug"),
    "Energy": ("energy", "oil", "gas", "renewable", "solar", "wind", "nuclear",
               "coal", "electricity"),
    "Finance": ("banking", "financial", "securities", "investment", "credit",
                "loan", "mortgage"),
    "Manufacturing": ("manufacturing", "production", "industrial", "factory",
                      "supply chain"),
    "Agriculture": ("agriculture", "farming", "food", "crop", "livestock", "rural"),
    "Transportation": ("transportation", "aviation", "railroad", "highway",
                       "shipping", "automotive"),
    "Education": ("education", "school", "university", "student", "teacher", "learning"),
    "Environment": ("environment", "climate", "pollution", "conservation",
                    "wildlife", "water"),
    "Defense": ("defense", "military", "armed forces", "security", "veterans"),
}

HIGH_IMPACT_KEYWORDS = (
    "tax", "healthcare", "energy", "infrastructure", "defense", "budget",
    "immigration", "banking", "financial", "climate", "education",
)

# (substrings, status) in precedence order; first match wins
_STATUS_RULES: tuple[tuple[tuple[str, ...], BillStatus], ...] = (
    (("enacted", "became public law"), BillStatus.ENACTED),
    (("passed senate",), BillStatus.PASSED_SENATE),
    (("passed house",), BillStatus.PASSED_HOUSE),
    (("committee",), BillStatus.COMMITTEE_REVIEW),
    (("introduced",), BillStatus.INTRODUCED),
)

_TERMINAL_PROBABILITY = {
    BillStatus.ENACTED: 100,
    BillStatus.PASSED_SENATE: 85,
    BillStatus.PASSED_HOUSE: 75,
}

_BASE_PROBABILITY = {
    BillStatus.COMMITTEE_REVIEW: 35,
    BillStatus.INTRODUCED: 15,
}
_DEFAULT_BASE_PROBABILITY = 25

# (exclusive lower bound on cosponsors, bonus), highest threshold first
_COSPONSOR_BONUSES = ((100, 30), (50, 20), (20, 10), (5, 5))

HOUSE_MAJORITY = 218
SENATE_MAJORITY = 51
MAJORITY_BONUS = 15

PROBABILITY_FLOOR = 5
PROBABILITY_CEILING = 95


def _search_text(title: str, subject_names: list[str] | tuple[str, ...]) -> str:
    return f"{title or ''} {' '.join(subject_names or ())}".lower()


def derive_status(latest_action_text: str | None) -> BillStatus:
    """Classify a bill's stage from its latest action text.

    No latest action at all means the bill was just introduced; an action
    whose text matches no rule is still in progress.
    """
    if latest_action_text is None:
        return BillStatus.INTRODUCED
    text = latest_action_text.lower()
    for needles, status in _STATUS_RULES:
        if any(needle in text for needle in needles):
            return status
    return BillStatus.IN_PROGRESS


def extract_sectors(title: str, subject_names: list[str] | tuple[str, ...] = ()) -> list[str]:
    """Return every sector whose keyword list hits title + subjects.

    Never empty: falls back to ``["General"]``.
    """
    text = _search_text(title, subject_names)
    sectors = [
        sector for sector, keywords in SECTOR_KEYWORDS.items()
        if any(kw in text for kw in keywords)
    ]
    return sectors or [GENERAL_SECTOR]


def estimate_impact_level(
    title: str, subject_names: list[str] | tuple[str, ...], cosponsor_count: int,
) -> ImpactLevel:
    """High needs a high-impact keyword AND >50 cosponsors; either alone is Medium."""
    text = _search_text(title, subject_names)
    has_keyword = any(kw in text for kw in HIGH_IMPACT_KEYWORDS)
    cosponsors = cosponsor_count or 0

    if has_keyword and cosponsors > 50:
        return ImpactLevel.HIGH
    if has_keyword or cosponsors > 20:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def estimate_probability(
    status: BillStatus, cosponsor_count: int, origin_chamber: str | None,
) -> int:
    """Estimate passage probability as an integer percentage.

    Enacted / Passed Senate / Passed House report 100 / 85 / 75 directly.
    Everything else is base-by-status plus cosponsor and majority bonuses,
    clamped to [5, 95].
    """
    if status in _TERMINAL_PROBABILITY:
        return _TERMINAL_PROBABILITY[status]

    probability = _BASE_PROBABILITY.get(status, _DEFAULT_BASE_PROBABILITY)
    cosponsors = cosponsor_count or 0

    for threshold, bonus in _COSPONSOR_BONUSES:
        if cosponsors > threshold:
            probability += bonus
            break

    chamber = (origin_chamber or "").strip().lower()
    if chamber == "house" and cosponsors > HOUSE_MAJORITY:
        probability += MAJORITY_BONUS
    if chamber == "senate" and cosponsors > SENATE_MAJORITY:
        probability += MAJORITY_BONUS

    return min(PROBABILITY_CEILING, max(PROBABILITY_FLOOR, probability))


# ── Derived narratives ──

_SECTOR_NOTES = {
    "Healthcare": "Healthcare providers and insurance companies should monitor compliance requirements.",
    "Technology": "Tech companies may face new regulations or benefit from innovation incentives.",
    "Energy": "Energy companies should assess potential costs and opportunities.",
}

_COMPLIANCE_NOTES = {
    "Healthcare": (
        "Healthcare organizations should prepare for potential new regulatory requirements",
        "Health tech companies may need to update privacy and security practices",
    ),
    "Technology": (
        "Tech companies should monitor for new data protection or AI governance requirements",
        "Software providers may need to implement new compliance features",
    ),
    "Finance": (
        "Financial institutions should assess impact on reporting and operational requirements",
        "Fintech companies may face new regulatory oversight",
    ),
    "Energy": (
        "Energy companies should evaluate environmental compliance and reporting changes",
        "Renewable energy firms may benefit from new incentives or requirements",
    ),
}


def build_ai_summary(sectors: list[str], cosponsor_count: int) -> str:
    """Short impact blurb for search result rows."""
    cosponsors = cosponsor_count or 0
    parts = [f"This bill could impact {', '.join(sectors)} sectors."]
    if cosponsors > 50:
        parts.append(
            f"With {cosponsors} cosponsors, it has strong bipartisan support "
            "and higher chances of passage."
        )
    elif cosponsors > 20:
        parts.append(f"With {cosponsors} cosponsors, it has moderate support.")
    else:
        parts.append(f"With {cosponsors} cosponsors, it currently has limited support.")
    parts.extend(_SECTOR_NOTES[s] for s in ("Healthcare", "Technology", "Energy") if s in sectors)
    parts.append("Full AI analysis will be available once the bill text is processed.")
    return " ".join(parts)


def _recommendation(sectors: list[str], cosponsors: int) -> str:
    if cosponsors > 50 and len(sectors) > 2:
        return ("High priority monitoring recommended. Begin preliminary compliance "
                "assessment and stakeholder engagement.")
    if cosponsors > 20:
        return "Moderate priority. Monitor progress and prepare for potential impact assessment."
    return "Low immediate priority, but continue monitoring for momentum changes."


def build_detailed_ai_summary(sectors: list[str], cosponsor_count: int) -> str:
    """Markdown business-impact analysis for the bill detail view."""
    cosponsors = cosponsor_count or 0
    lines = ["**Business Impact Analysis:**", "", f"**Affected Sectors:** {', '.join(sectors)}", ""]

    if cosponsors > 100:
        momentum = (f"Very High - This bill has exceptional bipartisan support with {cosponsors} "
                    "cosponsors, indicating strong likelihood of advancement.")
    elif cosponsors > 50:
        momentum = (f"High - With {cosponsors} cosponsors, this bill has significant support "
                    "and good chances of passage.")
    elif cosponsors > 20:
        momentum = (f"Moderate - {cosponsors} cosponsors suggest decent support, "
                    "but may face challenges.")
    else:
        momentum = (f"Low - With only {cosponsors} cosponsors, this bill currently "
                    "lacks broad support.")
    lines += [f"**Political Momentum:** {momentum}", "", "**Compliance Considerations:**"]

    for sector in ("Healthcare", "Technology", "Finance", "Energy"):
        if sector in sectors:
            lines.extend(f"• {note}" for note in _COMPLIANCE_NOTES[sector])

    lines += [
        "",
        "**Economic Impact:** Preliminary analysis suggests this legislation could affect "
        f"market dynamics in {', '.join(sectors)} sectors. Full financial modeling will be "
        "available once final bill text is processed.",
        "",
        f"**Recommendation:** {_recommendation(sectors, cosponsors)}",
    ]
    return "\n".join(lines)
