from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime, timezone
from typing import Any

from jobs_analytics.services.classification import ClassificationResult, seniority_level
from jobs_analytics.services.entities import effective_agency

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
CLOSING_SOON_DAYS = 3
URGENT_DAYS = 7
NORMAL_DAYS = 30
HQ_COUNTRIES = (
    "United States",
    "Switzerland",
    "Austria",
    "Italy",
    "France",
    "Belgium",
    "Netherlands",
    "Kenya",
    "Thailand",
)
REMOTE_MARKERS = ("home", "remote")
SKILL_DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Technical": ("software", "data", "it", "programming", "engineering", "analysis"),
    "Management": ("management", "coordination", "leadership", "planning", "strategy"),
    "Communication": ("communication", "writing", "presentation", "advocacy", "outreach"),
    "Operational": ("logistics", "operations", "procurement", "administration", "finance"),
}
_TRUE_VALUES = {"1", "true"}
_FALSE_VALUES = {"0", "false"}
_MISSING_DATE_VALUES = {"", "n/a", "na", "none", "null"}
_LABEL_WORD_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True, slots=True)
class RawRecord:
    id: int
    title: str | None = None
    description: str | None = None
    job_labels: str | None = None
    short_agency: str | None = None
    long_agency: str | None = None
    duty_station: str | None = None
    duty_country: str | None = None
    duty_continent: str | None = None
    country_code: str | None = None
    eligible_nationality: str | None = None
    hs_min_exp: int | None = None
    bachelor_min_exp: int | None = None
    master_min_exp: int | None = None
    up_grade: str | None = None
    pipeline: str | None = None
    department: str | None = None
    posting_date: Any = None
    apply_until: Any = None
    url: str | None = None
    languages: str | None = None
    uniquecode: str | None = None
    ideal_candidate: str | None = None
    sectoral_category: str | None = None
    archived: Any = None
    created_at: Any = None
    updated_at: Any = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> RawRecord:
        values = dict(row)
        known = {item.name for item in fields(cls)}
        kwargs = {key: value for key, value in values.items() if key in known}
        kwargs["id"] = int(values["id"])
        for key in ("hs_min_exp", "bachelor_min_exp", "master_min_exp"):
            kwargs[key] = _as_int(values.get(key))
        return cls(**kwargs)


@dataclass(slots=True)
class EnrichedRecord:
    id: int
    title: str | None
    description: str | None
    job_labels: str | None
    short_agency: str | None
    long_agency: str | None
    duty_station: str | None
    duty_country: str | None
    duty_continent: str | None
    country_code: str | None
    eligible_nationality: str | None
    hs_min_exp: int | None
    bachelor_min_exp: int | None
    master_min_exp: int | None
    up_grade: str | None
    pipeline: str | None
    department: str | None
    posting_date: str | None
    apply_until: str | None
    url: str | None
    languages: str | None
    uniquecode: str | None
    ideal_candidate: str | None
    sectoral_category: str | None
    archived: bool
    created_at: str | None
    updated_at: str | None
    primary_category: str
    secondary_categories: list[dict[str, Any]]
    classification_confidence: int
    classification_reasoning: list[str]
    is_ambiguous_category: bool
    is_low_confidence: bool
    emerging_terms: list[str]
    seniority_level: str
    location_type: str
    skill_domains: list[str]
    status: str
    is_active: bool
    is_expired: bool
    days_remaining: int
    urgency: str
    application_window_days: int
    formatted_posting_date: str | None
    formatted_apply_until: str | None
    processed_at: str
    is_user_corrected: bool = False
    user_corrected_by: str | None = None
    user_corrected_at: str | None = None

    def to_row(self) -> dict[str, Any]:
        """Column values for the local store; list fields become JSON text."""
        row = asdict(self)
        for key in ("secondary_categories", "classification_reasoning", "emerging_terms", "skill_domains"):
            row[key] = json.dumps(row[key])
        return row

    @classmethod
    def column_names(cls) -> list[str]:
        return [item.name for item in fields(cls)]


def enrich(raw: RawRecord, classification: ClassificationResult, *, now: datetime | None = None) -> EnrichedRecord:
    current = now or datetime.now(timezone.utc)
    posting_date = parse_datetime(raw.posting_date)
    deadline = parse_datetime(raw.apply_until)
    archived = normalize_archived(raw.archived, record_id=raw.id)

    days_remaining = compute_days_remaining(deadline, current)
    status = compute_status(days_remaining, archived=archived)

    return EnrichedRecord(
        id=raw.id,
        title=raw.title,
        description=raw.description,
        job_labels=raw.job_labels,
        short_agency=effective_agency(raw.short_agency, raw.department),
        long_agency=raw.long_agency,
        duty_station=raw.duty_station,
        duty_country=raw.duty_country,
        duty_continent=raw.duty_continent,
        country_code=raw.country_code,
        eligible_nationality=raw.eligible_nationality,
        hs_min_exp=raw.hs_min_exp,
        bachelor_min_exp=raw.bachelor_min_exp,
        master_min_exp=raw.master_min_exp,
        up_grade=raw.up_grade,
        pipeline=raw.pipeline,
        department=raw.department,
        posting_date=format_timestamp(posting_date),
        apply_until=format_timestamp(deadline),
        url=raw.url,
        languages=raw.languages,
        uniquecode=raw.uniquecode,
        ideal_candidate=raw.ideal_candidate,
        sectoral_category=raw.sectoral_category,
        archived=archived,
        created_at=format_timestamp(parse_datetime(raw.created_at)),
        updated_at=format_timestamp(parse_datetime(raw.updated_at)),
        primary_category=classification.primary,
        secondary_categories=[
            {"category": category, "confidence": confidence} for category, confidence in classification.secondary
        ],
        classification_confidence=classification.confidence,
        classification_reasoning=list(classification.reasoning),
        is_ambiguous_category=classification.flags.ambiguous,
        is_low_confidence=classification.flags.low_confidence,
        emerging_terms=list(classification.flags.emerging_terms),
        seniority_level=seniority_level(raw.up_grade),
        location_type=location_type(raw.duty_station, raw.duty_country),
        skill_domains=skill_domains(raw.job_labels),
        status=status,
        is_active=status in {"active", "closing_soon"},
        is_expired=status in {"archived", "expired"},
        days_remaining=days_remaining,
        urgency=compute_urgency(days_remaining),
        application_window_days=application_window_days(posting_date, deadline),
        formatted_posting_date=posting_date.date().isoformat() if posting_date else None,
        formatted_apply_until=deadline.date().isoformat() if deadline else None,
        processed_at=format_timestamp(current) or "",
    )


def compute_days_remaining(deadline: datetime | None, now: datetime) -> int:
    if deadline is None:
        return 0
    return math.ceil((deadline - _as_utc(now)).total_seconds() / SECONDS_PER_DAY)


def compute_status(days_remaining: int, *, archived: bool) -> str:
    if archived:
        return "archived"
    if days_remaining < 0:
        return "expired"
    if days_remaining <= CLOSING_SOON_DAYS:
        return "closing_soon"
    return "active"


def compute_urgency(days_remaining: int) -> str:
    if days_remaining < URGENT_DAYS:
        return "urgent"
    if days_remaining <= NORMAL_DAYS:
        return "normal"
    return "extended"


def application_window_days(posting_date: datetime | None, deadline: datetime | None) -> int:
    if posting_date is None or deadline is None:
        return 0
    return math.ceil((deadline - posting_date).total_seconds() / SECONDS_PER_DAY)


def location_type(duty_station: str | None, duty_country: str | None) -> str:
    station = (duty_station or "").lower()
    if any(marker in station for marker in REMOTE_MARKERS):
        return "Remote"
    country = (duty_country or "").strip().lower()
    if country and any(hq.lower() in country for hq in HQ_COUNTRIES):
        return "HQ"
    return "Field"


def skill_domains(job_labels: str | None) -> list[str]:
    labels = (job_labels or "").lower()
    if not labels:
        return []
    words = set(_LABEL_WORD_RE.findall(labels))
    return [
        domain
        for domain, keywords in SKILL_DOMAIN_KEYWORDS.items()
        if any(_label_matches(keyword, labels, words) for keyword in keywords)
    ]


def _label_matches(keyword: str, labels: str, words: set[str]) -> bool:
    # Two-letter keywords such as "it" only count as whole words.
    if len(keyword) <= 2:
        return keyword in words
    return keyword in labels


def normalize_archived(value: Any, *, record_id: Any = None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
    logger.warning("unexpected archived value id=%s value=%r; treating as not archived", record_id, value)
    return False


def parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if stripped.lower() in _MISSING_DATE_VALUES:
        return None
    if stripped.endswith("Z"):
        stripped = f"{stripped[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(stripped)
    except ValueError:
        return None
    return _as_utc(parsed)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return _as_utc(value).replace(microsecond=0).isoformat()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
