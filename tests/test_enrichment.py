import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from jobs_analytics.services.classification import classify
from jobs_analytics.services.enrichment import (
    RawRecord,
    application_window_days,
    compute_days_remaining,
    compute_status,
    compute_urgency,
    enrich,
    location_type,
    normalize_archived,
    parse_datetime,
    skill_domains,
)
from jobs_analytics.services.entities import effective_agency


def _enrich(raw: RawRecord, now: datetime):
    classification = classify(raw.title, raw.description, raw.job_labels, raw.up_grade)
    return enrich(raw, classification, now=now)


def test_deadline_yesterday_is_expired(make_raw, fixed_now) -> None:
    record = _enrich(make_raw(1, apply_until=fixed_now - timedelta(days=1)), fixed_now)

    assert record.days_remaining == -1
    assert record.status == "expired"
    assert record.is_expired
    assert not record.is_active


def test_deadline_in_two_days_is_closing_soon(make_raw, fixed_now) -> None:
    record = _enrich(make_raw(1, apply_until=fixed_now + timedelta(days=2)), fixed_now)

    assert record.days_remaining == 2
    assert record.status == "closing_soon"
    assert record.urgency == "urgent"
    assert record.is_active


def test_archived_flag_overrides_deadline(make_raw, fixed_now) -> None:
    record = _enrich(make_raw(1, apply_until=fixed_now + timedelta(days=2), archived="1"), fixed_now)

    assert record.archived is True
    assert record.status == "archived"
    assert record.is_expired


def test_missing_deadline_counts_as_zero_days(make_raw, fixed_now) -> None:
    record = _enrich(make_raw(1, apply_until="N/A"), fixed_now)

    assert record.days_remaining == 0
    assert record.status == "closing_soon"
    assert record.application_window_days == 0
    assert record.apply_until is None
    assert record.formatted_apply_until is None


def test_enrich_carries_classification_and_formats_dates(make_raw, fixed_now) -> None:
    raw = make_raw(
        42,
        title="Software Developer",
        description="Builds software and programming tools",
        up_grade="P2",
        posting_date="2026-03-01T08:30:00Z",
        apply_until=date(2026, 3, 31),
    )
    record = _enrich(raw, fixed_now)

    assert record.primary_category == "digital-technology"
    assert record.classification_confidence == 100
    assert record.seniority_level == "Entry"
    assert record.posting_date == "2026-03-01T08:30:00+00:00"
    assert record.formatted_posting_date == "2026-03-01"
    assert record.formatted_apply_until == "2026-03-31"
    assert record.application_window_days == 30
    assert record.processed_at == "2026-03-10T12:00:00+00:00"


def test_enrich_rewrites_secretariat_agency(make_raw, fixed_now) -> None:
    raw = make_raw(7, short_agency="UN Secretariat", department="Office for the Coordination of Humanitarian Affairs")

    assert _enrich(raw, fixed_now).short_agency == "OCHA"


def test_raw_record_ignores_unknown_columns(raw_row) -> None:
    raw = RawRecord.from_mapping({**raw_row(3, hs_min_exp="5"), "unexpected_column": "x"})

    assert raw.id == 3
    assert raw.hs_min_exp == 5


@pytest.mark.parametrize(
    ("days", "expected"),
    [(-5, "urgent"), (0, "urgent"), (6, "urgent"), (7, "normal"), (30, "normal"), (31, "extended")],
)
def test_urgency_thresholds(days: int, expected: str) -> None:
    assert compute_urgency(days) == expected


@pytest.mark.parametrize(
    ("days", "archived", "expected"),
    [(-1, False, "expired"), (0, False, "closing_soon"), (3, False, "closing_soon"), (4, False, "active"), (10, True, "archived")],
)
def test_status_rules(days: int, archived: bool, expected: str) -> None:
    assert compute_status(days, archived=archived) == expected


def test_days_remaining_rounds_partial_days_up(fixed_now) -> None:
    assert compute_days_remaining(fixed_now + timedelta(hours=30), fixed_now) == 2
    assert compute_days_remaining(None, fixed_now) == 0


def test_application_window_needs_both_dates(fixed_now) -> None:
    assert application_window_days(fixed_now, fixed_now + timedelta(days=14)) == 14
    assert application_window_days(None, fixed_now) == 0


@pytest.mark.parametrize(
    ("station", "country", "expected"),
    [
        ("Home Based", "Kenya", "Remote"),
        ("Remote", None, "Remote"),
        ("Geneva", "Switzerland", "HQ"),
        ("Nairobi", "Kenya", "HQ"),
        ("New York", "United States of America", "HQ"),
        ("N'Djamena", "Chad", "Field"),
        (None, None, "Field"),
    ],
)
def test_location_type(station, country, expected: str) -> None:
    assert location_type(station, country) == expected


def test_skill_domains_follow_fixed_order() -> None:
    assert skill_domains("Advocacy, Project Management, Software development") == ["Technical", "Management", "Communication"]
    assert skill_domains("IT support") == ["Technical"]
    assert skill_domains("Digital literacy") == []
    assert skill_domains(None) == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), (False, False), (1, True), (0, False), ("1", True), ("0", False), ("true", True), ("False", False), (None, False)],
)
def test_normalize_archived_accepts_known_representations(value, expected: bool) -> None:
    assert normalize_archived(value) is expected


def test_normalize_archived_logs_unexpected_values(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        assert normalize_archived("yes", record_id=9) is False

    assert "unexpected archived value id=9" in caplog.text


def test_parse_datetime_handles_missing_and_naive_values() -> None:
    assert parse_datetime("N/A") is None
    assert parse_datetime("") is None
    assert parse_datetime("not a date") is None
    assert parse_datetime("2026-01-02T03:04:05") == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert parse_datetime("2026-01-02T03:04:05Z") == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("agency", "department", "expected"),
    [
        ("UN Secretariat", "Office for the Coordination of Humanitarian Affairs", "OCHA"),
        ("United Nations", "UN Office at Geneva", "UNOG"),
        ("un", "Economic Commission for Africa", "ECA"),
        ("UN Secretariat", "Department of Economic and Social Affairs", "UN Secretariat"),
        ("UN Secretariat", None, "UN Secretariat"),
        ("UNICEF", "Office for the Coordination of Humanitarian Affairs", "UNICEF"),
    ],
)
def test_effective_agency(agency: str, department, expected: str) -> None:
    assert effective_agency(agency, department) == expected
