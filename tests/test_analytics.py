import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from jobs_analytics.services.analytics import (
    VIEWS,
    AnalyticsCache,
    cache_key,
    compute_competitive,
    compute_overview,
    compute_skills,
    market_concentration,
    months_ago,
)
from jobs_analytics.services.errors import RepositoryNotFoundError
from jobs_analytics.services.local_store import LocalStore
from jobs_analytics.services.sync import process_record


@pytest.fixture
def seeded_store(tmp_path, make_raw, fixed_now) -> LocalStore:
    store = LocalStore(str(tmp_path / "jobs.db"))
    raws = [
        make_raw(1, job_labels="Reporting, Budgeting"),
        make_raw(2, short_agency="UNICEF", job_labels="Reporting, Child Protection"),
        make_raw(3, short_agency="UNICEF", job_labels="Reporting", posting_date=fixed_now - timedelta(days=40)),
        make_raw(4, short_agency="WFP", job_labels="", archived=True),
    ]
    asyncio.run(store.replace_all([process_record(raw, now=fixed_now) for raw in raws]))
    yield store
    asyncio.run(store.close())


def test_months_ago_clamps_to_month_end() -> None:
    assert months_ago(datetime(2026, 3, 31, tzinfo=timezone.utc), 1) == "2026-02-28"
    assert months_ago(datetime(2026, 3, 10, tzinfo=timezone.utc), 6) == "2025-09-10"
    assert months_ago(datetime(2026, 1, 15, tzinfo=timezone.utc), 12) == "2025-01-15"


def test_market_concentration() -> None:
    result = market_concentration([50, 30, 20])

    assert result["herfindahl_index"] == 0.38
    assert result["top3_share"] == pytest.approx(100.0)
    assert result["top5_share"] == pytest.approx(100.0)
    assert market_concentration([])["herfindahl_index"] == 0.0


def test_overview_counts(seeded_store: LocalStore, fixed_now) -> None:
    overview = asyncio.run(compute_overview(seeded_store, fixed_now))

    assert overview["total_jobs"] == 4
    assert overview["total_agencies"] == 3
    assert overview["active_jobs"] == 3
    assert overview["expired_jobs"] == 1
    assert overview["top_agencies"][0] == {"agency": "UNICEF", "count": 2}
    assert [row["month"] for row in overview["monthly_trends"]] == ["2026-01", "2026-02"]
    assert overview["month_over_month_growth"] == 200.0
    assert sum(row["percentage"] for row in overview["top_categories"]) == pytest.approx(100.0)


def test_skills_are_counted_from_labels(seeded_store: LocalStore, fixed_now) -> None:
    skills = asyncio.run(compute_skills(seeded_store, fixed_now))

    assert skills["top_skills"][0] == {"skill": "Reporting", "count": 3}
    assert skills["total_unique_skills"] == 3
    assert skills["avg_skills_per_job"] == 1.7


def test_competitive_leaders_and_concentration(seeded_store: LocalStore, fixed_now) -> None:
    competitive = asyncio.run(compute_competitive(seeded_store, fixed_now))

    assert competitive["agency_positioning"][0]["agency"] == "UNICEF"
    assert competitive["agency_positioning"][0]["market_share"] == pytest.approx(50.0)
    assert competitive["market_concentration"]["herfindahl_index"] == 0.375
    for leader in competitive["category_leaders"]:
        assert leader["leading_count"] <= leader["total_in_category"]


def test_precompute_writes_every_view(seeded_store: LocalStore, fixed_now) -> None:
    cache = AnalyticsCache(seeded_store, ttl=timedelta(hours=24))

    written = asyncio.run(cache.precompute(now=fixed_now))

    assert written == list(VIEWS)
    assert len(written) == 7
    for view in VIEWS:
        entry = asyncio.run(seeded_store.cache_get(cache_key(view), now=fixed_now))
        assert entry is not None and entry.fresh


def test_get_view_serves_fresh_cache_then_recomputes(seeded_store: LocalStore, fixed_now) -> None:
    cache = AnalyticsCache(seeded_store, ttl=timedelta(hours=24))
    asyncio.run(cache.precompute(now=fixed_now))

    cached = asyncio.run(cache.get_view("overview", now=fixed_now + timedelta(hours=1)))
    refreshed = asyncio.run(cache.get_view("overview", now=fixed_now + timedelta(hours=25)))

    assert cached.from_cache is True
    assert cached.data["total_jobs"] == 4
    assert refreshed.from_cache is False
    assert refreshed.created_at == fixed_now + timedelta(hours=25)
    assert refreshed.expires_at == fixed_now + timedelta(hours=49)


def test_get_view_on_empty_cache_computes(seeded_store: LocalStore, fixed_now) -> None:
    cache = AnalyticsCache(seeded_store)

    view = asyncio.run(cache.get_view("workforce", now=fixed_now))

    assert view.from_cache is False
    assert view.data["grade_distribution"] == [{"up_grade": "P3", "count": 4}]


def test_get_view_rejects_unknown_view(seeded_store: LocalStore) -> None:
    with pytest.raises(RepositoryNotFoundError):
        asyncio.run(AnalyticsCache(seeded_store).get_view("horoscope"))


def test_get_all_returns_every_view(seeded_store: LocalStore, fixed_now) -> None:
    views = asyncio.run(AnalyticsCache(seeded_store).get_all(now=fixed_now))

    assert set(views) == set(VIEWS)
