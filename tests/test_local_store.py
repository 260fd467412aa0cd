import asyncio
import sqlite3
from datetime import timedelta

import pytest

from jobs_analytics.services.errors import RepositoryNotFoundError, RepositoryValidationError
from jobs_analytics.services.local_store import LocalStore
from jobs_analytics.services.sync import process_record


@pytest.fixture
def store(tmp_path) -> LocalStore:
    local_store = LocalStore(str(tmp_path / "cache" / "jobs.db"))
    asyncio.run(local_store.initialize())
    yield local_store
    asyncio.run(local_store.close())


def _records(make_raw, now, *specs):
    return [process_record(make_raw(job_id, **overrides), now=now) for job_id, overrides in specs]


def test_initialize_seeds_sync_metadata(store: LocalStore) -> None:
    metadata = asyncio.run(store.get_sync_metadata())

    assert metadata["status"] == "never_synced"
    assert metadata["last_sync_at"] is None
    assert asyncio.run(store.has_data()) is False


def test_replace_all_swaps_snapshot(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (1, {}), (2, {}), (3, {}))))
    written = asyncio.run(store.replace_all(_records(make_raw, fixed_now, (4, {}), (5, {})), batch_size=1))

    assert written == 2
    assert asyncio.run(store.count_jobs()) == 2
    assert [job["id"] for job in asyncio.run(store.fetch_all_jobs())] == [4, 5]


def test_replace_all_with_no_records_empties_table(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (1, {}))))
    asyncio.run(store.replace_all([]))

    assert asyncio.run(store.count_jobs()) == 0


def test_failed_first_batch_keeps_previous_snapshot(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (1, {}), (2, {}))))
    duplicate_url = "https://jobs.example.org/dup"
    conflicting = _records(make_raw, fixed_now, (3, {"url": duplicate_url}), (4, {"url": duplicate_url}))

    with pytest.raises(sqlite3.IntegrityError):
        asyncio.run(store.replace_all(conflicting))

    assert [job["id"] for job in asyncio.run(store.fetch_all_jobs())] == [1, 2]


def test_get_job_decodes_json_and_booleans(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (9, {"archived": 1}))))
    job = asyncio.run(store.get_job(9))

    assert job["archived"] is True
    assert job["status"] == "archived"
    assert isinstance(job["classification_reasoning"], list)
    assert isinstance(job["skill_domains"], list)

    with pytest.raises(RepositoryNotFoundError):
        asyncio.run(store.get_job(404))


def test_list_jobs_filters_and_paginates(store: LocalStore, make_raw, fixed_now) -> None:
    records = _records(
        make_raw,
        fixed_now,
        (1, {"title": "Software Developer", "description": "software programming", "up_grade": "G5"}),
        (2, {"short_agency": "UNICEF", "duty_country": "Kenya"}),
        (3, {"short_agency": "UNICEF", "duty_country": "Chad"}),
    )
    asyncio.run(store.replace_all(records))

    by_agency = asyncio.run(store.list_jobs(agency="UNICEF", sort_by="title", sort_dir="asc"))
    assert by_agency["total"] == 2
    by_long_agency = asyncio.run(store.list_jobs(agency="United Nations Development Programme"))
    assert by_long_agency["total"] == 3
    assert asyncio.run(store.list_jobs(search="programming"))["total"] == 1
    assert asyncio.run(store.list_jobs(category="digital-technology"))["jobs"][0]["id"] == 1
    assert asyncio.run(store.list_jobs(grade="G"))["total"] == 1

    first_page = asyncio.run(store.list_jobs(limit=2, page=1, sort_by="days_remaining"))
    second_page = asyncio.run(store.list_jobs(limit=2, page=2, sort_by="days_remaining"))
    assert first_page["total_pages"] == 2
    assert len(first_page["jobs"]) == 2
    assert len(second_page["jobs"]) == 1


def test_filter_options_and_classification_stats(store: LocalStore, make_raw, fixed_now) -> None:
    records = _records(
        make_raw,
        fixed_now,
        (1, {"short_agency": "UNICEF"}),
        (2, {"short_agency": "UNICEF"}),
        (3, {"short_agency": "WFP", "up_grade": "D1"}),
    )
    asyncio.run(store.replace_all(records))

    options = asyncio.run(store.filter_options())
    assert options["agencies"][0] == {"value": "UNICEF", "count": 2}
    assert {item["value"] for item in options["grades"]} == {"P3", "D1"}

    stats = asyncio.run(store.classification_stats())
    assert stats["total"] == 3
    assert stats["classified"] == 3
    assert stats["user_corrected"] == 0
    assert "leadership-executive" in {item["category"] for item in stats["distribution"]}


def test_correct_category_sets_audit_fields(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (1, {}))))

    job = asyncio.run(
        store.correct_category(1, category="health-medical", corrected_by="analyst-1", reason="Clinic role", now=fixed_now)
    )

    assert job["primary_category"] == "health-medical"
    assert job["classification_confidence"] == 100
    assert job["is_user_corrected"] is True
    assert job["user_corrected_by"] == "analyst-1"
    assert job["user_corrected_at"] == "2026-03-10T12:00:00+00:00"
    assert job["classification_reasoning"] == ["User corrected classification", "Clinic role"]
    assert asyncio.run(store.classification_stats())["user_corrected"] == 1


def test_correct_category_records_feedback_history(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (1, {}))))
    original = asyncio.run(store.get_job(1))["primary_category"]
    assert original != "health-medical"

    asyncio.run(
        store.correct_category(1, category="health-medical", corrected_by="analyst-1", reason="Clinic role", now=fixed_now)
    )
    asyncio.run(store.correct_category(1, category="health-medical", corrected_by="analyst-2", now=fixed_now))

    assert asyncio.run(store.list_corrections(1)) == [
        {
            "job_id": 1,
            "original_category": original,
            "corrected_category": "health-medical",
            "corrected_by": "analyst-1",
            "reason": "Clinic role",
            "created_at": "2026-03-10T12:00:00+00:00",
        }
    ]
    assert asyncio.run(store.list_corrections(2)) == []


def test_correct_category_rejects_unknown_category_and_job(store: LocalStore, make_raw, fixed_now) -> None:
    asyncio.run(store.replace_all(_records(make_raw, fixed_now, (1, {}))))

    with pytest.raises(RepositoryValidationError):
        asyncio.run(store.correct_category(1, category="astrology", corrected_by="analyst-1"))
    with pytest.raises(RepositoryNotFoundError):
        asyncio.run(store.correct_category(99, category="health-medical", corrected_by="analyst-1"))


def test_cache_entry_expires_after_ttl(store: LocalStore, fixed_now) -> None:
    asyncio.run(store.cache_put("dashboard:overview", {"total_jobs": 3}, ttl=timedelta(hours=24), now=fixed_now))

    fresh = asyncio.run(store.cache_get("dashboard:overview", now=fixed_now + timedelta(hours=23, minutes=59)))
    stale = asyncio.run(store.cache_get("dashboard:overview", now=fixed_now + timedelta(hours=24, minutes=1)))

    assert fresh is not None and fresh.fresh
    assert fresh.data == {"total_jobs": 3}
    assert stale is not None and not stale.fresh
    assert asyncio.run(store.cache_get("dashboard:missing", now=fixed_now)) is None


def test_cache_put_replaces_existing_key(store: LocalStore, fixed_now) -> None:
    asyncio.run(store.cache_put("dashboard:skills", {"v": 1}, ttl=timedelta(hours=1), now=fixed_now))
    asyncio.run(store.cache_put("dashboard:skills", {"v": 2}, ttl=timedelta(hours=1), now=fixed_now))

    rows = asyncio.run(store.fetch("select count(*) as total from analytics_cache"))
    entry = asyncio.run(store.cache_get("dashboard:skills", now=fixed_now))
    assert rows[0]["total"] == 1
    assert entry is not None and entry.data == {"v": 2}


def test_sync_metadata_transitions(store: LocalStore, fixed_now) -> None:
    asyncio.run(store.mark_sync_started())
    assert asyncio.run(store.get_sync_metadata())["status"] == "syncing"

    asyncio.run(store.mark_sync_failed(error="source down", duration_ms=12))
    failed = asyncio.run(store.get_sync_metadata())
    assert failed["status"] == "failed"
    assert failed["last_error"] == "source down"

    asyncio.run(store.mark_sync_completed(total_jobs=4, duration_ms=30, now=fixed_now))
    completed = asyncio.run(store.get_sync_metadata())
    assert completed["status"] == "completed"
    assert completed["total_jobs"] == 4
    assert completed["last_sync_at"] == "2026-03-10T12:00:00+00:00"
    assert completed["last_error"] is None
