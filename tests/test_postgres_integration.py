from __future__ import annotations

import asyncio
import os

import asyncpg  # type: ignore[import-untyped]
import pytest

from jobs_analytics.services.publisher import DownstreamPublisher
from jobs_analytics.services.source import SourceReader
from jobs_analytics.services.sync import process_record


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("UNJ_TEST_DATABASE_URL")
    if not url:
        pytest.skip("integration tests require UNJ_TEST_DATABASE_URL")
    return url


@pytest.fixture(autouse=True)
def reset_jobs_table(database_url: str) -> None:
    async def drop() -> None:
        conn = await asyncpg.connect(database_url)
        try:
            await conn.execute("drop table if exists jobs")
        finally:
            await conn.close()

    asyncio.run(drop())


async def _fetch(database_url: str, query: str) -> list[asyncpg.Record]:
    conn = await asyncpg.connect(database_url)
    try:
        return await conn.fetch(query)
    finally:
        await conn.close()


def test_republish_is_idempotent_and_readable_as_source(database_url: str, make_raw, fixed_now) -> None:
    rows = [
        process_record(make_raw(job_id, url=url), now=fixed_now).to_row()
        for job_id, url in ((10, "https://jobs.example.org/a"), (11, None), (12, "https://jobs.example.org/b"))
    ]

    async def scenario() -> list:
        publisher = DownstreamPublisher(database_url, 1, 2, batch_size=2)
        reader = SourceReader(database_url, 1, 2)
        try:
            assert await publisher.ensure_schema()
            first = await publisher.publish(rows)
            second = await publisher.publish(rows)
            assert first.success and first.published == 3
            assert second.success and second.published == 3
            return await reader.fetch_latest_postings()
        finally:
            await publisher.close()
            await reader.close()

    records = asyncio.run(scenario())

    stored = asyncio.run(_fetch(database_url, "select id, sectoral_category, url from jobs order by id"))
    assert [row["id"] for row in stored] == [10, 11, 12]
    assert stored[1]["url"] == ""
    assert all(row["sectoral_category"] for row in stored)
    assert sorted(record.id for record in records) == [10, 11, 12]


def test_source_keeps_each_posting_without_url(database_url: str, make_raw, fixed_now) -> None:
    rows = [
        process_record(make_raw(job_id, url=url), now=fixed_now).to_row()
        for job_id, url in ((1, ""), (2, ""), (3, "https://jobs.example.org/x"), (4, "https://jobs.example.org/x"))
    ]

    async def scenario() -> list:
        publisher = DownstreamPublisher(database_url, 1, 2)
        reader = SourceReader(database_url, 1, 2)
        try:
            assert await publisher.ensure_schema()
            assert (await publisher.publish(rows)).published == 4
            return await reader.fetch_latest_postings()
        finally:
            await publisher.close()
            await reader.close()

    records = asyncio.run(scenario())

    assert sorted(record.id for record in records) == [1, 2, 4]
