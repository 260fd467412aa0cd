from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

import asyncpg  # type: ignore[import-untyped]
import pytest

from jobs_analytics.services.enrichment import RawRecord
from jobs_analytics.services.publisher import DOWNSTREAM_COLUMNS

FIXED_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _raw_row(job_id: int, **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": job_id,
        "title": "Programme Officer",
        "description": "Supports programme delivery.",
        "job_labels": "Programme Management, Reporting",
        "short_agency": "UNDP",
        "long_agency": "United Nations Development Programme",
        "duty_station": "Dakar",
        "duty_country": "Senegal",
        "duty_continent": "Africa",
        "country_code": "SN",
        "up_grade": "P3",
        "department": "Regional Bureau for Africa",
        "posting_date": FIXED_NOW - timedelta(days=10),
        "apply_until": FIXED_NOW + timedelta(days=20),
        "url": f"https://jobs.example.org/{job_id}",
        "languages": "English, French",
        "archived": False,
    }
    row.update(overrides)
    return row


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def raw_row() -> Callable[..., dict[str, Any]]:
    return _raw_row


@pytest.fixture
def make_raw() -> Callable[..., RawRecord]:
    def build(job_id: int, **overrides: Any) -> RawRecord:
        return RawRecord.from_mapping(_raw_row(job_id, **overrides))

    return build


class FakeSourcePool:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.queries: list[str] = []
        self.closed = False

    async def fetch(self, query: str) -> list[dict[str, Any]]:
        self.queries.append(query)
        return [dict(row) for row in self.rows]

    async def close(self) -> None:
        self.closed = True


class FakeDownstreamPool:
    """Keeps upserted rows by id and fails any batch containing an id in ``fail_ids``."""

    def __init__(self, fail_ids: set[int] | None = None) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self.fail_ids = fail_ids or set()
        self.statements: list[str] = []
        self.closed = False

    async def execute(self, query: str, *args: Any) -> str:
        self.statements.append(query)
        if not query.lstrip().startswith("insert"):
            return "OK"
        width = len(DOWNSTREAM_COLUMNS)
        batch = [dict(zip(DOWNSTREAM_COLUMNS, args[start : start + width])) for start in range(0, len(args), width)]
        if any(row["id"] in self.fail_ids for row in batch):
            raise RuntimeError("value too long for type character varying(255)")
        for row in batch:
            self.rows[row["id"]] = row
        return f"INSERT 0 {len(batch)}"

    @asynccontextmanager
    async def acquire(self):
        yield self

    @asynccontextmanager
    async def transaction(self):
        yield

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_pools(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Routes ``asyncpg.create_pool`` to fakes registered by dsn; unknown dsns fail to connect."""
    pools: dict[str, Any] = {}

    async def create_pool(*, dsn: str, **kwargs: Any) -> Any:
        if dsn not in pools:
            raise OSError(f"connection refused: {dsn}")
        return pools[dsn]

    monkeypatch.setattr(asyncpg, "create_pool", create_pool)
    return pools
