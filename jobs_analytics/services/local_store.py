from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, TypeVar

from jobs_analytics.core.config import get_settings
from jobs_analytics.services.enrichment import EnrichedRecord, format_timestamp, parse_datetime
from jobs_analytics.services.errors import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobs_analytics.services.taxonomy import DEFAULT_TAXONOMY

logger = logging.getLogger(__name__)

T = TypeVar("T")

SYNC_STATUSES = {"never_synced", "syncing", "completed", "failed"}
JOB_SORT_COLUMNS = {
    "posting_date": "posting_date",
    "confidence": "classification_confidence",
    "title": "title",
    "days_remaining": "days_remaining",
}
JSON_COLUMNS = ("secondary_categories", "classification_reasoning", "emerging_terms", "skill_domains")
BOOL_COLUMNS = ("archived", "is_active", "is_expired", "is_ambiguous_category", "is_low_confidence", "is_user_corrected")
LOW_CONFIDENCE_CUTOFF = 50
USER_CORRECTED_CONFIDENCE = 100

SCHEMA = """
create table if not exists jobs (
  id integer primary key,
  title text,
  description text,
  job_labels text,
  short_agency text,
  long_agency text,
  duty_station text,
  duty_country text,
  duty_continent text,
  country_code text,
  eligible_nationality text,
  hs_min_exp integer,
  bachelor_min_exp integer,
  master_min_exp integer,
  up_grade text,
  pipeline text,
  department text,
  posting_date text,
  apply_until text,
  url text,
  languages text,
  uniquecode text,
  ideal_candidate text,
  sectoral_category text,
  archived integer not null default 0,
  created_at text,
  updated_at text,
  primary_category text,
  secondary_categories text,
  classification_confidence real,
  classification_reasoning text,
  is_ambiguous_category integer not null default 0,
  is_low_confidence integer not null default 0,
  emerging_terms text,
  seniority_level text,
  location_type text,
  skill_domains text,
  status text,
  is_active integer,
  is_expired integer,
  days_remaining integer,
  urgency text,
  application_window_days integer,
  formatted_posting_date text,
  formatted_apply_until text,
  processed_at text,
  is_user_corrected integer not null default 0,
  user_corrected_by text,
  user_corrected_at text
);

create index if not exists idx_jobs_agency on jobs(short_agency);
create index if not exists idx_jobs_category on jobs(primary_category);
create index if not exists idx_jobs_status on jobs(status);
create index if not exists idx_jobs_posting_date on jobs(posting_date);
create index if not exists idx_jobs_country on jobs(duty_country);
create index if not exists idx_jobs_grade on jobs(up_grade);
create unique index if not exists idx_jobs_url_unique on jobs(url) where url is not null and url != '';

create table if not exists analytics_cache (
  id integer primary key autoincrement,
  cache_key text unique not null,
  data text not null,
  created_at text not null,
  expires_at text not null
);

create table if not exists classification_feedback (
  id integer primary key autoincrement,
  job_id integer not null,
  original_category text,
  corrected_category text not null,
  corrected_by text not null,
  reason text,
  created_at text not null
);

create index if not exists idx_feedback_job on classification_feedback(job_id);

create table if not exists sync_metadata (
  id integer primary key check (id = 1),
  last_sync_at text,
  total_jobs integer,
  sync_duration_ms integer,
  status text not null,
  last_error text
);

insert or ignore into sync_metadata (id, status) values (1, 'never_synced');
"""


@dataclass(slots=True)
class CacheEntry:
    key: str
    data: Any
    created_at: datetime
    expires_at: datetime
    fresh: bool


class LocalStore:
    """Embedded SQLite store for enriched jobs, analytics cache and sync metadata.

    SQLite calls are blocking, so every public coroutine hands its work to a
    worker thread; the re-entrant lock keeps one statement sequence at a time
    on the shared connection.
    """

    def __init__(self, database_path: str) -> None:
        self.database_path = database_path
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    async def initialize(self) -> None:
        await self._run(self._initialize)

    async def close(self) -> None:
        await self._run(self._close)

    async def replace_all(self, records: Sequence[EnrichedRecord], *, batch_size: int = 500) -> int:
        """Swap the whole jobs table for ``records``.

        The delete shares a transaction with the first batch, so a failure
        there leaves the previous snapshot intact. Later batches commit one
        by one; the first failing insert aborts its batch and propagates.
        """
        rows = [record.to_row() for record in records]
        return await self._run(self._replace_all, rows, max(1, batch_size))

    async def count_jobs(self) -> int:
        row = await self.fetchrow("select count(*) as total from jobs")
        return int(row["total"]) if row else 0

    async def has_data(self) -> bool:
        return await self.count_jobs() > 0

    async def list_jobs(
        self,
        *,
        category: str | None = None,
        agency: str | None = None,
        search: str | None = None,
        status: str | None = None,
        country: str | None = None,
        grade: str | None = None,
        sort_by: str = "posting_date",
        sort_dir: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        clauses: list[str] = []
        params: list[Any] = []

        if category:
            clauses.append("primary_category = ?")
            params.append(category)
        if agency:
            clauses.append("(short_agency = ? or long_agency = ?)")
            params.extend([agency, agency])
        if search:
            pattern = f"%{search}%"
            clauses.append("(title like ? or job_labels like ? or description like ?)")
            params.extend([pattern, pattern, pattern])
        if status:
            clauses.append("status = ?")
            params.append(status)
        if country:
            clauses.append("duty_country = ?")
            params.append(country)
        if grade:
            clauses.append("up_grade like ?")
            params.append(f"%{grade}%")

        where_sql = f"where {' and '.join(clauses)}" if clauses else ""
        sort_column = JOB_SORT_COLUMNS.get(sort_by, "posting_date")
        direction = "asc" if sort_dir == "asc" else "desc"
        page = max(1, page)
        limit = max(1, limit)

        total_row = await self.fetchrow(f"select count(*) as total from jobs {where_sql}", params)
        total = int(total_row["total"]) if total_row else 0
        rows = await self.fetch(
            f"""
            select *
            from jobs
            {where_sql}
            order by {sort_column} {direction}, id desc
            limit ? offset ?
            """,
            [*params, limit, (page - 1) * limit],
        )
        return {
            "jobs": [_decode_job(row) for row in rows],
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit,
        }

    async def get_job(self, job_id: int) -> dict[str, Any]:
        row = await self.fetchrow("select * from jobs where id = ?", [job_id])
        if row is None:
            raise RepositoryNotFoundError("job not found")
        return _decode_job(row)

    async def fetch_all_jobs(self) -> list[dict[str, Any]]:
        rows = await self.fetch("select * from jobs order by id")
        return [_decode_job(row) for row in rows]

    async def filter_options(self) -> dict[str, list[dict[str, Any]]]:
        async def distinct(column: str, limit: int | None = None) -> list[dict[str, Any]]:
            limit_sql = f"limit {int(limit)}" if limit else ""
            rows = await self.fetch(
                f"""
                select {column} as value, count(*) as count
                from jobs
                where {column} is not null and {column} != ''
                group by {column}
                order by count desc, value
                {limit_sql}
                """
            )
            return [{"value": row["value"], "count": row["count"]} for row in rows]

        return {
            "categories": await distinct("primary_category"),
            "agencies": await distinct("short_agency"),
            "countries": await distinct("duty_country", 50),
            "grades": await distinct("up_grade", 30),
            "statuses": await distinct("status"),
        }

    async def classification_stats(self) -> dict[str, Any]:
        totals = await self.fetchrow(
            """
            select
              count(*) as total,
              sum(case when primary_category is not null then 1 else 0 end) as classified,
              sum(case when is_user_corrected = 1 then 1 else 0 end) as user_corrected,
              avg(classification_confidence) as avg_confidence,
              sum(case when classification_confidence < ? then 1 else 0 end) as low_confidence_count
            from jobs
            """,
            [LOW_CONFIDENCE_CUTOFF],
        )
        distribution = await self.fetch(
            """
            select primary_category as category, count(*) as count, avg(classification_confidence) as avg_confidence
            from jobs
            where primary_category is not null
            group by primary_category
            order by count desc, category
            """
        )
        totals = totals or {}
        return {
            "total": int(totals.get("total") or 0),
            "classified": int(totals.get("classified") or 0),
            "user_corrected": int(totals.get("user_corrected") or 0),
            "avg_confidence": round(float(totals.get("avg_confidence") or 0.0), 1),
            "low_confidence_count": int(totals.get("low_confidence_count") or 0),
            "distribution": [
                {
                    "category": row["category"],
                    "count": row["count"],
                    "avg_confidence": round(float(row["avg_confidence"] or 0.0), 1),
                }
                for row in distribution
            ],
        }

    async def correct_category(
        self,
        job_id: int,
        *,
        category: str,
        corrected_by: str,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        if DEFAULT_TAXONOMY.get(category) is None:
            raise RepositoryValidationError(f"unknown category: {category}")
        current = now or datetime.now(timezone.utc)
        found = await self._run(
            self._correct_category, job_id, category, corrected_by, reason, format_timestamp(current)
        )
        if not found:
            raise RepositoryNotFoundError("job not found")
        logger.info("job category corrected id=%s category=%s by=%s", job_id, category, corrected_by)
        return await self.get_job(job_id)

    async def list_corrections(self, job_id: int) -> list[dict[str, Any]]:
        return await self.fetch(
            """
            select job_id, original_category, corrected_category, corrected_by, reason, created_at
            from classification_feedback
            where job_id = ?
            order by id
            """,
            [job_id],
        )

    async def cache_get(self, key: str, *, now: datetime | None = None) -> CacheEntry | None:
        row = await self.fetchrow(
            "select cache_key, data, created_at, expires_at from analytics_cache where cache_key = ?",
            [key],
        )
        if row is None:
            return None
        current = now or datetime.now(timezone.utc)
        created_at = parse_datetime(row["created_at"])
        expires_at = parse_datetime(row["expires_at"])
        if created_at is None or expires_at is None:
            return None
        return CacheEntry(
            key=row["cache_key"],
            data=json.loads(row["data"]),
            created_at=created_at,
            expires_at=expires_at,
            fresh=current < expires_at,
        )

    async def cache_put(self, key: str, data: Any, *, ttl: timedelta, now: datetime | None = None) -> CacheEntry:
        current = now or datetime.now(timezone.utc)
        expires_at = current + ttl
        await self._run(
            self._execute,
            """
            insert into analytics_cache (cache_key, data, created_at, expires_at)
            values (?, ?, ?, ?)
            on conflict(cache_key) do update set
              data = excluded.data,
              created_at = excluded.created_at,
              expires_at = excluded.expires_at
            """,
            [key, json.dumps(data, default=str), current.isoformat(), expires_at.isoformat()],
        )
        return CacheEntry(key=key, data=data, created_at=current, expires_at=expires_at, fresh=True)

    async def get_sync_metadata(self) -> dict[str, Any]:
        row = await self.fetchrow(
            "select status, last_sync_at, total_jobs, sync_duration_ms, last_error from sync_metadata where id = 1"
        )
        if row is None:
            return {
                "status": "never_synced",
                "last_sync_at": None,
                "total_jobs": None,
                "sync_duration_ms": None,
                "last_error": None,
            }
        return row

    async def mark_sync_started(self) -> None:
        await self._set_sync_metadata(status="syncing")

    async def mark_sync_completed(self, *, total_jobs: int, duration_ms: int, now: datetime | None = None) -> None:
        current = now or datetime.now(timezone.utc)
        await self._set_sync_metadata(
            status="completed",
            last_sync_at=format_timestamp(current),
            total_jobs=total_jobs,
            sync_duration_ms=duration_ms,
            last_error=None,
        )

    async def mark_sync_failed(self, *, error: str, duration_ms: int) -> None:
        await self._set_sync_metadata(status="failed", sync_duration_ms=duration_ms, last_error=error)

    async def fetch(self, query: str, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        return await self._run(self._fetch, query, list(params))

    async def fetchrow(self, query: str, params: Iterable[Any] = ()) -> dict[str, Any] | None:
        rows = await self.fetch(query, params)
        return rows[0] if rows else None

    async def _set_sync_metadata(self, *, status: str, **values: Any) -> None:
        if status not in SYNC_STATUSES:
            raise RepositoryValidationError(f"invalid sync status: {status}")
        assignments = ["status = ?"]
        params: list[Any] = [status]
        for column, value in values.items():
            assignments.append(f"{column} = ?")
            params.append(value)
        await self._run(
            self._execute,
            f"update sync_metadata set {', '.join(assignments)} where id = 1",
            params,
        )

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is not None:
            return self._connection
        try:
            if self.database_path != ":memory:":
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.database_path, check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise RepositoryUnavailableError(f"local store unavailable: {self.database_path}") from exc
        connection.row_factory = sqlite3.Row
        connection.execute("pragma journal_mode = wal")
        connection.execute("pragma synchronous = normal")
        connection.execute("pragma temp_store = memory")
        connection.executescript(SCHEMA)
        connection.commit()
        self._connection = connection
        return connection

    def _initialize(self) -> None:
        with self._lock:
            self._get_connection()
        logger.info("local store initialized path=%s", self.database_path)

    def _close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None

    def _replace_all(self, rows: list[dict[str, Any]], batch_size: int) -> int:
        columns = EnrichedRecord.column_names()
        insert_sql = f"insert into jobs ({', '.join(columns)}) values ({', '.join('?' for _ in columns)})"
        written = 0
        with self._lock:
            connection = self._get_connection()
            # An empty reload still runs once so the delete happens.
            for start in range(0, max(len(rows), 1), batch_size):
                batch = rows[start : start + batch_size]
                with connection:
                    if start == 0:
                        connection.execute("delete from jobs")
                    connection.executemany(insert_sql, [tuple(row[column] for column in columns) for row in batch])
                written += len(batch)
                logger.info("local store batch committed offset=%s size=%s", start, len(batch))
        return written

    def _correct_category(
        self,
        job_id: int,
        category: str,
        corrected_by: str,
        reason: str | None,
        corrected_at: str,
    ) -> bool:
        reasoning = ["User corrected classification"]
        if reason:
            reasoning.append(reason)
        with self._lock:
            connection = self._get_connection()
            with connection:
                row = connection.execute("select primary_category from jobs where id = ?", [job_id]).fetchone()
                if row is None:
                    return False
                connection.execute(
                    """
                    update jobs
                    set primary_category = ?,
                        classification_confidence = ?,
                        classification_reasoning = ?,
                        is_low_confidence = 0,
                        is_user_corrected = 1,
                        user_corrected_by = ?,
                        user_corrected_at = ?
                    where id = ?
                    """,
                    [category, USER_CORRECTED_CONFIDENCE, json.dumps(reasoning), corrected_by, corrected_at, job_id],
                )
                if row["primary_category"] != category:
                    connection.execute(
                        """
                        insert into classification_feedback
                          (job_id, original_category, corrected_category, corrected_by, reason, created_at)
                        values (?, ?, ?, ?, ?, ?)
                        """,
                        [job_id, row["primary_category"], category, corrected_by, reason, corrected_at],
                    )
        return True

    def _fetch(self, query: str, params: list[Any]) -> list[dict[str, Any]]:
        with self._lock:
            cursor = self._get_connection().execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def _execute(self, query: str, params: list[Any]) -> int:
        with self._lock:
            connection = self._get_connection()
            with connection:
                cursor = connection.execute(query, params)
            return cursor.rowcount


def _decode_job(row: dict[str, Any]) -> dict[str, Any]:
    job = dict(row)
    for column in JSON_COLUMNS:
        raw = job.get(column)
        if isinstance(raw, str) and raw:
            try:
                job[column] = json.loads(raw)
            except json.JSONDecodeError:
                job[column] = []
        else:
            job[column] = []
    for column in BOOL_COLUMNS:
        if column in job:
            job[column] = bool(job[column])
    return job


@lru_cache
def get_local_store() -> LocalStore:
    settings = get_settings()
    return LocalStore(settings.local_db_path)
