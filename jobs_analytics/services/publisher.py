from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from jobs_analytics.core.config import get_settings
from jobs_analytics.services.enrichment import parse_datetime

logger = logging.getLogger(__name__)

TEXT_COLUMNS = (
    "title",
    "description",
    "job_labels",
    "short_agency",
    "long_agency",
    "duty_station",
    "duty_country",
    "duty_continent",
    "country_code",
    "up_grade",
    "pipeline",
    "department",
)
DOWNSTREAM_COLUMNS = (
    "id",
    *TEXT_COLUMNS,
    "posting_date",
    "apply_until",
    "url",
    "languages",
    "uniquecode",
    "sectoral_category",
    "archived",
)
DOWNSTREAM_SCHEMA = """
create table if not exists jobs (
  id bigint primary key,
  title text,
  description text,
  job_labels text,
  short_agency text,
  long_agency text,
  duty_station text,
  duty_country text,
  duty_continent text,
  country_code text,
  up_grade text,
  pipeline text,
  department text,
  posting_date timestamptz,
  apply_until timestamptz,
  url text,
  languages text,
  uniquecode text,
  sectoral_category text,
  archived boolean not null default false,
  updated_at timestamptz not null default now()
);
create unique index if not exists idx_jobs_id_unique on jobs(id);
"""


@dataclass(slots=True)
class PublishResult:
    success: bool
    published: int = 0
    failed_batches: int = 0
    failed_rows: int = 0
    skipped: bool = False
    error: str | None = None


def project_row(row: Mapping[str, Any]) -> tuple[Any, ...]:
    """Downstream column values for one enriched local row."""
    values: dict[str, Any] = {column: row.get(column) or "" for column in TEXT_COLUMNS}
    values["id"] = int(row["id"])
    values["posting_date"] = parse_datetime(row.get("posting_date"))
    values["apply_until"] = parse_datetime(row.get("apply_until"))
    values["url"] = row.get("url") or ""
    values["languages"] = row.get("languages") or ""
    values["uniquecode"] = row.get("uniquecode") or ""
    values["sectoral_category"] = row.get("primary_category")
    values["archived"] = bool(row.get("archived"))
    return tuple(values[column] for column in DOWNSTREAM_COLUMNS)


def build_upsert(row_count: int) -> str:
    width = len(DOWNSTREAM_COLUMNS)
    placeholders: list[str] = []
    for index in range(row_count):
        offset = index * width
        params = ", ".join(f"${offset + position}" for position in range(1, width + 1))
        placeholders.append(f"({params}, now())")
    updates = ",\n  ".join(f"{column} = excluded.{column}" for column in DOWNSTREAM_COLUMNS if column != "id")
    return (
        f"insert into jobs ({', '.join(DOWNSTREAM_COLUMNS)}, updated_at)\n"
        f"values {', '.join(placeholders)}\n"
        f"on conflict (id) do update set\n  {updates},\n  updated_at = now()"
    )


class DownstreamPublisher:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        *,
        connect_timeout: float = 10.0,
        command_timeout: float = 60.0,
        batch_size: int = 500,
        verbose_failures: int = 3,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.batch_size = max(1, batch_size)
        self.verbose_failures = max(0, verbose_failures)
        self._pool: asyncpg.Pool | None = None

    @property
    def configured(self) -> bool:
        return bool(self.database_url)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ensure_schema(self) -> bool:
        pool = await self._get_pool()
        if pool is None:
            return False
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(DOWNSTREAM_SCHEMA)
        return True

    async def publish(self, rows: Sequence[Mapping[str, Any]]) -> PublishResult:
        """Upsert ``rows`` into the downstream store in independent batches.

        A failing batch is logged and skipped; later batches still run. An
        unconfigured or unreachable downstream is a successful no-op.
        """
        pool = await self._get_pool()
        if pool is None:
            return PublishResult(success=True, skipped=True)
        if not rows:
            return PublishResult(success=True)

        published = 0
        failed_batches = 0
        failed_rows = 0
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start : start + self.batch_size]
            try:
                values = [value for row in batch for value in project_row(row)]
                await pool.execute(build_upsert(len(batch)), *values)
            except Exception as exc:
                failed_batches += 1
                failed_rows += len(batch)
                if failed_batches <= self.verbose_failures:
                    logger.exception("downstream batch failed offset=%s size=%s", start, len(batch))
                else:
                    logger.error("downstream batch failed offset=%s size=%s error=%s", start, len(batch), exc)
                continue
            published += len(batch)
            logger.info("downstream batch published offset=%s size=%s total=%s", start, len(batch), published)

        if failed_batches:
            logger.warning(
                "downstream publish finished with failures published=%s failed_batches=%s failed_rows=%s",
                published,
                failed_batches,
                failed_rows,
            )
        return PublishResult(
            success=failed_batches == 0,
            published=published,
            failed_batches=failed_batches,
            failed_rows=failed_rows,
        )

    async def _get_pool(self) -> asyncpg.Pool | None:
        if not self.database_url:
            logger.warning("downstream database not configured; set UNJ_DOWNSTREAM_DATABASE_URL to enable publishing")
            return None

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                timeout=self.connect_timeout,
                command_timeout=self.command_timeout,
            )
        except Exception:  # pragma: no cover - depends on environment
            logger.exception("downstream database unreachable; skipping publish")
            return None
        return self._pool


@lru_cache
def get_downstream_publisher() -> DownstreamPublisher:
    settings = get_settings()
    return DownstreamPublisher(
        database_url=settings.downstream_database_url,
        min_pool_size=settings.downstream_pool_min_size,
        max_pool_size=settings.downstream_pool_max_size,
        connect_timeout=settings.database_connect_timeout_seconds,
        command_timeout=settings.database_command_timeout_seconds,
        batch_size=settings.publish_batch_size,
        verbose_failures=settings.publish_verbose_failures,
    )
