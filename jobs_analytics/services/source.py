from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from jobs_analytics.core.config import get_settings
from jobs_analytics.services.enrichment import RawRecord
from jobs_analytics.services.errors import RepositoryUnavailableError

logger = logging.getLogger(__name__)

LATEST_POSTINGS_QUERY = """
select distinct on (coalesce(nullif(url, ''), id::text)) *
from jobs
order by coalesce(nullif(url, ''), id::text), id desc
"""


def dedupe_key(row: Mapping[str, Any]) -> str:
    url = row.get("url")
    if url:
        return str(url)
    return str(row["id"])


def dedupe_latest_by_url(rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """Keep one row per url, the one with the highest id; url-less rows are kept individually."""
    latest: dict[str, Mapping[str, Any]] = {}
    for row in rows:
        key = dedupe_key(row)
        current = latest.get(key)
        if current is None or int(row["id"]) > int(current["id"]):
            latest[key] = row
    return sorted(latest.values(), key=lambda row: int(row["id"]))


class SourceReader:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        *,
        connect_timeout: float = 10.0,
        command_timeout: float = 60.0,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def fetch_latest_postings(self) -> list[RawRecord]:
        pool = await self._get_pool()
        rows = await pool.fetch(LATEST_POSTINGS_QUERY)
        unique_rows = dedupe_latest_by_url(dict(row) for row in rows)
        if len(unique_rows) != len(rows):
            logger.warning("source returned duplicate urls fetched=%s unique=%s", len(rows), len(unique_rows))
        logger.info("source postings fetched count=%s", len(unique_rows))
        return [RawRecord.from_mapping(row) for row in unique_rows]

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("UNJ_SOURCE_DATABASE_URL is required")

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
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("source database unavailable") from exc


@lru_cache
def get_source_reader() -> SourceReader:
    settings = get_settings()
    return SourceReader(
        database_url=settings.source_database_url,
        min_pool_size=settings.source_pool_min_size,
        max_pool_size=settings.source_pool_max_size,
        connect_timeout=settings.database_connect_timeout_seconds,
        command_timeout=settings.database_command_timeout_seconds,
    )
